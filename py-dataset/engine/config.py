"""
Configuration system for the dataset builder.

Engine, processor and dataset settings are plain dataclasses. Each one
validates itself, converts to and from a dict, and the top-level settings
can be overridden from the environment.
"""

from dataclasses import asdict, dataclass, fields
from typing import Optional, Dict, Any, List, Mapping, Type, TypeVar
import logging
import os

from constants.dataset_keys import PAGE_MARKER_FORMAT, VAL_DOCUMENT_TYPE, VAL_LANGUAGE, VAL_SOURCE

logger = logging.getLogger(__name__)

ENV_MIN_TEXT_LENGTH = "DATASET_MIN_TEXT_LENGTH"
ENV_MAX_FILE_SIZE_MB = "DATASET_MAX_FILE_SIZE_MB"
ENV_LOG_LEVEL = "LOG_LEVEL"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_ConfigT = TypeVar("_ConfigT")


def _from_known_keys(cls: Type[_ConfigT], config: Mapping[str, Any]) -> _ConfigT:
    """Build a dataclass from a dict, ignoring unknown keys with a warning."""
    known = {f.name for f in fields(cls)}
    for key in config.keys() - known:
        logger.warning(f"Ignoring unknown {cls.__name__} key '{key}'")
    return cls(**{key: value for key, value in config.items() if key in known})


@dataclass
class ProcessorOptions:
    """Settings every processor understands."""
    enabled: bool = True
    timeout_seconds: Optional[int] = None  # per-processor override of EngineConfig.timeout_seconds

    def validate(self) -> bool:
        if self.timeout_seconds is not None and self.timeout_seconds < 0:
            logger.error(f"Processor timeout cannot be negative: {self.timeout_seconds}")
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]):
        return _from_known_keys(cls, config)


@dataclass
class TextProcessorOptions(ProcessorOptions):
    """
    Layout reconstruction tuning for text extraction.

    Ratios are multiplied by the page's average font size to obtain the
    word-gap and line-break thresholds.
    """
    word_gap_ratio: float = 0.2
    line_break_ratio: float = 0.4
    default_font_size: float = 12.0
    char_width_ratio: float = 0.6

    page_marker_format: str = PAGE_MARKER_FORMAT

    # Content stream filtering
    skip_rotated_text: bool = True
    skip_faux_bold: bool = True

    def validate(self) -> bool:
        if not super().validate():
            return False

        for name in ('word_gap_ratio', 'line_break_ratio', 'default_font_size', 'char_width_ratio'):
            if getattr(self, name) <= 0:
                logger.error(f"{name} must be positive")
                return False

        if '{page_num}' not in self.page_marker_format:
            logger.error("page_marker_format must contain '{page_num}'")
            return False

        return True


@dataclass
class EngineConfig:
    """
    Settings for opening and reading one document with PDFEngine.

    Example:
        >>> config = EngineConfig(max_file_size_mb=20)
        >>> with PDFEngine(file_path, config=config) as engine:
        ...     lines = engine.text_processor.reconstruct_page(0)
    """

    # Raw TextProcessorOptions fields; resolved by text_options()
    text_processor_options: Optional[Dict[str, Any]] = None

    # Limits
    timeout_seconds: int = 300
    max_file_size_mb: int = 50

    # Validation
    validate_on_open: bool = True

    # Logging
    log_level: str = "INFO"

    def validate(self) -> bool:
        if self.timeout_seconds < 1:
            logger.error(f"Engine timeout must be at least 1 second, got {self.timeout_seconds}")
            return False

        if self.max_file_size_mb < 1:
            logger.error(f"File size limit must be at least 1 MB, got {self.max_file_size_mb}")
            return False

        if self.log_level.upper() not in _VALID_LOG_LEVELS:
            logger.error(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}")
            return False

        if self.text_processor_options is not None:
            if not self.text_options().validate():
                return False

        return True

    def text_options(self) -> TextProcessorOptions:
        """Text processor options resolved from the raw dict."""
        return TextProcessorOptions.from_dict(self.text_processor_options or {})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'EngineConfig':
        """Inverse of to_dict(); keys that are not fields are logged and dropped."""
        return _from_known_keys(cls, config)

    @classmethod
    def default(cls) -> 'EngineConfig':
        return cls()

    def __repr__(self) -> str:
        return (
            f"EngineConfig({self.max_file_size_mb}MB limit, {self.timeout_seconds}s timeout, "
            f"{'validating' if self.validate_on_open else 'no validation'})"
        )


@dataclass
class DatasetConfig:
    """
    Record assembly settings: metadata values stamped on every entry and
    the limits applied to decision text.
    """
    min_text_length: int = 100
    source: str = VAL_SOURCE
    document_type: str = VAL_DOCUMENT_TYPE
    language: str = VAL_LANGUAGE

    # Instruction-tuning excerpts
    instruction_input_chars: int = 2000
    instruction_output_chars: int = 3000

    def validate(self) -> bool:
        if self.min_text_length < 0:
            logger.error("min_text_length must be non-negative")
            return False

        if self.instruction_input_chars < 1 or self.instruction_output_chars < 1:
            logger.error("instruction excerpt lengths must be positive")
            return False

        for name in ('source', 'document_type', 'language'):
            if not getattr(self, name):
                logger.error(f"{name} must not be empty")
                return False

        return True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'DatasetConfig':
        return _from_known_keys(cls, config)


@dataclass
class AppConfig:
    """Engine and dataset settings resolved together for one run."""
    engine: EngineConfig
    dataset: DatasetConfig


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}")
        return None


def get_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Default configuration with environment overrides applied.

    Recognized variables: DATASET_MIN_TEXT_LENGTH, DATASET_MAX_FILE_SIZE_MB
    and LOG_LEVEL. Malformed values are ignored with a warning.
    """
    environ = os.environ if environ is None else environ
    engine = EngineConfig()
    dataset = DatasetConfig()

    min_length = _env_int(environ, ENV_MIN_TEXT_LENGTH)
    if min_length is not None:
        dataset.min_text_length = min_length

    max_size = _env_int(environ, ENV_MAX_FILE_SIZE_MB)
    if max_size is not None:
        engine.max_file_size_mb = max_size

    log_level = environ.get(ENV_LOG_LEVEL)
    if log_level:
        if log_level.upper() in _VALID_LOG_LEVELS:
            engine.log_level = log_level.upper()
        else:
            logger.warning(f"Ignoring unknown {ENV_LOG_LEVEL}={log_level!r}")

    return AppConfig(engine=engine, dataset=dataset)


@dataclass
class PageRange:
    """
    Inclusive span of 1-based page numbers, open-ended when ``end`` is None.

    Example:
        >>> PageRange(start=2, end=5).to_page_numbers(10)
        [2, 3, 4, 5]
    """

    start: int
    end: Optional[int] = None

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"Pages are numbered from 1, got start={self.start}")
        if self.end is not None and self.end < self.start:
            raise ValueError(f"Page range {self.start}-{self.end} ends before it starts")

    def to_page_numbers(self, total_pages: int) -> List[int]:
        """Page numbers in the range that exist in a ``total_pages`` document."""
        last = total_pages if self.end is None else min(self.end, total_pages)
        return list(range(self.start, last + 1))

    @classmethod
    def all_pages(cls) -> 'PageRange':
        return cls(start=1, end=None)

    @classmethod
    def single_page(cls, page_num: int) -> 'PageRange':
        return cls(start=page_num, end=page_num)

    @classmethod
    def parse(cls, value: str) -> 'PageRange':
        """
        Parse ``"3"``, ``"2-5"`` or ``"4-"`` into a range.

        Raises:
            ValueError: on malformed input
        """
        value = value.strip()
        if '-' not in value:
            return cls.single_page(int(value))
        start, _, end = value.partition('-')
        return cls(start=int(start), end=int(end) if end.strip() else None)

    def __repr__(self) -> str:
        end = "" if self.end is None else self.end
        return f"PageRange({self.start}-{end})"
