"""
Pipeline exceptions, pre-flight checks for candidate PDF files and the
resource guard that a batch runs under.
"""

import os
import tempfile
import time
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union
import logging

import psutil

from constants.dataset_keys import PDF_SUFFIX
from models.dataset_types import FileValidation
from utils.filename_parsing import extract_case_info

logger = logging.getLogger(__name__)

MB = 1024 * 1024

VALIDATION_CONSTANTS = {
    'PDF_SIGNATURE': b'%PDF',
    'HEADER_BYTES': 8,
    'MAX_FILE_SIZE_MB': 50,
    'MAX_PROCESSING_TIME_SECONDS': 300,
    'MAX_MEMORY_USAGE_MB': 1000,
    'MIN_FREE_MEMORY_MB': 100,
    'KNOWN_PDF_VERSIONS': frozenset(['1.0', '1.1', '1.2', '1.3', '1.4', '1.5', '1.6', '1.7', '2.0']),
}

# (ok, error message); error is None when ok
CheckResult = Tuple[bool, Optional[str]]


class DatasetBuilderError(Exception):
    """Root of the pipeline's error hierarchy"""
    pass

class PdfValidationError(DatasetBuilderError):
    """Rejected before parsing: wrong signature, too large or bad configuration"""
    pass

class DecodeError(DatasetBuilderError):
    """PDF bytes could not be parsed into pages"""
    pass

class EncryptedDocumentError(DecodeError):
    """PDF is password protected and cannot be opened"""
    pass

class InsufficientContentError(DatasetBuilderError):
    """Normalized text is too short to be a usable record"""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(f"Text too short after cleaning: {length} chars (min: {minimum})")

class FilenameFormatError(DatasetBuilderError):
    """Case number / decision date could not be parsed from the filename"""
    pass

class LabelConsistencyError(DatasetBuilderError):
    """Requested labels violate 'canceled implies appealed'"""
    pass

class ProcessingTimeoutError(DatasetBuilderError):
    """Processing exceeded its time budget"""
    pass

class MemoryLimitError(DatasetBuilderError):
    """Process memory exceeded the configured limit"""
    pass


def _read_header(file_path: Union[str, Path]) -> Tuple[bytes, Optional[str]]:
    try:
        with open(file_path, 'rb') as stream:
            return stream.read(VALIDATION_CONSTANTS['HEADER_BYTES']), None
    except FileNotFoundError:
        return b'', f"File not found: {file_path}"
    except PermissionError:
        return b'', f"No read permission for {file_path}"
    except OSError as e:
        return b'', f"Cannot read {file_path}: {e}"


def validate_pdf_signature(file_path: Union[str, Path]) -> CheckResult:
    """
    Check the ``%PDF-x.y`` header. An unknown version is logged but accepted;
    pikepdf decides later whether the body parses.
    """
    header, error = _read_header(file_path)
    if error:
        return False, error

    signature = VALIDATION_CONSTANTS['PDF_SIGNATURE']
    if len(header) < len(signature):
        return False, f"Only {len(header)} bytes, not a PDF"
    if not header.startswith(signature):
        return False, f"Not a PDF: header starts with {header[:4]!r}"

    version = header[5:8].decode('ascii', errors='replace')
    if len(version) == 3 and version not in VALIDATION_CONSTANTS['KNOWN_PDF_VERSIONS']:
        logger.warning(f"{Path(file_path).name}: unknown PDF version {version}")

    return True, None


def validate_file_size(file_path: Union[str, Path], max_size_mb: Optional[float] = None) -> CheckResult:
    limit = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB'] if max_size_mb is None else max_size_mb

    try:
        size_mb = os.path.getsize(file_path) / MB
    except FileNotFoundError:
        return False, f"File not found: {file_path}"
    except OSError as e:
        return False, f"Cannot stat {file_path}: {e}"

    if size_mb > limit:
        return False, f"File too large: {size_mb:.1f}MB, limit is {limit}MB"
    return True, None


def validate_upload(
    file_path: Union[str, Path],
    max_size_mb: Optional[float] = None,
    processed_files: Iterable[str] = (),
) -> FileValidation:
    """
    Full pre-flight check of a candidate PDF.

    Checks run in order and stop at the first hard failure: PDF suffix,
    size limit, then filename format. A file that was already processed
    is still valid but carries a warning.
    """
    path = Path(file_path)
    validation = FileValidation(file_path=str(path))

    if path.suffix.lower() != PDF_SUFFIX:
        validation.errors.append("File is not a PDF")
        return validation

    size_ok, size_error = validate_file_size(path, max_size_mb)
    if not size_ok:
        validation.errors.append(size_error)
        return validation

    case_info = extract_case_info(path.name)
    validation.case_info = case_info
    if not case_info.is_valid:
        validation.errors.extend(case_info.errors)
        return validation
    validation.warnings.extend(case_info.warnings)

    if path.name in set(processed_files):
        validation.warnings.append("File was already processed")

    validation.is_valid = True
    return validation


def validate_processing_environment() -> CheckResult:
    """Require a minimum of free RAM and free space in the temp directory."""
    floor_mb = VALIDATION_CONSTANTS['MIN_FREE_MEMORY_MB']
    temp_dir = tempfile.gettempdir()
    try:
        free_ram_mb = psutil.virtual_memory().available / MB
        free_disk_mb = psutil.disk_usage(temp_dir).free / MB
    except OSError as e:
        return False, f"Cannot query system resources: {e}"

    if free_ram_mb < floor_mb:
        return False, f"Only {free_ram_mb:.0f}MB of memory free, {floor_mb}MB required"
    if free_disk_mb < floor_mb:
        return False, f"Only {free_disk_mb:.0f}MB free in {temp_dir}, {floor_mb}MB required"
    return True, None


class ResourceManager:
    """
    Time and memory budget for a batch. Workers call check_limits() before
    each document; the budget is measured from ``__enter__``.
    """

    def __init__(self, max_memory_mb: Optional[float] = None, max_time_seconds: Optional[float] = None):
        self.max_memory_mb = max_memory_mb or VALIDATION_CONSTANTS['MAX_MEMORY_USAGE_MB']
        self.max_time_seconds = max_time_seconds or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']
        self.start_time: Optional[float] = None
        self.start_memory: Optional[float] = None

    def __enter__(self) -> 'ResourceManager':
        self.start_time = time.monotonic()
        self.start_memory = self._rss_mb()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            grown = self._rss_mb() - (self.start_memory or 0.0)
            logger.info(f"Batch finished in {self.elapsed_seconds:.2f}s, RSS {grown:+.1f}MB")
        return False

    @property
    def elapsed_seconds(self) -> float:
        return 0.0 if self.start_time is None else time.monotonic() - self.start_time

    @staticmethod
    def _rss_mb() -> float:
        return psutil.Process().memory_info().rss / MB

    def check_limits(self) -> None:
        """
        Raises:
            ProcessingTimeoutError: the batch has run longer than max_time_seconds
            MemoryLimitError: process RSS is above max_memory_mb
        """
        if self.elapsed_seconds > self.max_time_seconds:
            raise ProcessingTimeoutError(
                f"Batch ran {self.elapsed_seconds:.1f}s, limit is {self.max_time_seconds}s"
            )

        rss = self._rss_mb()
        if rss > self.max_memory_mb:
            raise MemoryLimitError(f"Process uses {rss:.1f}MB, limit is {self.max_memory_mb}MB")


__all__ = [
    'DatasetBuilderError',
    'PdfValidationError',
    'DecodeError',
    'EncryptedDocumentError',
    'InsufficientContentError',
    'FilenameFormatError',
    'LabelConsistencyError',
    'ProcessingTimeoutError',
    'MemoryLimitError',
    'validate_pdf_signature',
    'validate_file_size',
    'validate_upload',
    'validate_processing_environment',
    'ResourceManager',
    'VALIDATION_CONSTANTS',
]
