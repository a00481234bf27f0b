"""
Dataset Builder

Turns court decision PDFs into dataset records. ``process_file`` handles one
document end to end (validation, extraction, normalization, record
assembly); ``process_files`` runs a batch concurrently in worker threads.

Per-document failures never escape as exceptions: they come back as
``ProcessingResult(success=False)`` carrying the error message and the
exception class name, so one broken file never aborts a batch.
"""

import asyncio
import logging
import math
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from dataset.records import assemble_record
from engine.config import AppConfig, PageRange, get_config
from extractors.text_extractor import extract_document_text
from models.dataset_types import CaseInfo, ProcessingResult
from utils.validation import (
    DatasetBuilderError,
    FilenameFormatError,
    PdfValidationError,
    ProcessingTimeoutError,
    MemoryLimitError,
    ResourceManager,
    validate_upload,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_TIMEOUT_SECONDS = 300

ProgressCallback = Callable[[int, int, ProcessingResult], None]


def _failure(filename: str, error: BaseException, warnings: Optional[List[str]] = None) -> ProcessingResult:
    return ProcessingResult(
        filename=filename,
        success=False,
        error=str(error),
        error_kind=type(error).__name__,
        warnings=warnings or [],
    )


def _validated_case_info(path: Path, config: AppConfig, processed_files: Iterable[str]) -> Tuple[CaseInfo, List[str]]:
    """
    Returns:
        (case_info, warnings)

    Raises:
        FileNotFoundError: file does not exist
        PdfValidationError: not a PDF or too large
        FilenameFormatError: case number or date missing from the filename
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    validation = validate_upload(path, config.engine.max_file_size_mb, processed_files)
    if validation.is_valid:
        return validation.case_info, validation.warnings

    message = "; ".join(validation.errors)
    case_info: Optional[CaseInfo] = validation.case_info
    if case_info is not None and not case_info.is_valid:
        raise FilenameFormatError(message)
    raise PdfValidationError(message)


def process_file(
    file_path: Union[str, Path],
    config: Optional[AppConfig] = None,
    processed_files: Iterable[str] = (),
    page_range: Optional[PageRange] = None
) -> ProcessingResult:
    """
    Build the dataset record for one PDF.

    Args:
        file_path: PDF named ``<case number>_<YYYYMMDD>[_*].pdf``
        config: Engine and dataset configuration (environment defaults when None)
        processed_files: Filenames already in the dataset; a match only warns
        page_range: Pages to extract (all when None)
    """
    path = Path(file_path)
    config = config or get_config()
    warnings: List[str] = []

    try:
        case_info, warnings = _validated_case_info(path, config, processed_files)
        for warning in warnings:
            logger.warning(f"{path.name}: {warning}")

        document = extract_document_text(
            path,
            page_range=page_range,
            engine_config=config.engine,
        )
        entry = assemble_record(case_info, document, source_filename=path.name, config=config.dataset)
    except (DatasetBuilderError, OSError) as e:
        logger.warning(f"{path.name}: {type(e).__name__}: {e}")
        return _failure(path.name, e, warnings)
    except Exception as e:
        logger.error(f"{path.name}: unexpected error: {e}", exc_info=True)
        return _failure(path.name, e, warnings)

    logger.info(f"Processed {path.name}: {len(entry.decision_text)} chars, {document.page_count} pages")
    return ProcessingResult(
        filename=path.name,
        success=True,
        entry=entry,
        text_length=len(entry.decision_text),
        page_count=document.page_count,
        warnings=warnings,
    )


async def process_files(
    file_paths: Sequence[Union[str, Path]],
    config: Optional[AppConfig] = None,
    processed_files: Iterable[str] = (),
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    on_progress: Optional[ProgressCallback] = None,
    max_memory_mb: Optional[int] = None
) -> List[ProcessingResult]:
    """
    Process a batch of PDFs concurrently.

    Each document is decoded in a worker thread, at most ``max_concurrency``
    at a time, and abandoned after ``timeout_seconds``. Results are returned
    in input order. ``on_progress(done, total, result)`` is called as each
    document finishes. Once process memory exceeds ``max_memory_mb``, the
    documents not yet started fail with ``MemoryLimitError``.

    Note: a timed-out worker thread cannot be killed; it finishes in the
    background and its result is discarded.
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    config = config or get_config()
    processed = frozenset(processed_files)
    total = len(file_paths)
    semaphore = asyncio.Semaphore(max_concurrency)
    done = 0

    with ResourceManager(max_memory_mb=max_memory_mb or math.inf, max_time_seconds=math.inf) as resources:

        async def run_one(file_path: Union[str, Path]) -> ProcessingResult:
            nonlocal done
            name = Path(file_path).name
            async with semaphore:
                try:
                    resources.check_limits()
                    result = await asyncio.wait_for(
                        asyncio.to_thread(process_file, file_path, config, processed),
                        timeout=timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.error(f"{name}: processing timed out after {timeout_seconds}s")
                    result = _failure(name, ProcessingTimeoutError(
                        f"Processing timed out after {timeout_seconds} seconds"
                    ))
                except MemoryLimitError as e:
                    logger.error(f"{name}: {e}")
                    result = _failure(name, e)

            done += 1
            if on_progress is not None:
                on_progress(done, total, result)
            return result

        results = await asyncio.gather(*(run_one(file_path) for file_path in file_paths))

    succeeded = sum(1 for result in results if result.success)
    logger.info(f"Batch complete: {succeeded}/{total} documents processed")
    return list(results)
