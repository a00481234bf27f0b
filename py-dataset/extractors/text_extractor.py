"""
PDF Text Extractor

Document-level text extraction: every selected page is decoded into
stream-order fragments, reconstructed into lines and prefixed with its page
marker, then pages are joined into one document string.

Uses PDFEngine + TextProcessor for all extraction operations. The returned
text is raw; normalization happens when a dataset record is assembled.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from engine.config import EngineConfig, PageRange, TextProcessorOptions
from engine.pdf_engine import PDFEngine
from models.dataset_types import DocumentText
from processors.layout_reconstructor import join_pages
from utils.validation import DatasetBuilderError, DecodeError

logger = logging.getLogger(__name__)


def extract_document_text(
    file_path: Union[str, Path],
    page_range: Optional[PageRange] = None,
    options: Optional[TextProcessorOptions] = None,
    engine_config: Optional[EngineConfig] = None
) -> DocumentText:
    """
    Extract reconstructed text of a PDF, page by page.

    Args:
        file_path: PDF file
        page_range: 1-based pages to extract (all pages when None)
        options: Layout reconstruction tuning; overrides the engine config's
            text options when given
        engine_config: Engine configuration (defaults when None)

    Raises:
        FileNotFoundError: file does not exist
        PdfValidationError: file failed pre-flight validation
        EncryptedDocumentError: PDF requires a password
        DecodeError: PDF could not be parsed
    """
    engine_config = engine_config or EngineConfig.default()
    if options is not None:
        engine_config = EngineConfig.from_dict({
            **engine_config.to_dict(),
            'text_processor_options': options.to_dict(),
        })

    pdf_engine = PDFEngine(file_path, config=engine_config)
    try:
        with pdf_engine as engine:
            text_processor = engine.text_processor
            page_indices = engine.page_indices(page_range)
            total_pages = engine.get_page_count()

            logger.debug(
                f"Extracting {Path(file_path).name}: {total_pages} total pages, "
                f"{len(page_indices)} selected"
            )

            pages = [text_processor.build_page(page_index) for page_index in page_indices]
    except DatasetBuilderError:
        raise
    except Exception as e:
        # pdfminer surfaces broken fonts and streams as assorted builtin errors
        logger.error(f"PDF extraction failed for {file_path}: {e}", exc_info=True)
        raise DecodeError(f"PDF extraction failed: {e}") from e

    document = DocumentText(
        text=join_pages(page.text for page in pages),
        pages=pages,
        page_count=total_pages,
        fragment_count=sum(page.fragment_count for page in pages),
    )
    logger.debug(
        f"Extraction complete: {len(pages)} pages, {document.fragment_count} fragments, "
        f"{len(document.text)} chars"
    )
    return document


def extract_text(file_path: Union[str, Path], page_range: Optional[PageRange] = None) -> str:
    """Raw reconstructed text of a PDF (page markers included)."""
    return extract_document_text(file_path, page_range=page_range).text
