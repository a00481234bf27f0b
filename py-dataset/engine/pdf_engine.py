"""
PDFEngine: owner of one opened court decision PDF.

pikepdf opens the file first; it detects password protection, counts pages
and reads MediaBox geometry. pdfminer.six parses the same file lazily, the
first time a processor asks for a page's content stream. Both handles are
released when the ``with`` block exits.

Usage:
    >>> from engine.pdf_engine import PDFEngine
    >>> with PDFEngine('A40-12345-2023_20230415.pdf') as engine:
    ...     lines = engine.text_processor.reconstruct_page(0)
"""

import logging
import os
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

import pikepdf
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfpage import PDFPage
from pdfminer.pdfparser import PDFParser
from pdfminer.psparser import PSException

from engine.base_processor import ProcessorRegistry
from engine.config import EngineConfig, PageRange
from engine.text_processor import TextProcessor
from utils.validation import (
    DecodeError,
    EncryptedDocumentError,
    PdfValidationError,
    validate_file_size,
    validate_pdf_signature,
)

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class PDFEngine:
    """
    Context manager holding the pikepdf and pdfminer views of one document,
    plus the processors that read it.
    """

    def __init__(self, file_path: Union[str, Path], config: Optional[EngineConfig] = None):
        """
        The document itself is opened in ``__enter__``.

        Raises:
            FileNotFoundError: no file at ``file_path``
            PdfValidationError: ``config`` does not validate
        """
        self.file_path = str(file_path)
        self.name = Path(self.file_path).name
        self.config = config or EngineConfig.default()

        if not os.path.exists(self.file_path):
            raise FileNotFoundError(f"PDF file not found: {self.file_path}")
        if not self.config.validate():
            raise PdfValidationError("Invalid engine configuration")

        self._pikepdf_doc: Optional[pikepdf.Pdf] = None
        self._miner_stream: Optional[BinaryIO] = None
        self._miner_pages: Optional[List[PDFPage]] = None
        self._processors = ProcessorRegistry()

        self._is_open = False
        self._page_count: Optional[int] = None
        self._file_size_mb: Optional[float] = None

    def __enter__(self) -> 'PDFEngine':
        """
        Raises:
            PdfValidationError: size or signature check failed
            EncryptedDocumentError: the document needs a password
            DecodeError: pikepdf could not open the document
        """
        if self.config.validate_on_open:
            self._preflight()

        try:
            self._pikepdf_doc = pikepdf.open(self.file_path)
        except pikepdf.PasswordError as e:
            self._release()
            raise EncryptedDocumentError(f"PDF is password protected: {self.name}") from e
        except (pikepdf.PdfError, OSError) as e:
            self._release()
            raise DecodeError(f"Failed to open PDF {self.name}: {e}") from e

        self._page_count = len(self._pikepdf_doc.pages)
        self._file_size_mb = os.path.getsize(self.file_path) / BYTES_PER_MB
        self._is_open = True

        options = self.config.text_options()
        if options.enabled:
            self._processors.register(TextProcessor(self, options))
        self._processors.initialize_all()

        logger.debug(f"Opened {self.name}: {self._page_count} pages, {self._file_size_mb:.2f} MB")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._release()
        if exc_type is not None:
            logger.debug(f"{self.name} closed after {exc_type.__name__}: {exc_val}")
        return False

    def _preflight(self) -> None:
        for ok, error in (
            validate_file_size(self.file_path, self.config.max_file_size_mb),
            validate_pdf_signature(self.file_path),
        ):
            if not ok:
                raise PdfValidationError(error)

    def _release(self) -> None:
        """Close both document handles and clean up processors. Idempotent."""
        self._processors.cleanup_all()

        if self._pikepdf_doc is not None:
            try:
                self._pikepdf_doc.close()
            except Exception as e:
                logger.warning(f"Error closing pikepdf document {self.name}: {e}")
            finally:
                self._pikepdf_doc = None

        if self._miner_stream is not None:
            try:
                self._miner_stream.close()
            except OSError as e:
                logger.warning(f"Error closing {self.name}: {e}")
            finally:
                self._miner_stream = None
        self._miner_pages = None

        self._is_open = False

    def _require_page(self, page_index: int) -> None:
        if not self._is_open:
            raise RuntimeError(f"{self.name} is not open; use PDFEngine as a context manager")
        if not 0 <= page_index < self._page_count:
            raise IndexError(f"Page index {page_index} out of bounds (0-{self._page_count - 1})")

    # Document

    @property
    def is_open(self) -> bool:
        return self._is_open

    def get_page_count(self) -> int:
        if not self._is_open:
            raise RuntimeError(f"{self.name} is not open; use PDFEngine as a context manager")
        return self._page_count

    def get_file_size_mb(self) -> float:
        if not self._is_open:
            raise RuntimeError(f"{self.name} is not open; use PDFEngine as a context manager")
        return self._file_size_mb

    def page_indices(self, page_range: Optional[PageRange] = None) -> List[int]:
        """0-based indices of the pages in ``page_range`` (every page when None)."""
        page_range = page_range or PageRange.all_pages()
        return [page_num - 1 for page_num in page_range.to_page_numbers(self.get_page_count())]

    def get_page_height(self, page_index: int) -> float:
        """MediaBox height of a page, in PDF units."""
        self._require_page(page_index)
        llx, lly, urx, ury = (float(value) for value in self._pikepdf_doc.pages[page_index].MediaBox)
        return ury - lly

    # Processor access

    def get_pdfminer_page(self, page_index: int) -> PDFPage:
        """
        pdfminer page for content stream interpretation. The whole page tree
        is parsed on first call and kept until the engine closes.

        Raises:
            DecodeError: pdfminer cannot parse the document, or finds fewer
                pages than pikepdf
        """
        self._require_page(page_index)

        if self._miner_pages is None:
            try:
                self._miner_stream = open(self.file_path, 'rb')
                document = PDFDocument(PDFParser(self._miner_stream))
                self._miner_pages = list(PDFPage.create_pages(document))
            except PSException as e:
                raise DecodeError(f"Failed to parse PDF content of {self.name}: {e}") from e

        if page_index >= len(self._miner_pages):
            raise DecodeError(
                f"Page tree mismatch in {self.name}: page {page_index + 1} missing "
                f"({len(self._miner_pages)} pages parsed)"
            )
        return self._miner_pages[page_index]

    @property
    def text_processor(self) -> TextProcessor:
        processor = self._processors.get(TextProcessor.name)
        if processor is None:
            raise RuntimeError("Text processor is disabled in this engine's configuration")
        return processor

    def __repr__(self) -> str:
        state = "open" if self._is_open else "closed"
        pages = f"{self._page_count} pages" if self._page_count is not None else "not loaded"
        processors = ",".join(self._processors.processor_names) or "none"
        return f"PDFEngine({self.name}, {state}, {pages}, processors={processors})"
