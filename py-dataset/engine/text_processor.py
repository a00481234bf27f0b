"""Text Processor for PDFEngine

Runs the pdfminer interpreter over a page with a StreamOrderDevice and hands
the resulting fragments to the layout reconstructor.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.psparser import PSException

from engine.base_processor import BaseProcessor
from engine.config import TextProcessorOptions
from models.dataset_types import PageText, TextFragment
from processors.layout_reconstructor import LayoutReconstructor, build_page
from processors.stream_order_device import StreamOrderDevice
from utils.validation import DecodeError

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class TextProcessor(BaseProcessor):
    """
    Stream-order text extraction and line reconstruction, one page at a time.
    """

    name = "text"

    def __init__(self, engine: 'PDFEngine', options: Optional[TextProcessorOptions] = None):
        super().__init__(engine, options or TextProcessorOptions())
        self.reconstructor = LayoutReconstructor(
            word_gap_ratio=self.options.word_gap_ratio,
            line_break_ratio=self.options.line_break_ratio,
            default_font_size=self.options.default_font_size,
            char_width_ratio=self.options.char_width_ratio,
        )

        self._resource_manager: Optional[PDFResourceManager] = None
        self._fragment_cache: Dict[int, List[TextFragment]] = {}

    def initialize(self) -> None:
        # Shared across pages so fonts are parsed once per document
        self._resource_manager = PDFResourceManager(caching=True)
        super().initialize()

    def cleanup(self) -> None:
        self._fragment_cache.clear()
        self._resource_manager = None
        super().cleanup()

    def extract_fragments(self, page_index: int) -> List[TextFragment]:
        """
        Positioned text fragments of one page in content-stream order.

        Args:
            page_index: 0-based page index

        Raises:
            DecodeError: If the page content cannot be interpreted
        """
        if page_index in self._fragment_cache:
            return self._fragment_cache[page_index]

        if not self.validate_state():
            raise RuntimeError("TextProcessor used outside an open engine")

        page_num = page_index + 1
        pdfminer_page = self.engine.get_pdfminer_page(page_index)

        device = StreamOrderDevice(
            self._resource_manager,
            page_num=page_num,
            skip_rotated_text=self.options.skip_rotated_text,
            skip_faux_bold=self.options.skip_faux_bold,
        )
        interpreter = PDFPageInterpreter(self._resource_manager, device)
        try:
            interpreter.process_page(pdfminer_page)
        except PSException as e:
            raise DecodeError(f"Failed to interpret page {page_num}: {e}") from e
        finally:
            device.close()

        logger.debug(f"Page {page_num}: Stream processing complete - {len(device.fragments)} fragments")
        self._fragment_cache[page_index] = device.fragments
        return device.fragments

    def reconstruct_page(self, page_index: int) -> List[str]:
        """Logical lines of one page."""
        return self.reconstructor.reconstruct(self.extract_fragments(page_index))

    def build_page(self, page_index: int) -> PageText:
        """Reconstructed page with its page marker and MediaBox height."""
        page = build_page(
            page_index + 1,
            self.extract_fragments(page_index),
            reconstructor=self.reconstructor,
            marker_format=self.options.page_marker_format,
        )
        page.height = self.engine.get_page_height(page_index)
        return page
