"""Stream Order Device for PDF Text Extraction

PDFMiner device that records text runs in content-stream (paint) order as
positioned ``TextFragment`` objects.

pdfminer's ``PDFTextDevice`` already walks Tj/TJ sequences and advances the
text position (char spacing, word spacing, TJ displacements). This device
hooks into ``render_char`` to collect glyphs, and cuts them into fragments
whenever the next glyph does not start where the previous one ended: a TJ
displacement, an explicit reposition or a new Tj. Whether such a cut is a
word boundary or just kerning is decided later, from geometry, by the layout
reconstructor.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pdfminer.pdfdevice import PDFTextDevice
from pdfminer.pdffont import PDFUnicodeNotDefined
from pdfminer.pdfinterp import PDFResourceManager
from pdfminer.utils import apply_matrix_pt

from models.dataset_types import TextFragment
from utils.pdf_transforms import is_rotated, vertical_scale

logger = logging.getLogger(__name__)

ROTATION_THRESHOLD_DEGREES = 1.0
FAUX_BOLD_POSITION_TOLERANCE = 0.5
# Fraction of the glyph height a glyph may drift from the previous glyph's end
# before a new fragment is started
RUN_CONTINUATION_RATIO = 0.05
COORDINATE_PRECISION = 3


@dataclass
class _RunBuffer:
    """Glyphs of the fragment currently being built"""
    x: float
    y: float
    x_end: float
    y_end: float
    height: float
    chars: List[str] = field(default_factory=list)

    def continues_at(self, x: float, y: float) -> bool:
        tolerance = max(self.height * RUN_CONTINUATION_RATIO, 0.01)
        return abs(x - self.x_end) <= tolerance and abs(y - self.y_end) <= tolerance

    def to_fragment(self) -> TextFragment:
        return TextFragment(
            text="".join(self.chars),
            x=round(self.x, COORDINATE_PRECISION),
            y=round(self.y, COORDINATE_PRECISION),
            width=round(self.x_end - self.x, COORDINATE_PRECISION),
            height=round(self.height, COORDINATE_PRECISION),
        )


class StreamOrderDevice(PDFTextDevice):
    """
    Text extraction device producing positioned fragments in stream order.

    One device handles one page: call ``process_page`` on an interpreter
    built with this device, then read ``fragments``.
    """

    def __init__(
        self,
        rsrcmgr: PDFResourceManager,
        page_num: int = 1,
        skip_rotated_text: bool = True,
        skip_faux_bold: bool = True
    ):
        """
        Args:
            rsrcmgr: PDF resource manager
            page_num: Page number (1-indexed), used for logging only
            skip_rotated_text: Drop glyphs whose baseline is rotated (stamps,
                margin notes, watermarks)
            skip_faux_bold: Drop a run that repeats the previous run's text at
                the same position (bold simulated by overprinting)
        """
        super().__init__(rsrcmgr)
        self.page_num = page_num
        self.skip_rotated_text = skip_rotated_text
        self.skip_faux_bold = skip_faux_bold

        self.fragments: List[TextFragment] = []
        self._run: Optional[_RunBuffer] = None
        self._last_emitted: Optional[TextFragment] = None
        self.undecodable_glyphs = 0
        self.rotated_glyphs = 0
        self.faux_bold_runs = 0

    def begin_page(self, page, ctm):
        logger.debug(f"Page {self.page_num}: begin_page")
        self.fragments = []
        self._run = None
        self._last_emitted = None

    def end_page(self, page):
        self._flush_run()
        logger.debug(
            f"Page {self.page_num}: {len(self.fragments)} fragments "
            f"(undecodable={self.undecodable_glyphs}, rotated={self.rotated_glyphs}, "
            f"faux_bold={self.faux_bold_runs})"
        )

    def render_string(self, textstate, seq, ncs, graphicstate):
        """Handle text rendering (Tj/TJ/'/\" operators)"""
        if textstate.font is None:
            logger.debug(f"Page {self.page_num}: text shown without a font, skipped")
            return
        super().render_string(textstate, seq, ncs, graphicstate)

    def render_char(self, matrix, font, fontsize, scaling, rise, cid, ncs, graphicstate) -> float:
        """Record one glyph and return its horizontal advance in text space."""
        adv = font.char_width(cid) * fontsize * scaling

        try:
            text = font.to_unichr(cid)
        except PDFUnicodeNotDefined:
            self.undecodable_glyphs += 1
            return adv
        if not text:
            return adv

        if self.skip_rotated_text and is_rotated(matrix, ROTATION_THRESHOLD_DEGREES):
            self.rotated_glyphs += 1
            self._flush_run()
            return adv

        x0, y0 = apply_matrix_pt(matrix, (0, rise))
        x1, y1 = apply_matrix_pt(matrix, (adv, rise))
        height = fontsize * vertical_scale(matrix)

        if self._run is not None and not self._run.continues_at(x0, y0):
            self._flush_run()
        if self._run is None:
            self._run = _RunBuffer(x=x0, y=y0, x_end=x0, y_end=y0, height=height)

        self._run.chars.append(text)
        self._run.x_end = x1
        self._run.y_end = y1
        return adv

    def _flush_run(self):
        run = self._run
        self._run = None
        if run is None or not run.chars:
            return

        fragment = run.to_fragment()
        if self.skip_faux_bold and self._is_overprint(fragment):
            self.faux_bold_runs += 1
            return

        self.fragments.append(fragment)
        self._last_emitted = fragment

    def _is_overprint(self, fragment: TextFragment) -> bool:
        last = self._last_emitted
        return (
            last is not None
            and last.text == fragment.text
            and abs(last.x - fragment.x) < FAUX_BOLD_POSITION_TOLERANCE
            and abs(last.y - fragment.y) < FAUX_BOLD_POSITION_TOLERANCE
        )
