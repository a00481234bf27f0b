"""Layout Reconstruction for Stream-Order Text Fragments

Turns the positioned text runs of one PDF page into logical lines of text.

PDF renderers often split a single visual word into several text-showing
operators (kerning, font substitution, subset switches). The gap between such
runs is close to zero or negative, while a real inter-word gap is roughly one
space width. Both line-break and word-join decisions are therefore made from
geometry, using thresholds scaled to the page's own average font size.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from constants.dataset_keys import PAGE_MARKER_FORMAT
from models.dataset_types import PageGeometry, PageText, TextFragment

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 12.0
WORD_GAP_RATIO = 0.2
LINE_BREAK_RATIO = 0.4
CHAR_WIDTH_RATIO = 0.6
PAGE_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class _LastPosition:
    """Origin and estimated right edge of the previously seen fragment."""
    x: float
    y: float
    x_end: float


def average_font_size(
    fragments: Iterable[TextFragment],
    default_font_size: float = DEFAULT_FONT_SIZE
) -> float:
    """Mean height over fragments that carry a usable height."""
    heights = [fragment.height for fragment in fragments if fragment.has_height]
    if not heights:
        return default_font_size
    return sum(heights) / len(heights)


def compute_page_geometry(
    fragments: Sequence[TextFragment],
    word_gap_ratio: float = WORD_GAP_RATIO,
    line_break_ratio: float = LINE_BREAK_RATIO,
    default_font_size: float = DEFAULT_FONT_SIZE
) -> PageGeometry:
    """Derive the per-page join/break thresholds."""
    font_size = average_font_size(fragments, default_font_size)
    return PageGeometry(
        average_font_size=font_size,
        word_gap_threshold=font_size * word_gap_ratio,
        line_break_threshold=font_size * line_break_ratio,
    )


def estimate_width(fragment: TextFragment, font_size: float, char_width_ratio: float = CHAR_WIDTH_RATIO) -> float:
    """Measured width when present, otherwise a text-length heuristic."""
    if fragment.has_width:
        return fragment.width
    return len(fragment.text) * font_size * char_width_ratio


def _needs_separator(current_line: List[str], text: str) -> bool:
    # Whitespace already present at the boundary counts as the separator
    if not current_line:
        return False
    return not (current_line[-1][-1:].isspace() or text[:1].isspace())


class LayoutReconstructor:
    """
    Geometric line/word reconstruction for a single page.

    Instances hold only the tuning ratios, so one reconstructor can be shared
    across threads; every call to ``reconstruct`` works on local state.
    """

    def __init__(
        self,
        word_gap_ratio: float = WORD_GAP_RATIO,
        line_break_ratio: float = LINE_BREAK_RATIO,
        default_font_size: float = DEFAULT_FONT_SIZE,
        char_width_ratio: float = CHAR_WIDTH_RATIO
    ):
        self.word_gap_ratio = word_gap_ratio
        self.line_break_ratio = line_break_ratio
        self.default_font_size = default_font_size
        self.char_width_ratio = char_width_ratio

    def geometry(self, fragments: Sequence[TextFragment]) -> PageGeometry:
        return compute_page_geometry(
            fragments,
            word_gap_ratio=self.word_gap_ratio,
            line_break_ratio=self.line_break_ratio,
            default_font_size=self.default_font_size,
        )

    def reconstruct(self, fragments: Sequence[TextFragment]) -> List[str]:
        """
        Reconstruct ordered logical lines from fragments in stream order.

        A new line starts when the baseline moves by more than the line-break
        threshold, or when the fragment starts left of the previous one (a
        carriage return on the same baseline). On the same line, a gap wider
        than the word-gap threshold inserts one space; smaller or negative
        gaps join the fragments into one word.

        Blank fragments contribute no characters and never move the last seen
        position or start a line. One sitting on the current baseline at or
        after the previous fragment's start marks a word boundary for the
        next fragment.
        """
        if not fragments:
            return []

        geometry = self.geometry(fragments)
        font_size = geometry.average_font_size

        lines: List[str] = []
        current_line: List[str] = []
        last: Optional[_LastPosition] = None
        pending_space = False

        for fragment in fragments:
            x = fragment.x
            y = fragment.y

            if fragment.is_blank:
                if (
                    current_line and last is not None
                    and abs(y - last.y) <= geometry.line_break_threshold and x >= last.x
                ):
                    pending_space = True
                continue

            x_end = x + estimate_width(fragment, font_size, self.char_width_ratio)
            starts_line = last is not None and (
                abs(y - last.y) > geometry.line_break_threshold or x < last.x
            )
            if starts_line:
                if current_line:
                    lines.append("".join(current_line))
                current_line = []
                pending_space = False

            text = fragment.text
            if current_line and last is not None:
                gap = x - last.x_end
                if (gap > geometry.word_gap_threshold or pending_space) and _needs_separator(current_line, text):
                    text = " " + text
            current_line.append(text)

            pending_space = False
            last = _LastPosition(x, y, x_end)

        if current_line:
            lines.append("".join(current_line))

        logger.debug(
            f"Reconstructed {len(lines)} lines from {len(fragments)} fragments "
            f"(font={font_size:.2f}, word_gap={geometry.word_gap_threshold:.2f}, "
            f"line_break={geometry.line_break_threshold:.2f})"
        )
        return lines


_default_reconstructor = LayoutReconstructor()


def reconstruct_page(fragments: Sequence[TextFragment]) -> List[str]:
    """Reconstruct logical lines of one page with the default thresholds."""
    return _default_reconstructor.reconstruct(fragments)


def build_page_text(page_num: int, lines: Sequence[str], marker_format: str = PAGE_MARKER_FORMAT) -> str:
    """Page marker followed by the page's lines, newline-joined."""
    marker = marker_format.format(page_num=page_num)
    return "\n".join([marker, *lines])


def join_pages(page_texts: Iterable[str]) -> str:
    """Join page texts with one blank line between pages."""
    return PAGE_SEPARATOR.join(page_texts)


def build_page(
    page_num: int,
    fragments: Sequence[TextFragment],
    reconstructor: Optional[LayoutReconstructor] = None,
    marker_format: str = PAGE_MARKER_FORMAT
) -> PageText:
    """Reconstruct one page and wrap it with its marker."""
    reconstructor = reconstructor or _default_reconstructor
    lines = reconstructor.reconstruct(fragments)
    return PageText(
        page_num=page_num,
        lines=lines,
        fragment_count=len(fragments),
        text=build_page_text(page_num, lines, marker_format),
    )
