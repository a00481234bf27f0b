"""
Text Normalization Module

Conservative character- and whitespace-level cleanup of reconstructed
document text. Word boundaries are never re-derived here: the spacing between
words was decided from page geometry by the layout reconstructor and is left
exactly as produced. Only whitespace around sentence punctuation and runs of
blank lines are repaired.

The pipeline is ordered; each step assumes the previous ones already ran.
The result is idempotent: ``normalize_text(normalize_text(s)) == normalize_text(s)``.
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

# C0 controls except tab/newline/carriage return, DEL, C1 controls and the
# (invisible) soft hyphen
CONTROL_CHARS_REGEX = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\xad]")
LINE_ENDING_REGEX = re.compile(r"\r\n?")

# The ellipsis glyph is treated as punctuation so that its later expansion
# to three dots cannot create new spacing work on a second pass.
SENTENCE_PUNCTUATION = ".,;:!?…"

# Horizontal whitespace only: punctuation at the start of a line is not
# pulled up onto the previous line.
SPACE_BEFORE_PUNCTUATION_REGEX = re.compile(rf"[^\S\n]+(?=[{re.escape(SENTENCE_PUNCTUATION)}])")
MISSING_SPACE_AFTER_PUNCTUATION_REGEX = re.compile(rf"(\d?)([{re.escape(SENTENCE_PUNCTUATION)}]+)(?=([^\W_]))")

# Two or more blank (or whitespace-only) lines in a row
EXCESS_BLANK_LINES_REGEX = re.compile(r"\n(?:[^\S\n]*\n){2,}")

CHARACTER_REPLACEMENTS = {
    'ﬁ': 'fi',    # Latin small ligature fi
    'ﬂ': 'fl',    # Latin small ligature fl
    'ﬀ': 'ff',    # Latin small ligature ff
    'ﬃ': 'ffi',   # Latin small ligature ffi
    'ﬄ': 'ffl',   # Latin small ligature ffl
    '–': '-',     # En dash
    '—': '-',     # Em dash
    '«': '"',     # Left guillemet
    '»': '"',     # Right guillemet
    '“': '"',     # Left double quotation mark
    '”': '"',     # Right double quotation mark
    '„': '"',     # Double low-9 quotation mark
    '‘': "'",     # Left single quotation mark
    '’': "'",     # Right single quotation mark
    '‚': "'",     # Single low-9 quotation mark
    '′': "'",     # Prime
    '″': '"',     # Double prime
    '…': '...',   # Horizontal ellipsis
    '•': '-',     # Bullet
    '©': '(c)',   # Copyright sign
    '®': '(R)',   # Registered sign
    '™': '(TM)',  # Trade mark sign
    '\u00a0': ' ',  # Non-breaking space
}
_REPLACEMENT_TABLE = str.maketrans(CHARACTER_REPLACEMENTS)


def strip_control_characters(text: str) -> str:
    return CONTROL_CHARS_REGEX.sub('', text)


def normalize_line_endings(text: str) -> str:
    return LINE_ENDING_REGEX.sub('\n', text)


def remove_space_before_punctuation(text: str) -> str:
    """``"текст ,"`` -> ``"текст,"``"""
    return SPACE_BEFORE_PUNCTUATION_REGEX.sub('', text)


def _insert_space(match: re.Match) -> str:
    digit_before, punctuation, next_char = match.groups()
    # Decimal numbers, dates and times keep their separators: 12.03.2021, 10:30
    if digit_before and next_char.isdigit():
        return match.group(0)
    return f"{digit_before}{punctuation} "


def insert_space_after_punctuation(text: str) -> str:
    """``",далее"`` -> ``", далее"``"""
    return MISSING_SPACE_AFTER_PUNCTUATION_REGEX.sub(_insert_space, text)


def collapse_blank_lines(text: str) -> str:
    """At most one blank line between paragraphs."""
    return EXCESS_BLANK_LINES_REGEX.sub('\n\n', text)


def trim_lines(text: str) -> str:
    return '\n'.join(line.strip() for line in text.split('\n')).strip()


def replace_typographic_characters(text: str) -> str:
    return text.translate(_REPLACEMENT_TABLE)


def normalize_text(text: Optional[str]) -> str:
    """
    Clean reconstructed document text. Total: never raises, and empty or
    ``None`` input yields an empty string.
    """
    if not text:
        return ''

    text = strip_control_characters(text)
    text = normalize_line_endings(text)
    text = text.replace('\t', ' ')
    text = remove_space_before_punctuation(text)
    text = insert_space_after_punctuation(text)
    text = collapse_blank_lines(text)
    text = trim_lines(text)
    text = replace_typographic_characters(text)
    return text


normalize = normalize_text
