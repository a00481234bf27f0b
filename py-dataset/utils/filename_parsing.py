"""
Filename parsing for court decision PDFs.

Files are expected to be named ``<case number>_<YYYYMMDD>[_<anything>].pdf``.
"""

import logging
from pathlib import PurePath
from typing import Optional

from constants.dataset_keys import (
    DATE_TOKEN_LENGTH,
    FILENAME_PART_SEPARATOR,
    MAX_PLAUSIBLE_YEAR,
    MIN_CASE_NUMBER_LENGTH,
    MIN_PLAUSIBLE_YEAR,
)
from models.dataset_types import CaseInfo

logger = logging.getLogger(__name__)


def _is_date_token(token: str) -> bool:
    return len(token) == DATE_TOKEN_LENGTH and token.isascii() and token.isdigit()


def format_date_token(token: str) -> str:
    """``YYYYMMDD`` -> ``YYYY-MM-DD``"""
    return f"{token[0:4]}-{token[4:6]}-{token[6:8]}"


def extract_case_info(filename: str) -> CaseInfo:
    """
    Parse the case number and decision date out of a PDF filename.

    Never raises: problems are reported through ``errors`` (invalid) and
    ``warnings`` (valid but suspicious).
    """
    name = PurePath(filename).name
    stem = name.rsplit('.', 1)[0] if '.' in name else name
    parts = stem.split(FILENAME_PART_SEPARATOR)

    result = CaseInfo(raw_filename=filename)

    if len(parts) < 2:
        result.errors.append(
            "Not enough filename parts (expected format: CaseNumber_YYYYMMDD_*.pdf)"
        )
        logger.debug(f"Filename {filename!r}: not enough parts {parts}")
        return result

    case_number = parts[0].strip()
    result.case_number = case_number or None
    if len(case_number) < MIN_CASE_NUMBER_LENGTH:
        result.errors.append(f"Invalid case number: {case_number!r}")
        return result

    decision_date: Optional[str] = None
    if _is_date_token(parts[1]):
        decision_date = format_date_token(parts[1])
    else:
        # Some exports put a suffix before the date
        for token in parts[2:]:
            if _is_date_token(token):
                decision_date = format_date_token(token)
                break
        if decision_date is None:
            result.errors.append(f"Invalid date: {parts[1]!r} (expected YYYYMMDD)")
            return result
        result.warnings.append(f"Date {decision_date} found outside the second filename part")

    result.decision_date = decision_date

    year = int(decision_date[:4])
    if not MIN_PLAUSIBLE_YEAR <= year <= MAX_PLAUSIBLE_YEAR:
        result.warnings.append(f"Suspicious year in date: {year}")

    result.is_valid = True
    logger.debug(f"Filename {filename!r}: case={result.case_number} date={result.decision_date}")
    return result
