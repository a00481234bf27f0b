"""
Dataset merging with case-number deduplication.
"""

import logging
import re
from typing import Iterable, List, Optional, Set

from models.dataset_types import DatasetEntry, MergeResult

logger = logging.getLogger(__name__)

_WHITESPACE_REGEX = re.compile(r"\s+")


def normalize_case_number(value: Optional[str]) -> Optional[str]:
    """
    Dedup key for a case number: whitespace removed, upper-cased.

    ``" а40-12345 /2023"`` and ``"А40-12345/2023"`` share a key. Returns None
    for missing or blank values.
    """
    if value is None:
        return None
    key = _WHITESPACE_REGEX.sub('', value).upper()
    return key or None


def merge_datasets(existing: Iterable[DatasetEntry], new: Iterable[DatasetEntry]) -> MergeResult:
    """
    Append ``new`` entries to ``existing``, skipping known case numbers.

    Order is preserved. Entries without a case number cannot be deduplicated
    and are always appended. Duplicates within ``new`` itself are skipped too.
    """
    merged: List[DatasetEntry] = list(existing)
    seen: Set[str] = {
        key for key in (normalize_case_number(entry.case_number) for entry in merged) if key
    }

    added = 0
    skipped = 0
    for entry in new:
        key = normalize_case_number(entry.case_number)
        if key is not None and key in seen:
            skipped += 1
            logger.debug(f"Skipping duplicate case {entry.case_number!r}")
            continue
        merged.append(entry)
        added += 1
        if key is not None:
            seen.add(key)

    logger.debug(f"Merged datasets: {added} added, {skipped} duplicates skipped, {len(merged)} total")
    return MergeResult(entries=merged, added=added, skipped=skipped)
