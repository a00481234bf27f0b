"""
Dataset Session

In-memory working set of one dataset-building run: the records collected so
far, which source files they came from, and when the set last changed.
"""

import logging
import re
from typing import Iterable, List, Optional, Set

from constants.dataset_keys import ISO_DATE_PATTERN
from dataset.merge import merge_datasets, normalize_case_number
from dataset.records import apply_labels, create_instruction_entry
from engine.config import DatasetConfig
from models.dataset_types import (
    DatasetEntry,
    DatasetStats,
    InstructionEntry,
    MergeResult,
    ProcessingResult,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

_ISO_DATE_REGEX = re.compile(ISO_DATE_PATTERN)


class DatasetSession:
    """
    Records collected during a run.

    Nothing is persisted: export the entries before the session goes away.
    """

    def __init__(self, config: Optional[DatasetConfig] = None):
        self.config = config or DatasetConfig()
        self.entries: List[DatasetEntry] = []
        self.processed_files: Set[str] = set()
        self.last_updated: Optional[str] = None

    def __len__(self) -> int:
        return len(self.entries)

    def _touch(self) -> None:
        self.last_updated = utc_timestamp()

    def load_entries(self, entries: Iterable[DatasetEntry]) -> MergeResult:
        """
        Merge previously exported records into the session.

        Source filenames of all loaded records are marked processed, including
        records skipped as duplicates.
        """
        entries = list(entries)
        result = merge_datasets(self.entries, entries)
        self.entries = result.entries

        for entry in entries:
            if entry.metadata.source_filename:
                self.processed_files.add(entry.metadata.source_filename)

        self._touch()
        logger.info(f"Loaded {len(entries)} records ({result.added} new, {result.skipped} duplicates), "
                    f"{len(self.entries)} total")
        return result

    def add_result(self, result: ProcessingResult) -> bool:
        """
        Add the record of a successfully processed file.

        Returns:
            True if a record was added; False for failed results and
            duplicate case numbers
        """
        if not result.success or result.entry is None:
            return False

        merged = merge_datasets(self.entries, [result.entry])
        self.processed_files.add(result.filename)
        if not merged.added:
            logger.warning(f"{result.filename}: case {result.entry.case_number} already in dataset, skipped")
            return False

        self.entries = merged.entries
        self._touch()
        return True

    def set_labels(self, index: int, appealed: bool, canceled: bool) -> DatasetEntry:
        """
        Label the record at ``index``.

        Raises:
            IndexError: no record at ``index``
            LabelConsistencyError: canceled without appealed
        """
        if not 0 <= index < len(self.entries):
            raise IndexError(f"Record index {index} out of range (0-{len(self.entries) - 1})")

        entry = apply_labels(self.entries[index], appealed=appealed, canceled=canceled)
        self._touch()
        return entry

    def find_index(self, case_number: str) -> Optional[int]:
        """Index of the first record with this case number (dedup-normalized)."""
        key = normalize_case_number(case_number)
        for index, entry in enumerate(self.entries):
            if key is not None and normalize_case_number(entry.case_number) == key:
                return index
        return None

    def stats(self) -> DatasetStats:
        """Summary over current records; the date range only counts YYYY-MM-DD values."""
        dates = sorted(
            entry.decision_date for entry in self.entries
            if entry.decision_date and _ISO_DATE_REGEX.match(entry.decision_date)
        )
        return DatasetStats(
            records=len(self.entries),
            processed_files=len(self.processed_files),
            total_chars=sum(len(entry.decision_text or "") for entry in self.entries),
            date_from=dates[0] if dates else None,
            date_to=dates[-1] if dates else None,
        )

    def instruction_entries(self) -> List[InstructionEntry]:
        return [create_instruction_entry(entry, self.config) for entry in self.entries]

    def clear(self) -> None:
        self.entries = []
        self.processed_files = set()
        self._touch()
        logger.info("Dataset session cleared")
