"""
Dataset Record Assembly

Builds labeled court decision records from parsed filenames and extracted
document text, applies appeal labels, and derives instruction-tuning
entries from finished records.
"""

import logging
from typing import Optional

from engine.config import DatasetConfig
from models.dataset_types import (
    CaseInfo,
    DatasetEntry,
    DocumentText,
    EntryMetadata,
    InstructionEntry,
    utc_timestamp,
)
from processors.text_normalizer import normalize_text
from utils.validation import FilenameFormatError, InsufficientContentError, LabelConsistencyError

logger = logging.getLogger(__name__)

INSTRUCTION_TEMPLATE = "Проанализируй судебный акт по делу № {case_number} от {decision_date}"
OUTPUT_HEADER_TEMPLATE = "Судебное решение по делу {case_number} от {decision_date}."
OUTPUT_BODY_TEMPLATE = "Текст решения: {excerpt}..."

STATUS_CANCELED = "Решение обжаловано и отменено."
STATUS_APPEALED = "Решение обжаловано, не отменено."


def create_entry(
    case_number: Optional[str],
    decision_date: Optional[str],
    text: str,
    source_filename: Optional[str] = None,
    config: Optional[DatasetConfig] = None
) -> DatasetEntry:
    """New unlabeled record stamped with provenance metadata."""
    config = config or DatasetConfig()
    metadata = EntryMetadata(
        source=config.source,
        document_type=config.document_type,
        language=config.language,
        source_filename=source_filename,
    )
    return DatasetEntry(
        case_number=case_number,
        decision_date=decision_date,
        decision_text=text,
        metadata=metadata,
    )


def assemble_record(
    case_info: CaseInfo,
    document_text: DocumentText,
    source_filename: Optional[str] = None,
    config: Optional[DatasetConfig] = None
) -> DatasetEntry:
    """
    Normalize extracted text and wrap it into a dataset record.

    Raises:
        FilenameFormatError: case_info is not valid
        InsufficientContentError: normalized text is shorter than
            ``config.min_text_length``
    """
    config = config or DatasetConfig()

    if not case_info.is_valid:
        raise FilenameFormatError("; ".join(case_info.errors) or f"Unparseable filename: {case_info.raw_filename}")

    text = normalize_text(document_text.text)
    if len(text) < config.min_text_length:
        raise InsufficientContentError(len(text), config.min_text_length)

    logger.debug(
        f"Assembled record {case_info.case_number} ({case_info.decision_date}): "
        f"{len(document_text.text)} -> {len(text)} chars"
    )
    return create_entry(
        case_info.case_number,
        case_info.decision_date,
        text,
        source_filename=source_filename or case_info.raw_filename,
        config=config,
    )


def apply_labels(entry: DatasetEntry, appealed: bool, canceled: bool) -> DatasetEntry:
    """
    Set appeal labels in place and stamp ``metadata.updated_at``.

    A decision can only be canceled by a higher court after an appeal.

    Raises:
        LabelConsistencyError: canceled without appealed; the entry is left
            unchanged
    """
    if canceled and not appealed:
        raise LabelConsistencyError(
            f"Case {entry.case_number}: 'canceled' requires 'appealed'"
        )

    entry.appealed = appealed
    entry.canceled = canceled
    entry.metadata.updated_at = utc_timestamp()
    return entry


def _appeal_status(entry: DatasetEntry) -> Optional[str]:
    if entry.canceled:
        return STATUS_CANCELED
    if entry.appealed:
        return STATUS_APPEALED
    return None


def create_instruction_entry(entry: DatasetEntry, config: Optional[DatasetConfig] = None) -> InstructionEntry:
    """Instruction/input/output triple for fine-tuning on one record."""
    config = config or DatasetConfig()
    text = entry.decision_text or ""
    case_number = entry.case_number or ""
    decision_date = entry.decision_date or ""

    parts = [OUTPUT_HEADER_TEMPLATE.format(case_number=case_number, decision_date=decision_date)]
    status = _appeal_status(entry)
    if status:
        parts.append(status)
    parts.append(OUTPUT_BODY_TEMPLATE.format(excerpt=text[:config.instruction_output_chars]))

    return InstructionEntry(
        instruction=INSTRUCTION_TEMPLATE.format(case_number=case_number, decision_date=decision_date),
        input=text[:config.instruction_input_chars],
        output=" ".join(parts),
    )
