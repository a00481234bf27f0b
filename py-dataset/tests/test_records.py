"""
Tests for record assembly, appeal labels and instruction entries.
"""

import pytest

from dataset.records import (
    STATUS_APPEALED,
    STATUS_CANCELED,
    apply_labels,
    assemble_record,
    create_entry,
    create_instruction_entry,
)
from engine.config import DatasetConfig
from models.dataset_types import CaseInfo, DocumentText
from utils.validation import FilenameFormatError, InsufficientContentError, LabelConsistencyError

LONG_TEXT = "Арбитражный суд города Москвы , рассмотрев дело ,установил:иск удовлетворить. " * 3


def _case_info(**overrides) -> CaseInfo:
    values = dict(
        case_number="А40-12345-2023",
        decision_date="2023-04-15",
        raw_filename="А40-12345-2023_20230415.pdf",
        is_valid=True,
    )
    values.update(overrides)
    return CaseInfo(**values)


class TestCreateEntry:

    def test_defaults(self):
        entry = create_entry("А40-1/2023", "2023-01-02", "текст")
        assert entry.appealed is False
        assert entry.canceled is False
        assert entry.metadata.source == "arbitration_court"
        assert entry.metadata.document_type == "court_decision"
        assert entry.metadata.language == "ru"
        assert entry.metadata.created_at.endswith("Z")
        assert entry.metadata.updated_at is None

    def test_config_metadata(self):
        config = DatasetConfig(source="supreme_court", language="en")
        entry = create_entry("А40-1/2023", "2023-01-02", "текст", source_filename="f.pdf", config=config)
        assert entry.metadata.source == "supreme_court"
        assert entry.metadata.language == "en"
        assert entry.metadata.source_filename == "f.pdf"

    def test_record_omits_unset_metadata(self):
        record = create_entry("А40-1/2023", "2023-01-02", "текст").to_record()
        assert "updated_at" not in record["metadata"]
        assert "source_filename" not in record["metadata"]
        assert set(record) == {"case_number", "decision_date", "decision_text", "appealed", "canceled", "metadata"}


class TestAssembleRecord:

    def test_text_is_normalized(self):
        entry = assemble_record(_case_info(), DocumentText(text=LONG_TEXT))
        assert entry.case_number == "А40-12345-2023"
        assert entry.decision_date == "2023-04-15"
        assert "Москвы, рассмотрев дело, установил: иск" in entry.decision_text
        assert entry.decision_text == entry.decision_text.strip()
        assert entry.metadata.source_filename == "А40-12345-2023_20230415.pdf"

    def test_explicit_source_filename(self):
        entry = assemble_record(_case_info(), DocumentText(text=LONG_TEXT), source_filename="upload.pdf")
        assert entry.metadata.source_filename == "upload.pdf"

    def test_short_text_rejected(self):
        with pytest.raises(InsufficientContentError) as excinfo:
            assemble_record(_case_info(), DocumentText(text="   короткий   текст   "))
        assert excinfo.value.length == len("короткий   текст")
        assert excinfo.value.minimum == 100

    def test_minimum_from_config(self):
        entry = assemble_record(_case_info(), DocumentText(text="короткий"), config=DatasetConfig(min_text_length=5))
        assert entry.decision_text == "короткий"

    def test_invalid_case_info_rejected(self):
        info = _case_info(is_valid=False, errors=["Invalid date: 'x'"])
        with pytest.raises(FilenameFormatError, match="Invalid date"):
            assemble_record(info, DocumentText(text=LONG_TEXT))


class TestApplyLabels:

    @pytest.mark.parametrize("appealed, canceled", [(False, False), (True, False), (True, True)])
    def test_consistent_labels(self, entry_factory, appealed, canceled):
        entry = apply_labels(entry_factory("А40-1/2023"), appealed=appealed, canceled=canceled)
        assert (entry.appealed, entry.canceled) == (appealed, canceled)
        assert entry.metadata.updated_at is not None

    def test_canceled_requires_appealed(self, entry_factory):
        entry = entry_factory("А40-1/2023")
        with pytest.raises(LabelConsistencyError):
            apply_labels(entry, appealed=False, canceled=True)
        assert entry.canceled is False
        assert entry.metadata.updated_at is None


class TestInstructionEntry:

    def test_unlabeled(self, entry_factory):
        entry = entry_factory("А40-1/2023", "2023-01-02", text="Решение суда.")
        instruction = create_instruction_entry(entry)
        assert instruction.instruction == "Проанализируй судебный акт по делу № А40-1/2023 от 2023-01-02"
        assert instruction.input == "Решение суда."
        assert instruction.output == "Судебное решение по делу А40-1/2023 от 2023-01-02. Текст решения: Решение суда...."

    @pytest.mark.parametrize("appealed, canceled, status", [
        (True, False, STATUS_APPEALED),
        (True, True, STATUS_CANCELED),
    ])
    def test_status_in_output(self, entry_factory, appealed, canceled, status):
        entry = apply_labels(entry_factory("А40-1/2023"), appealed=appealed, canceled=canceled)
        output = create_instruction_entry(entry).output
        assert f"2023-04-15. {status} Текст решения:" in output

    def test_excerpts_truncated(self, entry_factory):
        entry = entry_factory("А40-1/2023", text="я" * 5000)
        instruction = create_instruction_entry(entry)
        assert len(instruction.input) == 2000
        assert instruction.output.endswith("я" * 3000 + "...")
        assert "я" * 3001 not in instruction.output

    def test_custom_excerpt_lengths(self, entry_factory):
        config = DatasetConfig(instruction_input_chars=10, instruction_output_chars=5)
        instruction = create_instruction_entry(entry_factory("А40-1/2023", text="0123456789abcdef"), config)
        assert instruction.input == "0123456789"
        assert instruction.output.endswith("Текст решения: 01234...")
