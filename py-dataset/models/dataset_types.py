"""
Pydantic models for the court decision dataset builder.

Covers the three stages of the pipeline: positioned text fragments coming out
of the PDF content stream, reconstructed page/document text, and the dataset
records that are exported as line-delimited JSON.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from constants.dataset_keys import VAL_DOCUMENT_TYPE, VAL_LANGUAGE, VAL_SOURCE


def utc_timestamp() -> str:
    """ISO-8601 timestamp in UTC with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# Layout models

class TextFragment(BaseModel):
    """One positioned text run as emitted by a PDF content stream"""
    model_config = ConfigDict(frozen=True)

    text: str
    x: float = Field(..., description="Baseline origin X in page space")
    y: float = Field(..., description="Baseline origin Y in page space")
    width: Optional[float] = Field(None, description="Rendered width, estimated when absent")
    height: Optional[float] = Field(None, description="Glyph height / font size proxy")

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def has_width(self) -> bool:
        return self.width is not None and self.width > 0

    @property
    def has_height(self) -> bool:
        return self.height is not None and self.height > 0


class PageGeometry(BaseModel):
    """Per-page thresholds derived from the page's average font size"""
    average_font_size: float
    word_gap_threshold: float
    line_break_threshold: float


class PageText(BaseModel):
    """Reconstructed lines of a single page"""
    page_num: int
    lines: List[str] = Field(default_factory=list)
    fragment_count: int = 0
    text: str = ""
    height: Optional[float] = Field(None, description="MediaBox height in PDF units")


class DocumentText(BaseModel):
    """Full-document text assembled from page texts"""
    text: str
    pages: List[PageText] = Field(default_factory=list)
    page_count: int = 0
    fragment_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not any(page.lines for page in self.pages)


# Filename / validation models

class CaseInfo(BaseModel):
    """Case identifier and decision date parsed from a PDF filename"""
    case_number: Optional[str] = None
    decision_date: Optional[str] = None
    raw_filename: str
    is_valid: bool = False
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class FileValidation(BaseModel):
    """Outcome of validating a candidate PDF before processing"""
    file_path: str
    is_valid: bool = False
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    case_info: Optional[CaseInfo] = None


# Dataset record models

class EntryMetadata(BaseModel):
    """Provenance block stored with every dataset record"""
    model_config = ConfigDict(extra="allow")

    source: str = VAL_SOURCE
    document_type: str = VAL_DOCUMENT_TYPE
    language: str = VAL_LANGUAGE
    created_at: str = Field(default_factory=utc_timestamp)
    updated_at: Optional[str] = None
    source_filename: Optional[str] = None


class DatasetEntry(BaseModel):
    """One labeled court decision record (one JSONL line)"""
    model_config = ConfigDict(extra="allow")

    case_number: Optional[str] = None
    decision_date: Optional[str] = None
    decision_text: str = ""
    appealed: bool = False
    canceled: bool = False
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)

    def to_record(self) -> Dict[str, Any]:
        """Plain dict for serialization; unset optional metadata is omitted."""
        return self.model_dump(exclude_none=True)


class InstructionEntry(BaseModel):
    """Instruction-tuning triple derived from a dataset record"""
    instruction: str
    input: str
    output: str

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump()


# Processing result models

class ProcessingResult(BaseModel):
    """Per-document outcome of the PDF-to-record pipeline"""
    filename: str
    success: bool
    entry: Optional[DatasetEntry] = None
    text_length: int = 0
    page_count: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class DatasetStats(BaseModel):
    """Summary statistics over the current working set"""
    records: int = 0
    processed_files: int = 0
    total_chars: int = 0
    date_from: Optional[str] = None
    date_to: Optional[str] = None


class MergeResult(BaseModel):
    """Outcome of merging a batch of entries into an existing dataset"""
    entries: List[DatasetEntry] = Field(default_factory=list)
    added: int = 0
    skipped: int = 0
