"""
Dataset Record Keys and Export Constants
"""

# Record Keys
KEY_CASE_NUMBER = "case_number"
KEY_DECISION_DATE = "decision_date"
KEY_DECISION_TEXT = "decision_text"
KEY_APPEALED = "appealed"
KEY_CANCELED = "canceled"
KEY_METADATA = "metadata"

# Metadata Keys
KEY_SOURCE = "source"
KEY_DOCUMENT_TYPE = "document_type"
KEY_LANGUAGE = "language"
KEY_CREATED_AT = "created_at"
KEY_UPDATED_AT = "updated_at"
KEY_SOURCE_FILENAME = "source_filename"

# Metadata Defaults
VAL_SOURCE = "arbitration_court"
VAL_DOCUMENT_TYPE = "court_decision"
VAL_LANGUAGE = "ru"

# Export File Names (inside the dataset archive)
FILE_DATASET_JSONL = "court_decisions_dataset.jsonl"
FILE_INSTRUCTION_JSONL = "instruction_dataset.jsonl"
FILE_STATISTICS_CSV = "dataset_statistics.csv"
FILE_README = "README.md"

# Export File Name Prefixes (standalone downloads, suffixed with a timestamp)
PREFIX_DATASET = "court_decisions"
PREFIX_INSTRUCTION = "instruction_dataset"
PREFIX_ARCHIVE = "court_dataset"

CSV_HEADERS = (KEY_CASE_NUMBER, KEY_DECISION_DATE, "text_length")

# Page marker prepended to every reconstructed page
PAGE_MARKER_FORMAT = "--- СТРАНИЦА {page_num} ---"

# Filename conventions: <case number>_<YYYYMMDD>[_anything].pdf
FILENAME_PART_SEPARATOR = "_"
MIN_CASE_NUMBER_LENGTH = 5
DATE_TOKEN_LENGTH = 8
MIN_PLAUSIBLE_YEAR = 2000
MAX_PLAUSIBLE_YEAR = 2030

PDF_SUFFIX = ".pdf"
ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
