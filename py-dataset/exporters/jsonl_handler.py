"""
JSONL / JSON Dataset Serialization

Line-delimited JSON is the dataset's interchange format: exactly one compact
JSON object per line. Readers are lenient (blank lines, stray non-object
lines and malformed records are skipped with a log message); writers are
strict.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from pydantic import BaseModel, ValidationError

from models.dataset_types import DatasetEntry

logger = logging.getLogger(__name__)

JSONL_SUFFIX = ".jsonl"
JSON_SUFFIX = ".json"
LOG_PREVIEW_CHARS = 100

Record = Union[BaseModel, Dict[str, Any]]


def _as_dict(record: Record) -> Dict[str, Any]:
    if isinstance(record, DatasetEntry):
        return record.to_record()
    if isinstance(record, BaseModel):
        return record.model_dump()
    return record


def to_jsonl(records: Iterable[Record]) -> str:
    """One compact JSON object per line, each line newline-terminated."""
    return "".join(
        json.dumps(_as_dict(record), ensure_ascii=False, separators=(",", ":")) + "\n"
        for record in records
    )


def from_jsonl(text: str) -> List[Dict[str, Any]]:
    """Parse JSONL into plain dicts, skipping lines that are not JSON objects."""
    records: List[Dict[str, Any]] = []
    # split on "\n" only: U+2028, U+2029 and U+0085 are legal unescaped inside JSON strings
    for line_number, line in enumerate(text.split("\n"), start=1):
        line = line.strip()
        if not line or not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping malformed JSONL line {line_number}: {e} ({line[:LOG_PREVIEW_CHARS]!r})")
            continue
        if isinstance(record, dict):
            records.append(record)
    return records


def from_json(text: str) -> List[Dict[str, Any]]:
    """Parse a JSON array of objects, or a single object, into a list."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON dataset: {e}")
        return []

    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]

    logger.error(f"Unexpected JSON dataset root: {type(data).__name__}")
    return []


def parse_dataset_text(text: str, suffix: str = "") -> List[Dict[str, Any]]:
    """Dispatch on file suffix, falling back to sniffing the first character."""
    suffix = suffix.lower()
    if suffix == JSONL_SUFFIX:
        return from_jsonl(text)
    if suffix == JSON_SUFFIX:
        return from_json(text)

    stripped = text.lstrip()
    if stripped.startswith("["):
        return from_json(text)
    return from_jsonl(text)


def records_to_entries(records: Iterable[Dict[str, Any]]) -> List[DatasetEntry]:
    """Validate raw records as dataset entries; invalid records are logged and dropped."""
    entries: List[DatasetEntry] = []
    for index, record in enumerate(records):
        try:
            entries.append(DatasetEntry.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping invalid record #{index}: {e.error_count()} validation errors")
    return entries


def load_dataset_file(path: Union[str, Path]) -> List[DatasetEntry]:
    """
    Load a JSONL or JSON dataset file.

    Raises:
        OSError: file cannot be read
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig")
    entries = records_to_entries(parse_dataset_text(text, path.suffix))
    logger.debug(f"Loaded {len(entries)} records from {path}")
    return entries


def write_jsonl(path: Union[str, Path], records: Iterable[Record]) -> Path:
    """Write records as JSONL, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_jsonl(records), encoding="utf-8")
    logger.debug(f"Wrote {path}")
    return path
