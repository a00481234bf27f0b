"""
Dataset Archive Export

CSV statistics, a README describing the dataset, and a ZIP bundle holding the
dataset, optional instruction data, statistics and README.
"""

import csv
import io
import json
import logging
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from constants.dataset_keys import (
    CSV_HEADERS,
    FILE_DATASET_JSONL,
    FILE_INSTRUCTION_JSONL,
    FILE_README,
    FILE_STATISTICS_CSV,
    KEY_APPEALED,
    KEY_CANCELED,
    KEY_CASE_NUMBER,
    KEY_CREATED_AT,
    KEY_DECISION_DATE,
    KEY_DECISION_TEXT,
    KEY_DOCUMENT_TYPE,
    KEY_LANGUAGE,
    KEY_METADATA,
    KEY_SOURCE,
    KEY_SOURCE_FILENAME,
    KEY_UPDATED_AT,
    VAL_DOCUMENT_TYPE,
    VAL_LANGUAGE,
    VAL_SOURCE,
)
from exporters.jsonl_handler import to_jsonl
from models.dataset_types import DatasetEntry, InstructionEntry

logger = logging.getLogger(__name__)


def export_timestamp(moment: Optional[datetime] = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. ``2024-03-05-14-30-00``."""
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%d-%H-%M-%S")


def generate_csv(entries: Iterable[DatasetEntry]) -> str:
    """Per-record statistics: case number, decision date and text length."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        writer.writerow([
            entry.case_number or "",
            entry.decision_date or "",
            len(entry.decision_text or ""),
        ])
    return buffer.getvalue()


# Record layout shown in the README
RECORD_FORMAT_SAMPLE = {
    KEY_CASE_NUMBER: "Номер дела",
    KEY_DECISION_DATE: "Дата решения (YYYY-MM-DD)",
    KEY_DECISION_TEXT: "Текст решения",
    KEY_APPEALED: False,
    KEY_CANCELED: False,
    KEY_METADATA: {
        KEY_SOURCE: VAL_SOURCE,
        KEY_DOCUMENT_TYPE: VAL_DOCUMENT_TYPE,
        KEY_LANGUAGE: VAL_LANGUAGE,
        KEY_CREATED_AT: "ISO-8601 timestamp",
        KEY_UPDATED_AT: "ISO-8601 timestamp (после разметки)",
        KEY_SOURCE_FILENAME: "Имя исходного PDF",
    },
}

README_TEMPLATE = """# Датасет судебных актов арбитражных судов

## Описание
Датасет содержит тексты судебных решений арбитражных судов России.

## Структура файлов
- `{dataset_file}` - Основной датасет
- `{instruction_file}` - Инструктивный датасет для Fine-tuning
- `{statistics_file}` - Статистика в таблице
- `{readme_file}` - Этот файл

## Формат записей (JSONL)
```json
{record_format}
```

## Статистика
- Всего записей: {record_count}
- Обжаловано: {appealed_count}
- Отменено: {canceled_count}
- Дата создания: {timestamp}

## Назначение
- Обучение LoRA-адаптеров для юридических LLM
- Fine-tuning моделей для анализа судебных решений
- Создание инструктивных датасетов

## Лицензия
Данные предназначены для исследовательских целей.
"""


def generate_readme(entries: Sequence[DatasetEntry], timestamp: Optional[str] = None) -> str:
    return README_TEMPLATE.format(
        dataset_file=FILE_DATASET_JSONL,
        instruction_file=FILE_INSTRUCTION_JSONL,
        statistics_file=FILE_STATISTICS_CSV,
        readme_file=FILE_README,
        record_format=json.dumps(RECORD_FORMAT_SAMPLE, ensure_ascii=False, indent=2),
        record_count=len(entries),
        appealed_count=sum(1 for entry in entries if entry.appealed),
        canceled_count=sum(1 for entry in entries if entry.canceled),
        timestamp=timestamp or export_timestamp(),
    )


def create_zip_archive(
    path: Union[str, Path],
    entries: Sequence[DatasetEntry],
    instruction_entries: Optional[Sequence[InstructionEntry]] = None,
    timestamp: Optional[str] = None
) -> Path:
    """
    Write the dataset bundle.

    The statistics CSV is only included for a non-empty dataset and the
    instruction file only when instruction entries are given.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(FILE_DATASET_JSONL, to_jsonl(entries))
        if instruction_entries:
            archive.writestr(FILE_INSTRUCTION_JSONL, to_jsonl(instruction_entries))
        if entries:
            archive.writestr(FILE_STATISTICS_CSV, generate_csv(entries))
        archive.writestr(FILE_README, generate_readme(entries, timestamp))

    logger.debug(f"Wrote archive {path} ({len(entries)} records)")
    return path
