"""
Shared fixtures: synthetic court decision PDFs built with pikepdf.

Pages use the standard Helvetica font with WinAnsiEncoding, so pdfminer can
measure glyph widths without an embedded font program.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pikepdf
import pytest

from models.dataset_types import DatasetEntry, EntryMetadata, TextFragment

PAGE_SIZE = (595, 842)

DECISION_LINES = [
    "Arbitration court of the city of Moscow",
    "The court, having considered case A40-12345/2023,",
    "held that the claim of the plaintiff is satisfied in full.",
    "The decision may be appealed within one month.",
]


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def lines_stream(lines: Sequence[str], x: float = 72, y: float = 760, leading: float = 16, size: float = 12) -> bytes:
    """Content stream drawing one Tj per line, moving down by ``leading``."""
    ops = [f"BT /F1 {size} Tf {x} {y} Td"]
    for index, line in enumerate(lines):
        if index:
            ops.append(f"0 -{leading} Td")
        ops.append(f"({_escape(line)}) Tj")
    ops.append("ET")
    return "\n".join(ops).encode("latin-1")


def build_pdf(path: Path, page_streams: Sequence[bytes], user_password: Optional[str] = None) -> Path:
    pdf = pikepdf.new()
    font = pdf.make_indirect(pikepdf.Dictionary(
        Type=pikepdf.Name.Font,
        Subtype=pikepdf.Name.Type1,
        BaseFont=pikepdf.Name.Helvetica,
        Encoding=pikepdf.Name.WinAnsiEncoding,
    ))
    for content in page_streams:
        page = pikepdf.Dictionary(
            Type=pikepdf.Name.Page,
            MediaBox=[0, 0, *PAGE_SIZE],
            Resources=pikepdf.Dictionary(Font=pikepdf.Dictionary(F1=font)),
            Contents=pdf.make_stream(content),
        )
        pdf.pages.append(pikepdf.Page(pdf.make_indirect(page)))

    if user_password is not None:
        pdf.save(path, encryption=pikepdf.Encryption(user=user_password, owner=user_password + "-owner"))
    else:
        pdf.save(path)
    pdf.close()
    return path


@pytest.fixture
def make_pdf(tmp_path) -> Callable[..., Path]:
    """Factory: ``make_pdf(name, [stream, ...], user_password=None)``."""
    def _make(name: str, page_streams: Sequence[bytes], user_password: Optional[str] = None) -> Path:
        return build_pdf(tmp_path / name, page_streams, user_password)
    return _make


@pytest.fixture
def decision_pdf(make_pdf) -> Path:
    """Two-page decision with a well-formed filename."""
    return make_pdf(
        "A40-12345-2023_20230415.pdf",
        [lines_stream(DECISION_LINES), lines_stream(["Judge: Ivanov I.I."])],
    )


@pytest.fixture
def encrypted_pdf(make_pdf) -> Path:
    return make_pdf("A40-99999-2023_20230501.pdf", [lines_stream(DECISION_LINES)], user_password="secret")


@pytest.fixture
def fragment() -> Callable[..., TextFragment]:
    """Shorthand constructor: ``fragment("text", x, y, width=None, height=12)``."""
    def _fragment(text: str, x: float, y: float = 100.0, width: Optional[float] = None,
                  height: Optional[float] = 12.0) -> TextFragment:
        return TextFragment(text=text, x=x, y=y, width=width, height=height)
    return _fragment


def make_entry(case_number: Optional[str], decision_date: Optional[str] = "2023-04-15",
               text: str = "Текст решения " * 10, source_filename: Optional[str] = None) -> DatasetEntry:
    return DatasetEntry(
        case_number=case_number,
        decision_date=decision_date,
        decision_text=text,
        metadata=EntryMetadata(source_filename=source_filename),
    )


@pytest.fixture
def entries() -> List[DatasetEntry]:
    return [
        make_entry("А40-12345/2023", "2023-04-15", source_filename="А40-12345-2023_20230415.pdf"),
        make_entry("А41-555/2022", "2022-11-02", source_filename="А41-555-2022_20221102.pdf"),
        make_entry("А40-777/2024", "2024-01-20"),
    ]


@pytest.fixture
def entry_factory() -> Callable[..., DatasetEntry]:
    return make_entry
