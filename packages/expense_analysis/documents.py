"""Text extraction from uploaded bank-statement documents.

Supported formats, chosen by file extension:

- ``.pdf``: page text via pdfplumber, pages joined with newlines
- ``.docx``: paragraphs, then table rows with cells joined by `` | ``
- ``.csv``: header and rows re-emitted tab-separated
- ``.xlsx``: every worksheet's non-empty rows, tab-separated

The returned text is raw; :func:`expense_analysis.normalizers.normalize_text`
is applied later by the pipeline.
"""

from __future__ import annotations

import csv
from pathlib import Path

import pdfplumber
from docx import Document
from openpyxl import load_workbook

from .errors import UnsupportedDocument
from .logging_setup import get_logger

_logger = get_logger("expense_analysis.documents")

_MIME_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(_MIME_TYPES)

# Upload limit for a single statement.
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024


def mime_type_for(path: str | Path) -> str:
    """Return the MIME type for a supported document, else raise ``UnsupportedDocument``."""

    ext = Path(path).suffix.lower()
    try:
        return _MIME_TYPES[ext]
    except KeyError:
        raise UnsupportedDocument(
            f"unsupported document type {ext or '(none)'!r}; "
            f"expected one of {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        ) from None


def _pdf_text(path: Path) -> str:
    pages: list[str] = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text and text.strip():
                pages.append(text)
    if not pages:
        _logger.warning("documents:pdf_no_text path=%s (scanned image? OCR is not supported)", path)
    return "\n".join(pages)


def _docx_text(path: Path) -> str:
    doc = Document(str(path))
    blocks = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                blocks.append(" | ".join(cells))
    return "\n".join(blocks)


def _csv_text(path: Path) -> str:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        headers = list(reader.fieldnames or [])
        if not headers:
            return ""
        lines = ["\t".join(headers)]
        for row in reader:
            lines.append("\t".join(row.get(h) or "" for h in headers))
    return "\n".join(lines) + "\n"


def _xlsx_text(path: Path) -> str:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        lines: list[str] = []
        for ws in wb.worksheets:
            for row in ws.iter_rows(values_only=True):
                cells = ["" if v is None else str(v) for v in row]
                if any(c.strip() for c in cells):
                    lines.append("\t".join(cells).rstrip("\t"))
    finally:
        wb.close()
    return "\n".join(lines)


_EXTRACTORS = {
    ".pdf": _pdf_text,
    ".docx": _docx_text,
    ".csv": _csv_text,
    ".xlsx": _xlsx_text,
}


def extract_text(path: str | Path) -> str:
    """Extract raw text from the document at ``path``.

    Raises :class:`UnsupportedDocument` for unknown extensions and for files
    larger than ``MAX_DOCUMENT_BYTES``, and ``FileNotFoundError`` when the
    file does not exist.
    """

    p = Path(path)
    mime_type_for(p)
    if not p.is_file():
        raise FileNotFoundError(f"document not found: {p}")
    size = p.stat().st_size
    if size > MAX_DOCUMENT_BYTES:
        raise UnsupportedDocument(
            f"document is {size} bytes; the limit is {MAX_DOCUMENT_BYTES} bytes"
        )
    text = _EXTRACTORS[p.suffix.lower()](p)
    _logger.info("documents:extracted path=%s chars=%d", p.name, len(text))
    return text


__all__ = ["MAX_DOCUMENT_BYTES", "SUPPORTED_EXTENSIONS", "extract_text", "mime_type_for"]
