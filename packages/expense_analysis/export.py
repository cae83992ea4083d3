"""CSV and Excel renderings of an :class:`AnalysisResult`."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Literal

from openpyxl import Workbook

from .models import AnalysisResult

type ExportFormat = Literal["csv", "xlsx"]

TRANSACTION_COLUMNS: tuple[str, ...] = (
    "Date",
    "Description",
    "Amount",
    "Category",
    "Subcategory",
    "Confidence",
)


def _transaction_rows(result: AnalysisResult) -> list[list[object]]:
    return [
        [t.date, t.description, t.amount, t.category, t.subcategory or "", t.confidence]
        for t in result.transactions
    ]


def to_csv(result: AnalysisResult) -> str:
    """One header row plus one row per transaction; fields quoted as needed."""

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(TRANSACTION_COLUMNS)
    writer.writerows(_transaction_rows(result))
    return buf.getvalue()


def to_xlsx(result: AnalysisResult) -> bytes:
    """Workbook with ``Transactions``, ``Summary`` and ``Category Analysis`` sheets.

    The summary sheet lists the totals, then the per-category counts, then the
    per-category amounts, each block separated by a blank row.
    """

    summary = result.summary
    wb = Workbook()

    ws = wb.active
    ws.title = "Transactions"
    ws.append(list(TRANSACTION_COLUMNS))
    for row in _transaction_rows(result):
        ws.append(row)

    ws = wb.create_sheet("Summary")
    ws.append(["Metric", "Value"])
    ws.append(["Total Transactions", summary.total_transactions])
    ws.append(["Categorized Transactions", summary.categorized_transactions])
    ws.append(["Total Amount", summary.total_amount])
    ws.append([])
    ws.append(["Category Breakdown", None])
    for category, count in summary.category_breakdown.items():
        ws.append([category, count])
    ws.append([])
    ws.append(["Category Amounts", None])
    for category, amount in summary.category_amounts.items():
        ws.append([category, amount])

    ws = wb.create_sheet("Category Analysis")
    ws.append(["Category", "Number of Transactions", "Total Amount"])
    for category, count in summary.category_breakdown.items():
        ws.append([category, count, summary.category_amounts.get(category, 0.0)])

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def write_export(result: AnalysisResult, path: str | Path, fmt: ExportFormat) -> Path:
    """Render ``result`` as ``fmt`` and write it to ``path``."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        p.write_text(to_csv(result), encoding="utf-8")
    elif fmt == "xlsx":
        p.write_bytes(to_xlsx(result))
    else:
        raise ValueError(f"unsupported export format: {fmt!r}")
    return p


__all__ = ["TRANSACTION_COLUMNS", "to_csv", "to_xlsx", "write_export"]
