# ruff: noqa: I001
"""CLI for the ``expense_analysis`` package.

Command handlers (``cmd_*``) hold the logic and return process exit codes;
the Typer commands below are thin wrappers. Environment variables (model API
keys, ``DATABASE_URL``, ``EA_*`` settings) are loaded from a local ``.env``
using ``python-dotenv`` before any command runs.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from . import config
from .errors import (
    ConcurrentUpdateError,
    InvalidTransactionIndex,
    ResultNotFound,
    UnsupportedDocument,
)
from .logging_setup import configure_logging, get_logger
from .models import AnalysisResult
from .taxonomy import CATEGORIES, TAXONOMY, TAXONOMY_VERSION, UNKNOWN

_logger = get_logger("expense_analysis.cli")


class ExportFormat(str, Enum):
    csv = "csv"
    xlsx = "xlsx"


def _money(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}£{abs(amount):,.2f}"


def _echo_summary(result: AnalysisResult) -> None:
    s = result.summary
    typer.echo(
        f"  transactions={s.total_transactions} categorized={s.categorized_transactions} "
        f"total={_money(s.total_amount)}"
    )
    for category, count in s.category_breakdown.items():
        typer.echo(f"  {category}: {count} ({_money(s.category_amounts[category])})")


def _analyze_one(path: Path, *, fallback: bool) -> AnalysisResult:
    # Local imports keep `categories`/`show` free of document and SDK imports.
    from .api import analyze, fallback_analyze
    from .documents import extract_text

    text = extract_text(path)
    return fallback_analyze(text) if fallback else analyze(text)


# ---- Command handlers ---------------------------------------------------------


def cmd_analyze(
    paths: list[Path],
    *,
    fallback: bool = False,
    save: bool = True,
    database_url: str | None = None,
) -> int:
    """Analyze each document, persist results and print a per-document summary.

    Documents are processed concurrently (``EA_MAX_WORKERS``). A document that
    cannot be read is reported on stderr and the others still complete; the
    exit status is then ``1``.
    """

    from .storage import new_document_id, open_store

    if not paths:
        typer.echo("Error: no documents given.", err=True)
        return 1

    store = open_store(database_url) if save else None
    workers = config.max_workers(len(paths))
    _logger.info("cli:analyze documents=%d workers=%d", len(paths), workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ea-doc") as pool:
        futures = [(p, pool.submit(_analyze_one, p, fallback=fallback)) for p in paths]

    exit_code = 0
    for path, future in futures:
        try:
            result = future.result()
        except FileNotFoundError:
            typer.echo(f"Error: File not found: {path}", err=True)
            exit_code = 1
            continue
        except UnsupportedDocument as e:
            typer.echo(f"Error: {path}: {e}", err=True)
            exit_code = 1
            continue
        except Exception as e:  # noqa: BLE001 - report and continue with other documents
            typer.echo(f"Error: failed to read '{path}': {e}", err=True)
            exit_code = 1
            continue

        document_id = "-"
        if store is not None:
            document_id = new_document_id()
            try:
                store.save(document_id, result)
            except Exception as e:  # noqa: BLE001
                typer.echo(f"Error: failed to save result for '{path}': {e}", err=True)
                exit_code = 1
                continue

        typer.echo(f"{document_id}\t{path}\tsource={result.source}")
        _echo_summary(result)
        if result.source == "demo":
            typer.echo(
                f"Warning: no transactions found in '{path}'; showing demonstration rows.",
                err=True,
            )
    return exit_code


def cmd_show(document_id: str, *, as_json: bool = False, database_url: str | None = None) -> int:
    """Print a stored result: one tab-separated line per transaction, then the summary."""

    import json

    from .storage import open_store

    try:
        result = open_store(database_url).load(document_id)
    except (ResultNotFound, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        return 1

    if as_json:
        typer.echo(json.dumps(result.to_json_dict(), indent=2, ensure_ascii=False))
        return 0

    for i, t in enumerate(result.transactions):
        typer.echo(
            f"{i}\t{t.date}\t{t.description}\t{t.amount:.2f}\t{t.category}"
            f"\t{t.subcategory or ''}\t{t.confidence}"
        )
    typer.echo(f"source={result.source}")
    _echo_summary(result)
    return 0


def cmd_correct(
    document_id: str,
    index: int,
    *,
    category: str | None = None,
    subcategory: str | None = None,
    database_url: str | None = None,
) -> int:
    """Re-categorize one stored transaction; prompts when ``category`` is omitted."""

    from .storage import open_store

    store = open_store(database_url)
    try:
        if category is None:
            from .term_ui import select_category

            current = store.load(document_id)
            if not 0 <= index < len(current.transactions):
                raise InvalidTransactionIndex(
                    f"transaction index {index} out of range (0..{len(current.transactions) - 1})"
                )
            tx = current.transactions[index]
            typer.echo(f"{tx.date}  {tx.description}  {_money(tx.amount)}")
            category = select_category([*CATEGORIES, UNKNOWN], default=tx.category)
        updated = store.update_category(document_id, index, category, subcategory)
    except (ResultNotFound, InvalidTransactionIndex, ConcurrentUpdateError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        return 1

    tx = updated.transactions[index]
    typer.echo(f"{index}\t{tx.description}\t{tx.category}\t{tx.subcategory or ''}")
    _echo_summary(updated)
    return 0


def cmd_export(
    document_id: str,
    *,
    fmt: ExportFormat = ExportFormat.csv,
    output: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Write a stored result as CSV or Excel (default file: ``<document_id>.<fmt>``)."""

    from .export import write_export
    from .storage import open_store

    try:
        result = open_store(database_url).load(document_id)
    except (ResultNotFound, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        return 1

    target = output or Path.cwd() / f"{document_id}.{fmt.value}"
    written = write_export(result, target, fmt.value)
    typer.echo(str(written))
    return 0


def cmd_categories() -> int:
    typer.echo(f"Taxonomy v{TAXONOMY_VERSION}")
    for c in TAXONOMY:
        typer.echo(f"- {c.label} ({c.examples})")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Classify bank-statement transactions into UK business expense categories. "
        "Loads model API keys and settings from a local .env before running."
    ),
)

DATABASE_URL_OPTION = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("analyze")
def analyze_cmd(
    paths: Annotated[list[Path], typer.Argument(help="Statement files (.pdf, .docx, .csv, .xlsx).")],
    fallback: bool = typer.Option(False, help="Skip the model and use pattern extraction only."),
    save: bool = typer.Option(True, help="Persist each result under a new document id."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Analyze one or more statements."""

    raise typer.Exit(cmd_analyze(paths, fallback=fallback, save=save, database_url=database_url))


@app.command("show")
def show_cmd(
    document_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the stored result as JSON."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Print a stored analysis."""

    raise typer.Exit(cmd_show(document_id, as_json=as_json, database_url=database_url))


@app.command("correct")
def correct_cmd(
    document_id: str,
    index: int,
    category: str | None = typer.Option(None, help="New category (prompted when omitted)."),
    subcategory: str | None = typer.Option(None, help="New subcategory."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Correct one transaction's category."""

    raise typer.Exit(
        cmd_correct(
            document_id,
            index,
            category=category,
            subcategory=subcategory,
            database_url=database_url,
        )
    )


@app.command("export")
def export_cmd(
    document_id: str,
    fmt: ExportFormat = typer.Option(ExportFormat.csv, "--format", help="Output format."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination file."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Export a stored analysis as CSV or Excel."""

    raise typer.Exit(cmd_export(document_id, fmt=fmt, output=output, database_url=database_url))


@app.command("categories")
def categories_cmd() -> None:
    """List the expense categories."""

    raise typer.Exit(cmd_categories())


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override EXPENSE_ANALYSIS_LOG_LEVEL (e.g. DEBUG)."
    ),
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m expense_analysis.cli`
    app()
