"""Per-document result storage.

Results are keyed by a caller-supplied document identifier. The file-backed
store keeps one JSON document per analysis:

  ``<results_root>/<document_id>.analysis.json``

Atomicity: writes target ``.tmp`` first and then ``os.replace`` into place.
Writers hold an exclusive ``flock`` on ``<document_id>.lock`` beside the
result file, so corrections of one document serialize across threads and
across CLI processes, and the stored summary always matches the stored
transactions.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import os
import re
import threading
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

from . import config
from .errors import InvalidTransactionIndex, ResultNotFound
from .logging_setup import get_logger
from .models import AnalysisResult
from .taxonomy import canonical_label

_DOCUMENT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")

_SUFFIX = ".analysis.json"
_LOCK_SUFFIX = ".lock"

_logger = get_logger("expense_analysis.storage")


def new_document_id() -> str:
    """Return a fresh, filesystem-safe document identifier."""

    return uuid.uuid4().hex


def validate_document_id(document_id: str) -> str:
    """Ensure ``document_id`` is 1-128 characters of ``[A-Za-z0-9_-]``.

    Prevents path traversal when callers supply an arbitrary string.
    """

    if not isinstance(document_id, str) or not _DOCUMENT_ID_RE.fullmatch(document_id):
        raise ValueError(
            "Invalid document_id: use 1-128 letters, digits, '_' or '-' "
            "(see new_document_id())."
        )
    return document_id


def validate_category(category: str) -> str:
    """Return the canonical taxonomy label for ``category`` or raise ``ValueError``."""

    label = canonical_label(category)
    if label is None:
        raise ValueError(f"unknown category: {category!r}")
    return label


def apply_correction(
    result: AnalysisResult, index: int, category: str, subcategory: str | None = None
) -> AnalysisResult:
    """Re-categorize one transaction; the summary is recomputed from scratch."""

    label = validate_category(category)
    try:
        return result.with_category(index, label, subcategory)
    except IndexError as e:
        raise InvalidTransactionIndex(
            f"transaction index {index} out of range (0..{len(result.transactions) - 1})"
        ) from e


class ResultStore(Protocol):
    def save(self, document_id: str, result: AnalysisResult) -> None: ...

    def load(self, document_id: str) -> AnalysisResult: ...

    def update_category(
        self,
        document_id: str,
        index: int,
        category: str,
        subcategory: str | None = None,
    ) -> AnalysisResult: ...


class FileResultStore:
    """JSON-file store rooted at ``root`` (default: ``EA_RESULTS_DIR``)."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root).expanduser().resolve() if root is not None else config.results_dir()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _path(self, document_id: str) -> Path:
        return self.root / f"{validate_document_id(document_id)}{_SUFFIX}"

    def _lock_for(self, document_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(document_id)
            if lock is None:
                lock = self._locks[document_id] = threading.Lock()
            return lock

    @contextlib.contextmanager
    def _exclusive(self, document_id: str) -> Iterator[None]:
        self.root.mkdir(parents=True, exist_ok=True)
        lock_path = self.root / f"{document_id}{_LOCK_SUFFIX}"
        with self._lock_for(document_id), lock_path.open("a") as fh:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)

    def _write(self, path: Path, result: AnalysisResult) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(
                json.dumps(result.to_json_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise

    def _read(self, document_id: str, path: Path) -> AnalysisResult:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ResultNotFound(document_id) from None
        return AnalysisResult.model_validate_json(raw)

    def save(self, document_id: str, result: AnalysisResult) -> None:
        path = self._path(document_id)
        with self._exclusive(document_id):
            self._write(path, result)
        _logger.info(
            "storage:saved document_id=%s transactions=%d", document_id, len(result.transactions)
        )

    def load(self, document_id: str) -> AnalysisResult:
        # Writes land via os.replace: a reader sees the old or the new file, never a partial one.
        return self._read(document_id, self._path(document_id))

    def update_category(
        self,
        document_id: str,
        index: int,
        category: str,
        subcategory: str | None = None,
    ) -> AnalysisResult:
        path = self._path(document_id)
        with self._exclusive(document_id):
            current = self._read(document_id, path)
            updated = apply_correction(current, index, category, subcategory)
            self._write(path, updated)
        _logger.info(
            "storage:corrected document_id=%s index=%d category=%s",
            document_id,
            index,
            updated.transactions[index].category,
        )
        return updated


def open_store(database_url: str | None = None) -> ResultStore:
    """Return the SQL store when a database URL is configured, else the file store."""

    url = database_url or config.database_url()
    if url:
        from .persistence import SqlResultStore  # imported lazily; keeps SQLAlchemy optional at import

        return SqlResultStore(url)
    return FileResultStore()


__all__ = [
    "ResultStore",
    "FileResultStore",
    "apply_correction",
    "new_document_id",
    "open_store",
    "validate_category",
    "validate_document_id",
]
