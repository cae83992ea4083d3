"""Analysis pipeline orchestration.

States: ``Start -> Normalized -> {ModelPath | FallbackPath} -> Aggregated ->
Done``. The model path demotes to the fallback path on any transport failure
(including an expired deadline) or parse failure. The model call is made at
most once per document; retry policy belongs to the model adapter.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import date

from .errors import ParseFailure, TransportFailure
from .fallback import extract_transactions
from .logging_setup import get_logger
from .models import AnalysisResult, TransactionRecord
from .normalizers import normalize_text
from .prompting import build_analysis_prompt
from .repair import parse_model_response

# Collaborator contract: prompt text in, response text out, raise on failure.
type ModelCaller = Callable[[str], str]

_logger = get_logger("expense_analysis.pipeline")

_PREVIEW_CHARS = 200


def _call_with_deadline(call_model: ModelCaller, prompt: str, timeout: float | None) -> str:
    """Invoke ``call_model`` and wrap every failure as :class:`TransportFailure`.

    With a ``timeout`` the call runs on a worker thread; when the deadline
    passes the call is abandoned (its result is never used) and the failure is
    reported exactly like an unreachable model.
    """

    if timeout is None:
        try:
            response = call_model(prompt)
        except Exception as e:  # noqa: BLE001 - every collaborator error demotes
            raise TransportFailure(f"model call failed: {e}") from e
    else:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ea-model")
        future = executor.submit(call_model, prompt)
        try:
            response = future.result(timeout=timeout)
        except FuturesTimeout as e:
            future.cancel()
            raise TransportFailure(f"model call exceeded {timeout:.1f}s deadline") from e
        except Exception as e:  # noqa: BLE001 - every collaborator error demotes
            raise TransportFailure(f"model call failed: {e}") from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    if not isinstance(response, str):
        raise TransportFailure(f"model returned {type(response).__name__}, expected str")
    return response


class AnalysisPipeline:
    """Normalize, classify and summarize one document's extracted text.

    Parameters
    ----------
    call_model:
        Optional model collaborator. ``None`` means every run takes the
        fallback path.
    timeout:
        Optional deadline in seconds for the model call.
    today:
        Date used for demonstration rows (defaults to the current date).
    """

    def __init__(
        self,
        call_model: ModelCaller | None = None,
        *,
        timeout: float | None = None,
        today: date | None = None,
    ) -> None:
        self._call_model = call_model
        self._timeout = timeout
        self._today = today

    def analyze(self, raw_text: str) -> AnalysisResult:
        """Run the model path, demoting to the fallback path on any failure.

        Total over all text inputs: never raises for transport or parse
        problems and never returns an empty result.
        """

        normalized = normalize_text(raw_text)
        if self._call_model is None:
            _logger.info("analyze:no_model path=fallback")
            return self._fallback(normalized)

        t0 = time.perf_counter()
        try:
            records = self._model_path(normalized)
        except TransportFailure as e:
            _logger.warning(
                "analyze:model_failed error=%s latency_ms=%.2f detail=%s",
                e.__class__.__name__,
                (time.perf_counter() - t0) * 1000.0,
                e,
            )
            return self._fallback(normalized)
        except ParseFailure as e:
            _logger.warning(
                "analyze:parse_failed error=%s latency_ms=%.2f detail=%s",
                e.__class__.__name__,
                (time.perf_counter() - t0) * 1000.0,
                e,
            )
            return self._fallback(normalized)

        _logger.info(
            "analyze:model_done transactions=%d latency_ms=%.2f",
            len(records),
            (time.perf_counter() - t0) * 1000.0,
        )
        return AnalysisResult(transactions=tuple(records), source="model")

    def fallback_analyze(self, raw_text: str) -> AnalysisResult:
        """Force the deterministic pattern path; no model call is made."""

        return self._fallback(normalize_text(raw_text))

    def _model_path(self, normalized: str) -> list[TransactionRecord]:
        assert self._call_model is not None
        prompt = build_analysis_prompt(normalized)
        response = _call_with_deadline(self._call_model, prompt, self._timeout)
        try:
            return parse_model_response(response)
        except ParseFailure:
            _logger.debug("analyze:unparsed_response preview=%r", response[:_PREVIEW_CHARS])
            raise

    def _fallback(self, normalized: str) -> AnalysisResult:
        transactions, source = extract_transactions(normalized, today=self._today)
        return AnalysisResult(transactions=tuple(transactions), source=source)
