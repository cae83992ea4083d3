"""Model collaborators: prompt text in, response text out.

Each adapter owns its transport concerns: client construction, retries on
HTTP 429/5xx with jittered backoff, and extraction of the reply text. Any
terminal failure surfaces as :class:`~expense_analysis.errors.TransportFailure`
so the pipeline can demote to the fallback path.

No side effects at import time (no client creation, no environment reads).
"""

from __future__ import annotations

import random
import time
from typing import Any

from google import genai
from openai import OpenAI

from . import config
from .errors import TransportFailure
from .logging_setup import get_logger
from .pipeline import ModelCaller

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_logger = get_logger("expense_analysis.model_clients")


def _create_openai_client() -> OpenAI:
    return OpenAI()


def _create_gemini_client() -> genai.Client:
    # Reads GEMINI_API_KEY / GOOGLE_API_KEY from the environment.
    return genai.Client()


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors.

    The OpenAI SDK exposes ``status_code``; google-genai exposes ``code``.
    """

    sc = getattr(exc, "status_code", None)
    if not isinstance(sc, int):
        sc = getattr(exc, "code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    delay = base + random.uniform(-jitter, jitter)
    time.sleep(max(0.0, delay))


def _extract_response_text(resp: Any) -> str:
    """Locate the reply text on an OpenAI Responses SDK result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content and len(content) > 0:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    # Some SDKs expose text as an object with a ``value`` string.
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except Exception:  # noqa: BLE001 - tolerate SDK shape differences
            text = None
    if not text or not isinstance(text, str):
        raise TransportFailure("unexpected Responses API shape; unable to locate text output")
    return text


class _RetryingCaller:
    provider: str = ""

    def __init__(self, model: str) -> None:
        self.model = model

    def _request(self, prompt: str) -> str:
        raise NotImplementedError

    def __call__(self, prompt: str) -> str:
        attempt = 1
        while True:
            t0 = time.perf_counter()
            try:
                text = self._request(prompt)
                _logger.info(
                    "model_call:done provider=%s model=%s latency_ms=%.2f",
                    self.provider,
                    self.model,
                    (time.perf_counter() - t0) * 1000.0,
                )
                return text
            except TransportFailure:
                raise
            except Exception as e:  # noqa: BLE001
                dt_ms = (time.perf_counter() - t0) * 1000.0
                if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                    _logger.error(
                        "model_call:failed_terminal provider=%s latency_ms=%.2f error=%s attempt=%d",
                        self.provider,
                        dt_ms,
                        e.__class__.__name__,
                        attempt,
                    )
                    raise TransportFailure(f"{self.provider} call failed: {e}") from e
                _logger.warning(
                    "model_call:retry provider=%s latency_ms=%.2f error=%s attempt=%d",
                    self.provider,
                    dt_ms,
                    e.__class__.__name__,
                    attempt,
                )
                _sleep_backoff(attempt)
                attempt += 1


class OpenAIModelCaller(_RetryingCaller):
    """Send the prompt through the OpenAI Responses API."""

    provider = "openai"

    def _request(self, prompt: str) -> str:
        client = _create_openai_client()
        resp = client.responses.create(model=self.model, input=prompt)
        return _extract_response_text(resp)


class GeminiModelCaller(_RetryingCaller):
    """Send the prompt through ``google-genai``'s ``generate_content``."""

    provider = "gemini"

    def _request(self, prompt: str) -> str:
        client = _create_gemini_client()
        resp = client.models.generate_content(model=self.model, contents=prompt)
        text = getattr(resp, "text", None)
        if not text or not isinstance(text, str):
            raise TransportFailure("Gemini response carried no text")
        return text


def create_model_caller(provider: str | None = None) -> ModelCaller | None:
    """Build the configured model collaborator, or ``None`` when there is none.

    ``provider`` overrides :func:`expense_analysis.config.model_provider`.
    """

    name = (provider or config.model_provider()).strip().lower()
    if name == "openai":
        return OpenAIModelCaller(config.openai_model())
    if name == "gemini":
        return GeminiModelCaller(config.gemini_model())
    if name != "none":
        raise ValueError(f"unknown model provider: {name!r}")
    return None


__all__ = [
    "OpenAIModelCaller",
    "GeminiModelCaller",
    "create_model_caller",
]
