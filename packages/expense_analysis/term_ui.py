"""Terminal prompt for correcting a transaction's category (prompt_toolkit).

Kept separate from the CLI so the prompt can be driven in tests through a
pipe input and a dummy output.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator


def resolve_category(text: str, categories: Sequence[str]) -> str | None:
    """Map ``text`` to exactly one of ``categories``.

    An exact case-insensitive match wins; otherwise a prefix that matches a
    single category resolves to it. Ambiguous or unknown text yields ``None``.
    """

    needle = " ".join(text.split()).lower()
    if not needle:
        return None
    for c in categories:
        if c.lower() == needle:
            return c
    matches = [c for c in categories if c.lower().startswith(needle)]
    return matches[0] if len(matches) == 1 else None


class _PrefixSuggest(AutoSuggest):
    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        text = document.text
        if not text:
            return None
        lower = text.lower()
        for w in self._vocab:
            if w.lower() == lower:
                return None
        for w in self._vocab:
            if w.lower().startswith(lower):
                remainder = w[len(text) :]
                return Suggestion(remainder) if remainder else None
        return None


class _CategoryValidator(Validator):
    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def validate(self, document) -> None:
        if resolve_category(document.text, self._vocab) is None:
            raise ValidationError(
                message="Enter one of the listed categories (a unique prefix is enough)",
                cursor_position=len(document.text),
            )


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Category (Enter to accept): ",
    session: PromptSession | None = None,
) -> str:
    """Prompt for a category, pre-filled with ``default``; return the chosen label.

    Tab or Down opens the completion menu (Tab first applies an inline prefix
    suggestion when one is visible). Enter accepts the highlighted completion
    or expands a unique prefix to its full label. The first printable
    keystroke replaces the pre-filled default; Space or Backspace edits it.
    """

    words = list(categories)
    if not words:
        raise ValueError("categories must not be empty")

    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=True)

    kb = KeyBindings()
    replace_mode = bool(default)

    def _open_or_advance_menu(b) -> None:
        if b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("down", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        nonlocal replace_mode
        replace_mode = False
        _open_or_advance_menu(event.app.current_buffer)

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        replace_mode = False
        b = event.app.current_buffer
        s = getattr(b, "suggestion", None)
        suggestion_text = getattr(s, "text", None)
        if suggestion_text:
            b.insert_text(suggestion_text)
        else:
            _open_or_advance_menu(b)

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            resolved = resolve_category(b.document.text, words)
            if resolved is not None and resolved != b.document.text:
                b.text = resolved
                b.cursor_position = len(resolved)
        b.validate_and_handle()

    @kb.add("backspace", eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        replace_mode = False
        event.app.current_buffer.delete_before_cursor(1)

    @kb.add("c-a", eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        replace_mode = False
        event.app.current_buffer.cursor_home()

    @kb.add("left", eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        replace_mode = False
        event.app.current_buffer.cursor_left(1)

    # First printable keystroke replaces the pre-filled default.
    @kb.add(Keys.Any, filter=Condition(lambda: replace_mode), eager=True)
    def _(event) -> None:  # pragma: no cover
        nonlocal replace_mode
        data = getattr(event, "data", "") or ""
        if not data or not data.isprintable():
            return
        replace_mode = False
        b = event.app.current_buffer
        if data != " ":
            b.text = ""
        b.insert_text(data)

    if session is None:
        sess: PromptSession = PromptSession(key_bindings=kb)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            key_bindings=kb,
        )

    prompt_kwargs: dict[str, Any] = {
        "message": message,
        "completer": completer,
        "default": default or "",
        "key_bindings": kb,
        "auto_suggest": _PrefixSuggest(words),
        "validator": _CategoryValidator(words),
        "validate_while_typing": False,
        "style": Style.from_dict({"auto-suggestion": "fg:#888888"}),
    }

    result = sess.prompt(**prompt_kwargs)
    return resolve_category(result, words) or default


__all__ = ["resolve_category", "select_category"]
