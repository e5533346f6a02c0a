"""Request validation performed before any resource is allocated."""

from __future__ import annotations

from typing import Iterable, Optional

from .errors import InvalidRequest, UnsupportedLanguage
from .languages import LANGUAGES


def _check_encodable(name: str, value: Optional[str]) -> None:
    # JSON allows lone surrogates, which cannot be written to a file or pipe.
    if value is None:
        return
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidRequest(f"Field '{name}' is not valid UTF-8 text") from None


def validate_request(
    language: Optional[str],
    code: Optional[str],
    input: Optional[str] = None,
    allowed_langs: Optional[Iterable[str]] = None,
) -> str:
    """Check an execute request and return the normalised language id.

    The language is matched after stripping and lower-casing, so
    ``" Python "`` selects ``python``.  Any string ``input``, including an
    empty one, is valid stdin as long as it encodes to UTF-8.
    """
    language_id = (language or "").strip().lower()
    if not language_id or not code:
        raise InvalidRequest("Missing language or code")

    if language_id not in LANGUAGES:
        raise UnsupportedLanguage(language_id)
    if allowed_langs is not None and language_id not in allowed_langs:
        raise UnsupportedLanguage(language_id)

    _check_encodable("code", code)
    _check_encodable("input", input)
    return language_id
