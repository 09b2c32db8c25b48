"""Strict UTF-8 decoding with a helpful diagnosis on failure."""

from __future__ import annotations

import logging

from charset_normalizer import from_bytes

from bookimport.parsing.errors import ParseError

logger = logging.getLogger(__name__)

_UTF8_NAMES = {"utf_8", "utf-8", "utf8", "ascii"}


def guess_encoding(raw: bytes) -> str | None:
    """Best guess at the real encoding of bytes that failed UTF-8 decoding."""

    best = from_bytes(raw).best()
    if best is None or not best.encoding:
        return None
    if best.encoding.lower() in _UTF8_NAMES:
        return None
    return best.encoding


def decode_text(raw: bytes, *, source: str | None = None) -> str:
    """Decode manuscript bytes as UTF-8; never substitutes replacement chars."""

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        guess = guess_encoding(raw)
        hint = f"; the content looks like {guess}, re-save it as UTF-8" if guess else ""
        logger.debug("UTF-8 decoding failed for %s at byte %d", source, exc.start)
        raise ParseError(f"Unreadable encoding: not valid UTF-8 at byte {exc.start}{hint}", source) from exc

    if text.startswith("\ufeff"):
        text = text[1:]
    return text
