"""Text helpers shared by the format adapters."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"(\d+)")
_LEADING_ORDINAL_RE = re.compile(r"^\d+[-_. ]*")
_NAME_SPLIT_RE = re.compile(r"[-_]+")

PREAMBLE_MIN_WORDS = 20


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def count_words(text: str) -> int:
    """Whitespace-delimited token count."""

    return len(text.split())


def trim_blank_lines(lines: list[str]) -> list[str]:
    """Drop blank lines from both ends, keeping inner lines untouched."""

    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def join_body(lines: list[str]) -> str:
    return "\n".join(trim_blank_lines(lines))


def is_substantive_preamble(text: str) -> bool:
    """Tell real front text apart from a stray line or two of boilerplate.

    A single non-blank line is always boilerplate, as is anything shorter
    than ``PREAMBLE_MIN_WORDS`` words.
    """

    non_blank = [line for line in text.splitlines() if line.strip()]
    if len(non_blank) < 2:
        return False
    return count_words(text) >= PREAMBLE_MIN_WORDS


def humanize_filename(name: str) -> str:
    """Turn ``03-the_storm.md`` into ``The storm``."""

    stem = name.rsplit("/", 1)[-1]
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    stem = _LEADING_ORDINAL_RE.sub("", stem)
    words = normalize_whitespace(_NAME_SPLIT_RE.sub(" ", stem))
    return words.capitalize()


def title_from_filename(name: str) -> str | None:
    stem = name.rsplit("/", 1)[-1]
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    cleaned = stem.strip()
    return cleaned or None


def natural_sort_key(name: str) -> tuple[tuple[int, int | str], ...]:
    """Numeric-aware sort key so ``chapter-2`` sorts before ``chapter-10``."""

    key: list[tuple[int, int | str]] = []
    for part in _DIGITS_RE.split(name.casefold()):
        if not part:
            continue
        if part.isdigit():
            key.append((0, int(part)))
        else:
            key.append((1, part))
    return tuple(key)
