"""Plain-text adapter splitting chapters on ``CHAPTER <label>`` marker lines."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from bookimport.parsing.encoding import decode_text
from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import DEFAULT_BOOK_TYPE, BookFormat, ParsedBook, ParsedChapter
from bookimport.parsing.normalization import (
    count_words,
    is_substantive_preamble,
    join_body,
    normalize_newlines,
    normalize_whitespace,
    title_from_filename,
)
from bookimport.parsing.numbering import ChapterNumberer
from bookimport.parsing.numerals import SPELLED_NUMBER_PATTERN, parse_chapter_label

logger = logging.getLogger(__name__)

_MARKER_RE = re.compile(
    r"^chapter\s+(?P<label>\d+|" + SPELLED_NUMBER_PATTERN + r"|[ivxlcdm]+)"
    r"(?:\s*[:.\-–—]\s*(?P<title>.*?)|\s+(?P<bare_title>\S.*?))?\s*$",
    re.IGNORECASE,
)
_HEADER_RE = re.compile(r"^(?P<key>title|author|description|type)\s*:\s*(?P<value>.+)$", re.IGNORECASE)

MAX_TITLE_LENGTH = 100
_TITLE_TERMINATORS = (".", ",", ";", ":")
_TITLE_OPENERS = "\"'“‘«("
NO_MARKERS_MESSAGE = "No chapters found. Use 'CHAPTER 1' or 'CHAPTER I' markers to separate chapters."


@dataclass(frozen=True, slots=True)
class ChapterMarker:
    """A recognised chapter marker line."""

    number: int
    label: str
    title: str | None = None


def _looks_like_bare_title(text: str) -> bool:
    if len(text) >= MAX_TITLE_LENGTH or text.endswith(_TITLE_TERMINATORS):
        return False
    first = text[0]
    return first.isupper() or first.isdigit() or first in _TITLE_OPENERS


def match_marker(line: str) -> ChapterMarker | None:
    """Recognise ``CHAPTER XII``, ``Chapter 12: Title``, ``CHAPTER IV The Storm`` or ``CHAPTER TWELVE``.

    A title after the label without a separator must read like a heading
    (capitalised, no trailing punctuation), so prose such as
    ``Chapter one of my life was hard.`` is left alone.
    """

    stripped = line.strip()
    match = _MARKER_RE.match(stripped)
    if match is None:
        return None
    number = parse_chapter_label(match.group("label"))
    if number is None:
        return None
    bare_title = match.group("bare_title")
    if bare_title is not None:
        if not _looks_like_bare_title(bare_title):
            return None
        title = normalize_whitespace(bare_title)
    else:
        title = normalize_whitespace(match.group("title") or "") or None
    return ChapterMarker(number=number, label=stripped, title=title)


def _looks_like_title(candidate: str, follower: str | None) -> bool:
    text = candidate.strip()
    if not text or len(text) >= MAX_TITLE_LENGTH:
        return False
    if text.endswith(_TITLE_TERMINATORS):
        return False
    return follower is None or not follower.strip()


def split_marker_title(lines: list[str]) -> tuple[str | None, list[str]]:
    """Take a standalone title line off the top of a chapter segment."""

    for index, line in enumerate(lines):
        if not line.strip():
            continue
        follower = lines[index + 1] if index + 1 < len(lines) else None
        if _looks_like_title(line, follower):
            return normalize_whitespace(line), lines[index + 1 :]
        return None, lines
    return None, lines


class PlainTextAdapter:
    """Parse plain-text manuscripts with optional ``TITLE:``-style headers."""

    format = BookFormat.PLAINTEXT

    def parse(self, raw: bytes, *, filename: str | None = None) -> ParsedBook:
        return self.parse_text(decode_text(raw, source=filename), filename=filename)

    def parse_text(self, text: str, *, filename: str | None = None) -> ParsedBook:
        if not text.strip():
            raise ParseError("Manuscript is empty", filename)

        lines = normalize_newlines(text).split("\n")
        metadata, start = self._extract_metadata(lines)
        lines = lines[start:]

        markers: list[tuple[int, ChapterMarker]] = []
        for index, line in enumerate(lines):
            marker = match_marker(line)
            if marker is not None:
                markers.append((index, marker))
        if not markers:
            raise ParseError(NO_MARKERS_MESSAGE, filename)

        warnings: list[str] = []
        preamble = join_body(lines[: markers[0][0]])
        if preamble and is_substantive_preamble(preamble):
            warnings.append(
                f"Discarded {count_words(preamble)} words of text before the first chapter marker"
            )

        numberer = ChapterNumberer(warnings)
        chapters: list[ParsedChapter] = []
        for position, (index, marker) in enumerate(markers):
            end = markers[position + 1][0] if position + 1 < len(markers) else len(lines)
            segment = lines[index + 1 : end]
            title = marker.title
            if title is None:
                title, segment = split_marker_title(segment)

            number = numberer.assign(marker.number, label=marker.label)
            chapters.append(
                ParsedChapter(number=number, title=title or f"Chapter {number}", body=join_body(segment))
            )

        book_title = (
            metadata.get("title")
            or self._first_line_title(lines, markers[0][0])
            or (title_from_filename(filename) if filename else None)
        )
        logger.debug("Parsed %d plain-text chapters from %s", len(chapters), filename or "<bytes>")
        return ParsedBook(
            chapters=tuple(chapters),
            title=book_title,
            author=metadata.get("author"),
            description=metadata.get("description"),
            type=(metadata.get("type") or DEFAULT_BOOK_TYPE).lower(),
            format=BookFormat.PLAINTEXT,
            warnings=tuple(warnings),
        )

    def _extract_metadata(self, lines: list[str]) -> tuple[dict[str, str], int]:
        """Read leading ``KEY: value`` header lines; return them and where the text starts."""

        metadata: dict[str, str] = {}
        start = 0
        for index, line in enumerate(lines):
            if not line.strip():
                continue
            match = _HEADER_RE.match(line.strip())
            if match is None:
                break
            key = match.group("key").casefold()
            value = normalize_whitespace(match.group("value"))
            if value and key not in metadata:
                metadata[key] = value
            start = index + 1
        return metadata, start

    def _first_line_title(self, lines: list[str], first_marker: int) -> str | None:
        for line in lines[:first_marker]:
            if line.strip():
                return normalize_whitespace(line)
        return None
