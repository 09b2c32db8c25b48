"""Markdown adapter splitting chapters on top-level headings."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from bookimport.parsing.encoding import decode_text
from bookimport.parsing.errors import ParseError
from bookimport.parsing.frontmatter import split_front_matter
from bookimport.parsing.models import DEFAULT_BOOK_TYPE, BookFormat, ParsedBook, ParsedChapter
from bookimport.parsing.normalization import (
    is_substantive_preamble,
    join_body,
    normalize_newlines,
    normalize_whitespace,
    title_from_filename,
)
from bookimport.parsing.numbering import ChapterNumberer

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^#[ \t]+(?P<text>\S.*)$")
_CLOSING_HASHES_RE = re.compile(r"[ \t]+#+[ \t]*$")
_CHAPTER_HEADING_RE = re.compile(
    r"^chapter\s+(?P<number>\d+)(?:\s*[:.\-–—]\s*|\s+|$)(?P<title>.*)$",
    re.IGNORECASE,
)
_FENCE_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})")

INTRODUCTION_TITLE = "Introduction"
NO_CHAPTERS_MESSAGE = "No chapters found. Use '# Chapter Title' headings to separate chapters."


@dataclass(frozen=True, slots=True)
class Heading:
    """A top-level heading line and what it says about chapter numbering."""

    line_index: int
    text: str
    explicit_number: int | None = None
    explicit_title: str | None = None


def parse_heading_line(line: str) -> str | None:
    """Return the text of a ``# Heading`` line, or None for anything else."""

    match = _HEADING_RE.match(line.rstrip())
    if match is None:
        return None
    text = _CLOSING_HASHES_RE.sub("", match.group("text")).strip()
    return text or None


def _classify(line_index: int, text: str) -> Heading:
    match = _CHAPTER_HEADING_RE.match(text)
    if match is None:
        return Heading(line_index=line_index, text=text)
    title = normalize_whitespace(match.group("title")) or None
    return Heading(
        line_index=line_index,
        text=text,
        explicit_number=int(match.group("number")),
        explicit_title=title,
    )


def find_headings(lines: list[str]) -> list[Heading]:
    """Locate top-level headings, ignoring anything inside fenced code."""

    headings: list[Heading] = []
    open_fence: str | None = None
    for index, line in enumerate(lines):
        fence = _FENCE_RE.match(line)
        if fence is not None:
            marker = fence.group("fence")
            if open_fence is None:
                open_fence = marker[0] * len(marker)
            elif marker[0] == open_fence[0] and len(marker) >= len(open_fence):
                open_fence = None
            continue
        if open_fence is not None:
            continue

        text = parse_heading_line(line)
        if text is not None:
            headings.append(_classify(index, text))
    return headings


def _preview(text: str, limit: int = 60) -> str:
    flat = normalize_whitespace(text)
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3].rstrip() + "..."


class MarkdownAdapter:
    """Parse Markdown manuscripts with optional YAML front matter."""

    format = BookFormat.MARKDOWN

    def parse(self, raw: bytes, *, filename: str | None = None) -> ParsedBook:
        return self.parse_text(decode_text(raw, source=filename), filename=filename)

    def parse_text(self, text: str, *, filename: str | None = None) -> ParsedBook:
        if not text.strip():
            raise ParseError("Manuscript is empty", filename)

        warnings: list[str] = []
        front_matter = split_front_matter(normalize_newlines(text))
        if front_matter.error:
            warnings.append(front_matter.error)

        lines = front_matter.body.split("\n")
        headings = find_headings(lines)
        if not headings:
            raise ParseError(NO_CHAPTERS_MESSAGE, filename)

        title_heading, chapter_headings = self._split_title_heading(headings)
        if not chapter_headings:
            raise ParseError(NO_CHAPTERS_MESSAGE, filename)

        preamble_lines = lines[: chapter_headings[0].line_index]
        if title_heading is not None:
            preamble_lines = [
                line for index, line in enumerate(preamble_lines) if index != title_heading.line_index
            ]

        numberer = ChapterNumberer(warnings)
        chapters: list[ParsedChapter] = []

        introduction_at: int | None = None
        preamble = join_body(preamble_lines)
        if preamble:
            if is_substantive_preamble(preamble):
                number = numberer.reserve_leading()
                chapters.append(ParsedChapter(number=number, title=INTRODUCTION_TITLE, body=preamble))
                introduction_at = len(warnings)
            else:
                warnings.append(f"Discarded short text before the first chapter heading: '{_preview(preamble)}'")

        for position, heading in enumerate(chapter_headings):
            end = (
                chapter_headings[position + 1].line_index
                if position + 1 < len(chapter_headings)
                else len(lines)
            )
            body = join_body(lines[heading.line_index + 1 : end])
            number = numberer.assign(heading.explicit_number, label=heading.text)
            if heading.explicit_number is None:
                title = heading.text
            else:
                title = heading.explicit_title or f"Chapter {number}"
            chapters.append(ParsedChapter(number=number, title=title, body=body))

        if introduction_at is not None:
            message = f"Text before the first chapter heading was kept as chapter 1 '{INTRODUCTION_TITLE}'"
            if numberer.offset:
                message += f"; following chapter numbers shifted by {numberer.offset}"
            warnings.insert(introduction_at, message)

        book_title = (
            front_matter.get("title")
            or (title_heading.text if title_heading is not None else None)
            or (title_from_filename(filename) if filename else None)
        )
        logger.debug("Parsed %d markdown chapters from %s", len(chapters), filename or "<bytes>")
        return ParsedBook(
            chapters=tuple(chapters),
            title=book_title,
            author=front_matter.get("author"),
            description=front_matter.get("description"),
            type=front_matter.get("type") or DEFAULT_BOOK_TYPE,
            format=BookFormat.MARKDOWN,
            warnings=tuple(warnings),
        )

    def _split_title_heading(self, headings: list[Heading]) -> tuple[Heading | None, list[Heading]]:
        """Peel off a leading book-title heading when chapters are explicitly marked."""

        first = headings[0]
        has_explicit = any(heading.explicit_number is not None for heading in headings)
        if has_explicit and first.explicit_number is None:
            return first, headings[1:]
        return None, headings
