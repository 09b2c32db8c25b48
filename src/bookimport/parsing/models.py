"""Canonical data structures shared by all manuscript format adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from bookimport.parsing.normalization import count_words

DEFAULT_BOOK_TYPE = "book"


class BookFormat(str, Enum):
    """Manuscript formats understood by the parser."""

    MARKDOWN = "markdown"
    PLAINTEXT = "plaintext"
    ARCHIVE = "archive"


@dataclass(frozen=True, slots=True)
class ParsedChapter:
    """One titled, numbered chapter with its untouched source text."""

    number: int
    title: str
    body: str
    word_count: int = field(init=False)

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError(f"Chapter number must be positive, got {self.number}")
        if not self.title.strip():
            raise ValueError("Chapter title cannot be empty")
        object.__setattr__(self, "word_count", count_words(self.body))


@dataclass(frozen=True, slots=True)
class ParsedBook:
    """Parse output consumed by the importer."""

    chapters: tuple[ParsedChapter, ...]
    title: str | None = None
    author: str | None = None
    description: str | None = None
    type: str = DEFAULT_BOOK_TYPE
    format: BookFormat | None = None
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.chapters:
            raise ValueError("A parsed book needs at least one chapter")
        previous = 0
        for chapter in self.chapters:
            if chapter.number <= previous:
                raise ValueError(
                    f"Chapter numbers must increase in reading order ({chapter.number} follows {previous})"
                )
            previous = chapter.number

    @property
    def word_count(self) -> int:
        return sum(chapter.word_count for chapter in self.chapters)

    @property
    def chapter_numbers(self) -> list[int]:
        return [chapter.number for chapter in self.chapters]
