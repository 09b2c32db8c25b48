"""Storage collaborator contract required by the importer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from bookimport.importing.models import AccessLevel, ChapterCreate, ChapterUpdate


class StorageError(Exception):
    """Raised by storage collaborators for any persistence fault."""


@dataclass(frozen=True, slots=True)
class Publication:
    id: int | str
    slug: str
    title: str | None = None


@dataclass(frozen=True, slots=True)
class ExistingChapter:
    id: int | str
    number: int
    title: str
    access_level: AccessLevel
    published: bool


@dataclass(frozen=True, slots=True)
class NewPublication:
    slug: str
    title: str
    owner: str
    author: str | None = None
    description: str | None = None
    type: str = "book"


@runtime_checkable
class PublicationStore(Protocol):
    """Operations the importer needs from persistence."""

    def find_publication_by_id(self, publication_id: int | str) -> Publication | None:
        """Look a publication up by its storage identity."""

    def find_publication_by_slug(self, slug: str) -> Publication | None:
        """Look a publication up by slug; a slug made of digits is still a slug."""

    def list_chapters(self, publication_id: int | str) -> list[ExistingChapter]:
        """Return the publication's chapters ordered by number."""

    def create_publication(self, publication: NewPublication) -> Publication:
        """Allocate a new publication identity."""

    def apply_chapter_changes(
        self,
        publication_id: int | str,
        creates: list[ChapterCreate],
        updates: list[ChapterUpdate],
    ) -> list[int | str]:
        """Commit creates and updates atomically; return the affected chapter ids."""
