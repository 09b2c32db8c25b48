"""SQLite implementation of the publication storage collaborator."""

from .repository import PublicationRepository, StoredChapter

__all__ = ["PublicationRepository", "StoredChapter"]
