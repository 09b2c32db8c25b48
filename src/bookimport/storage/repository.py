"""SQLite-backed storage collaborator for publications and chapters."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import sqlite3

from bookimport.importing.models import AccessLevel, ChapterCreate, ChapterUpdate
from bookimport.importing.storage import ExistingChapter, NewPublication, Publication, StorageError
from bookimport.storage.schema import apply_runtime_pragmas, ensure_schema

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoredChapter:
    id: int
    publication_id: int
    number: int
    title: str
    body: str
    word_count: int
    access_level: AccessLevel
    published: bool
    review_status: str


class PublicationRepository:
    """SQLite storage facade implementing the importer's PublicationStore."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        try:
            self._connection = sqlite3.connect(str(self._db_path))
            self._connection.row_factory = sqlite3.Row
            apply_runtime_pragmas(self._connection)
            ensure_schema(self._connection)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open publication database {self._db_path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "PublicationRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def find_publication_by_id(self, publication_id: int | str) -> Publication | None:
        try:
            pub_id = int(publication_id)
        except (TypeError, ValueError):
            return None
        return self._fetch_publication("SELECT id, slug, title FROM publications WHERE id = ?", pub_id)

    def find_publication_by_slug(self, slug: str) -> Publication | None:
        return self._fetch_publication("SELECT id, slug, title FROM publications WHERE slug = ?", slug)

    def _fetch_publication(self, query: str, value: int | str) -> Publication | None:
        try:
            row = self._connection.execute(query, (value,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Publication lookup failed: {exc}") from exc

        if row is None:
            return None
        return Publication(id=int(row["id"]), slug=row["slug"], title=row["title"])

    def list_chapters(self, publication_id: int | str) -> list[ExistingChapter]:
        try:
            rows = self._connection.execute(
                """
                SELECT id, number, title, access_level, published
                FROM chapters
                WHERE publication_id = ?
                ORDER BY number ASC
                """,
                (int(publication_id),),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Chapter listing failed: {exc}") from exc

        return [
            ExistingChapter(
                id=int(row["id"]),
                number=int(row["number"]),
                title=row["title"],
                access_level=AccessLevel(row["access_level"]),
                published=bool(row["published"]),
            )
            for row in rows
        ]

    def create_publication(self, publication: NewPublication) -> Publication:
        try:
            with self._connection:
                cursor = self._connection.execute(
                    """
                    INSERT INTO publications (slug, title, author, description, type, owner)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        publication.slug,
                        publication.title,
                        publication.author,
                        publication.description,
                        publication.type,
                        publication.owner,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise StorageError(f"Publication slug '{publication.slug}' is already taken") from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Could not create publication: {exc}") from exc

        logger.debug("Inserted publication %s", publication.slug)
        return Publication(id=int(cursor.lastrowid), slug=publication.slug, title=publication.title)

    def apply_chapter_changes(
        self,
        publication_id: int | str,
        creates: list[ChapterCreate],
        updates: list[ChapterUpdate],
    ) -> list[int | str]:
        """Write all changes in one transaction.

        Creates upsert on ``(publication_id, number)``, so replaying the same
        change set does not duplicate chapters. Updates never touch
        ``access_level`` or ``published``.
        """

        pub_id = int(publication_id)
        committed: list[int | str] = []
        try:
            with self._connection:
                for create in creates:
                    rows = self._connection.execute(
                        """
                        INSERT INTO chapters (
                            publication_id, number, title, body, word_count,
                            access_level, published, review_status
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(publication_id, number) DO UPDATE SET
                            title = excluded.title,
                            body = excluded.body,
                            word_count = excluded.word_count,
                            updated_at = CURRENT_TIMESTAMP
                        RETURNING id
                        """,
                        (
                            pub_id,
                            create.number,
                            create.title,
                            create.body,
                            create.word_count,
                            create.access_level.value,
                            int(create.published),
                            create.review_status,
                        ),
                    ).fetchall()
                    committed.append(int(rows[0]["id"]))

                for update in updates:
                    cursor = self._connection.execute(
                        """
                        UPDATE chapters
                        SET title = ?, body = ?, word_count = ?, updated_at = CURRENT_TIMESTAMP
                        WHERE id = ? AND publication_id = ?
                        """,
                        (update.title, update.body, update.word_count, int(update.chapter_id), pub_id),
                    )
                    if cursor.rowcount != 1:
                        raise StorageError(
                            f"Chapter {update.chapter_id} does not belong to publication {pub_id}"
                        )
                    committed.append(int(update.chapter_id))
        except sqlite3.Error as exc:
            raise StorageError(f"Could not apply chapter changes: {exc}") from exc

        logger.debug(
            "Applied %d creates and %d updates to publication %s",
            len(creates),
            len(updates),
            pub_id,
        )
        return committed

    def get_chapter(self, publication_id: int | str, number: int) -> StoredChapter | None:
        row = self._connection.execute(
            """
            SELECT id, publication_id, number, title, body, word_count,
                   access_level, published, review_status
            FROM chapters
            WHERE publication_id = ? AND number = ?
            """,
            (int(publication_id), number),
        ).fetchone()
        if row is None:
            return None
        return StoredChapter(
            id=int(row["id"]),
            publication_id=int(row["publication_id"]),
            number=int(row["number"]),
            title=row["title"],
            body=row["body"],
            word_count=int(row["word_count"]),
            access_level=AccessLevel(row["access_level"]),
            published=bool(row["published"]),
            review_status=row["review_status"],
        )

    def set_chapter_access(self, chapter_id: int, access_level: AccessLevel, published: bool) -> None:
        """Author-side override of a chapter's tier and visibility."""

        with self._connection:
            self._connection.execute(
                """
                UPDATE chapters
                SET access_level = ?, published = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (access_level.value, int(published), chapter_id),
            )
