"""Reconcile a parsed book against a publication's existing chapters."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from bookimport.importing.models import (
    REVIEW_APPROVED,
    REVIEW_DRAFT,
    ChapterCreate,
    ChapterDecision,
    ChapterOutcome,
    ChapterUpdate,
    ImportPlan,
    ImportRequest,
    ImportResult,
    RunState,
)
from bookimport.importing.slugs import resolve_unique_slug, slugify
from bookimport.importing.storage import (
    ExistingChapter,
    NewPublication,
    Publication,
    PublicationStore,
    StorageError,
)
from bookimport.parsing.models import ParsedBook

logger = logging.getLogger(__name__)

UNTITLED_BOOK = "Untitled Book"


class BookImportError(Exception):
    """Import-level precondition failure; reported through ImportResult, never raised out."""


@dataclass(frozen=True, slots=True)
class ImportTarget:
    """Where an import run writes: an existing publication or a slug to create."""

    slug: str
    publication: Publication | None = None

    @property
    def is_reimport(self) -> bool:
        return self.publication is not None


def plan_chapters(
    book: ParsedBook,
    existing: list[ExistingChapter],
    request: ImportRequest,
) -> ImportPlan:
    """Decide create/update/skip for every parsed chapter, matching by number.

    Chapters present in storage but missing from the book are never removed.
    """

    by_number = {chapter.number: chapter for chapter in existing}
    plan = ImportPlan()
    for chapter in book.chapters:
        current = by_number.get(chapter.number)
        if current is None:
            plan.creates.append(
                ChapterCreate(
                    number=chapter.number,
                    title=chapter.title,
                    body=chapter.body,
                    word_count=chapter.word_count,
                    access_level=request.default_access_level,
                    published=request.publish,
                    review_status=REVIEW_APPROVED if request.publish else REVIEW_DRAFT,
                )
            )
            plan.decisions.append(ChapterDecision(chapter.number, chapter.title, ChapterOutcome.CREATE))
        elif request.replace_existing:
            plan.updates.append(
                ChapterUpdate(
                    chapter_id=current.id,
                    number=chapter.number,
                    title=chapter.title,
                    body=chapter.body,
                    word_count=chapter.word_count,
                )
            )
            plan.decisions.append(
                ChapterDecision(chapter.number, chapter.title, ChapterOutcome.UPDATE, existing_id=current.id)
            )
        else:
            plan.decisions.append(
                ChapterDecision(chapter.number, chapter.title, ChapterOutcome.SKIP, existing_id=current.id)
            )
    return plan


class BookImporter:
    """Turn an ImportRequest into storage changes and an ImportResult."""

    def __init__(self, storage: PublicationStore) -> None:
        self._storage = storage

    def import_book(self, request: ImportRequest) -> ImportResult:
        book = request.parsed_book
        result = ImportResult(success=False, dry_run=request.dry_run)
        result.errors.extend(book.warnings)

        logger.info(
            "Importing '%s' (%d chapters, replace_existing=%s, dry_run=%s)",
            book.title or UNTITLED_BOOK,
            len(book.chapters),
            request.replace_existing,
            request.dry_run,
        )

        try:
            self._require_owner(request)
            target = self._resolve_target(request, result)
            result.publication_slug = target.slug

            result.state = RunState.RECONCILING
            existing = self._storage.list_chapters(target.publication.id) if target.publication else []
            plan = plan_chapters(book, existing, request)
            result.plan = plan

            self._commit(request, target, plan, result)
        except StorageError as exc:
            return self._fail(result, f"Storage failure: {exc}")
        except BookImportError as exc:
            return self._fail(result, str(exc))

        result.chapters_created = plan.titles(ChapterOutcome.CREATE)
        result.chapters_updated = plan.titles(ChapterOutcome.UPDATE)
        result.chapters_skipped = plan.titles(ChapterOutcome.SKIP)
        if not plan.has_changes:
            result.errors.append(
                f"Nothing to import: all {len(book.chapters)} chapters already exist "
                "(use replace_existing to overwrite them)"
            )

        result.success = True
        result.state = RunState.COMPLETED
        logger.info(
            "Import into %s finished: %d created, %d updated, %d skipped",
            result.publication_ref,
            len(result.chapters_created),
            len(result.chapters_updated),
            len(result.chapters_skipped),
        )
        return result

    def _require_owner(self, request: ImportRequest) -> None:
        if not request.actor or not request.actor.strip():
            raise BookImportError("No publication owner available: an admin actor is required to own imported content")

    def _resolve_target(self, request: ImportRequest, result: ImportResult) -> ImportTarget:
        if request.existing_publication_id is not None:
            publication = self._storage.find_publication_by_id(request.existing_publication_id)
            if publication is None:
                raise BookImportError(f"Publication {request.existing_publication_id} not found")
            requested = (request.target_slug or "").strip()
            if requested and requested != publication.slug:
                owner = self._storage.find_publication_by_slug(requested)
                if owner is not None and owner.id != publication.id:
                    raise BookImportError(
                        f"Slug '{requested}' already belongs to a different publication ({owner.id})"
                    )
                result.errors.append(
                    f"Requested slug '{requested}' ignored: "
                    f"publication {publication.id} keeps its slug '{publication.slug}'"
                )
            return ImportTarget(slug=publication.slug, publication=publication)

        if request.target_slug:
            slug = request.target_slug.strip()
            if not slug:
                raise BookImportError("Target slug cannot be blank")
            publication = self._storage.find_publication_by_slug(slug)
            if publication is not None:
                logger.info("Re-importing into existing publication %s (%s)", publication.id, slug)
            return ImportTarget(slug=slug, publication=publication)

        base = slugify(request.parsed_book.title)
        try:
            slug = resolve_unique_slug(
                base, lambda candidate: self._storage.find_publication_by_slug(candidate) is not None
            )
        except ValueError as exc:
            raise BookImportError(str(exc)) from exc
        if slug != base:
            result.errors.append(f"Slug '{base}' is already used by another publication; using '{slug}'")
        return ImportTarget(slug=slug)

    def _commit(self, request: ImportRequest, target: ImportTarget, plan: ImportPlan, result: ImportResult) -> None:
        if request.dry_run:
            result.publication_ref = target.publication.id if target.publication else f"new:{target.slug}"
            result.fresh_publication = not target.is_reimport
            return

        publication = target.publication
        if publication is None:
            book = request.parsed_book
            publication = self._storage.create_publication(
                NewPublication(
                    slug=target.slug,
                    title=book.title or UNTITLED_BOOK,
                    owner=request.actor or "",
                    author=book.author,
                    description=book.description,
                    type=book.type,
                )
            )
            result.fresh_publication = True
            logger.info("Created publication %s (%s)", publication.id, publication.slug)

        result.publication_ref = publication.id
        result.publication_slug = publication.slug
        if plan.has_changes:
            committed = self._storage.apply_chapter_changes(publication.id, plan.creates, plan.updates)
            logger.debug("Storage committed %d chapter changes", len(committed))

    def _fail(self, result: ImportResult, message: str) -> ImportResult:
        logger.error("Import failed: %s", message)
        result.success = False
        result.state = RunState.FAILED
        result.chapters_created = []
        result.chapters_updated = []
        result.chapters_skipped = []
        result.errors.append(message)
        return result
