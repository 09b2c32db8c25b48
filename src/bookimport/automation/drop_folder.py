"""Drop-folder importer: wait for uploads to settle, then import them in-process."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from pathlib import Path
import threading
import time
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from bookimport.config import ImportSettings
from bookimport.importing.models import AccessLevel, ImportResult
from bookimport.importing.service import failed_result, import_parsed_book, parse_error_result
from bookimport.importing.slugs import slugify
from bookimport.importing.storage import StorageError
from bookimport.parsing.errors import ParseError
from bookimport.parsing.models import ParsedBook
from bookimport.parsing.parser import SUPPORTED_SUFFIXES, BookParser
from bookimport.storage.repository import PublicationRepository


LOGGER = logging.getLogger(__name__)

_PARTIAL_SUFFIXES = (".part", ".tmp", ".crdownload", "~")

ResultCallback = Callable[[Path, ImportResult], None]


def is_manuscript_upload(path: str | Path) -> bool:
    """True for finished manuscript files; hidden files and partial downloads are ignored."""

    candidate = Path(path)
    name = candidate.name
    if not name or name.startswith(".") or name.lower().endswith(_PARTIAL_SUFFIXES):
        return False
    return candidate.suffix.lower() in SUPPORTED_SUFFIXES


class PendingUploads:
    """Uploads seen by the observer, each waiting for a quiet period after its last write."""

    def __init__(self, settle_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._settle_seconds = settle_seconds
        self._clock = clock
        self._last_seen: dict[Path, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_seen)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._last_seen

    def add(self, path: Path) -> None:
        with self._lock:
            self._last_seen[path] = self._clock()

    def touch(self, path: Path) -> None:
        """Restart the quiet period of an upload that is already pending."""

        with self._lock:
            if path in self._last_seen:
                self._last_seen[path] = self._clock()

    def discard(self, path: Path) -> None:
        with self._lock:
            self._last_seen.pop(path, None)

    def pop_settled(self) -> list[Path]:
        now = self._clock()
        with self._lock:
            settled = sorted(
                path for path, seen in self._last_seen.items() if now - seen >= self._settle_seconds
            )
            for path in settled:
                del self._last_seen[path]
        return settled


class ManuscriptUploadHandler(FileSystemEventHandler):
    """Feed watchdog events for manuscript files into PendingUploads."""

    def __init__(self, pending: PendingUploads) -> None:
        super().__init__()
        self._pending = pending

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and is_manuscript_upload(str(event.src_path)):
            self._pending.add(Path(str(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._pending.touch(Path(str(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        # ``book.md.part`` renamed to ``book.md`` arrives as a move.
        self._pending.discard(Path(str(event.src_path)))
        if not event.is_directory and is_manuscript_upload(str(event.dest_path)):
            self._pending.add(Path(str(event.dest_path)))


class PublicationLocks:
    """One asyncio lock per base slug, so imports that could claim the same slug run in turn."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, slug: str) -> asyncio.Lock:
        lock = self._locks.get(slug)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[slug] = lock
        return lock


@dataclass(frozen=True, slots=True)
class DropImportOptions:
    """Import settings applied to every manuscript dropped into the folder."""

    db_path: Path
    actor: str | None = None
    access_level: AccessLevel = AccessLevel.FREE
    publish: bool = False

    @classmethod
    def from_settings(cls, settings: ImportSettings) -> "DropImportOptions":
        return cls(
            db_path=settings.db_path,
            actor=settings.actor,
            access_level=settings.default_access_level,
            publish=settings.publish,
        )


class DropFolderImporter:
    """Watch a folder and import each settled manuscript into its own publication.

    Parsing runs outside any lock. The storage step runs under the lock of
    the book's base slug, so two uploads of the same title end up as ``slug``
    and ``slug-2`` instead of racing for one slug.
    """

    def __init__(
        self,
        watch_dir: str | Path,
        options: DropImportOptions,
        *,
        settle_seconds: float = 2.0,
        poll_interval: float = 0.25,
        parser: BookParser | None = None,
        on_result: ResultCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._watch_dir = Path(watch_dir)
        self._options = options
        self._poll_interval = poll_interval
        self._parser = parser or BookParser()
        self._on_result = on_result
        self._pending = PendingUploads(settle_seconds, clock)
        self._locks = PublicationLocks()
        self._observer: Observer | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._imports: set[asyncio.Task[ImportResult]] = set()

    @property
    def pending(self) -> PendingUploads:
        return self._pending

    @property
    def running(self) -> bool:
        return self._observer is not None

    async def start(self) -> None:
        if self._observer is not None:
            return
        if not self._watch_dir.is_dir():
            raise ValueError(f"Watch directory does not exist or is not a directory: {self._watch_dir}")

        observer = Observer()
        observer.schedule(ManuscriptUploadHandler(self._pending), str(self._watch_dir), recursive=False)
        observer.start()
        self._observer = observer
        self._poll_task = asyncio.create_task(self._poll())
        LOGGER.info("Watching %s for manuscripts", self._watch_dir)

    async def stop(self) -> None:
        """Stop watching and wait for imports that already started."""

        observer = self._observer
        if observer is not None:
            observer.stop()
            await asyncio.to_thread(observer.join, 5.0)
            self._observer = None

        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        if self._imports:
            await asyncio.gather(*self._imports, return_exceptions=True)

    def submit(self, path: Path) -> asyncio.Task[ImportResult]:
        task = asyncio.create_task(self.import_path(path))
        self._imports.add(task)
        task.add_done_callback(self._import_finished)
        return task

    async def import_path(self, path: Path) -> ImportResult:
        LOGGER.info("Importing dropped manuscript %s", path.name)
        try:
            book = await asyncio.to_thread(self._parser.parse, path)
        except ParseError as exc:
            result = parse_error_result(exc)
        else:
            async with self._locks.lock_for(slugify(book.title)):
                result = await asyncio.to_thread(self._store, book)
        self._report(path, result)
        return result

    async def _poll(self) -> None:
        while True:
            for path in self._pending.pop_settled():
                self.submit(path)
            await asyncio.sleep(self._poll_interval)

    def _store(self, book: ParsedBook) -> ImportResult:
        # sqlite3 connections stay on the thread that opened them.
        try:
            repository = PublicationRepository(self._options.db_path)
        except StorageError as exc:
            return failed_result(f"Storage failure: {exc}")
        with repository:
            return import_parsed_book(
                book,
                repository,
                publish=self._options.publish,
                access_level=self._options.access_level,
                actor=self._options.actor,
            )

    def _import_finished(self, task: asyncio.Task[ImportResult]) -> None:
        self._imports.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Drop-folder import crashed", exc_info=exc)

    def _report(self, path: Path, result: ImportResult) -> None:
        if result.success:
            for entry in result.errors:
                LOGGER.warning("%s: %s", path.name, entry)
            LOGGER.info(
                "Imported %s into %s (%d created, %d updated, %d skipped)",
                path.name,
                result.publication_slug,
                len(result.chapters_created),
                len(result.chapters_updated),
                len(result.chapters_skipped),
            )
        else:
            LOGGER.error("Import failed for %s: %s", path.name, "; ".join(result.errors))
        if self._on_result is not None:
            self._on_result(path, result)
