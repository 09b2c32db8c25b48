from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from bookimport.automation.drop_folder import (
    DropFolderImporter,
    DropImportOptions,
    ManuscriptUploadHandler,
    PendingUploads,
    is_manuscript_upload,
)
from bookimport.importing.models import ImportResult
from bookimport.storage.repository import PublicationRepository


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _options(tmp_path: Path, actor: str | None = "admin") -> DropImportOptions:
    return DropImportOptions(db_path=tmp_path / "library.db", actor=actor)


def _manuscript(path: Path, title: str) -> Path:
    path.write_text(
        f"---\ntitle: {title}\n---\n# Chapter 1: Opening\nFirst words.\n\n# Chapter 2: Closing\nLast words.\n",
        encoding="utf-8",
    )
    return path


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("novel.md", True),
        ("NOVEL.TXT", True),
        ("draft.textpack", True),
        ("bundle.zip", True),
        ("cover.jpg", False),
        ("novel.md.part", False),
        (".novel.md", False),
        ("novel.md~", False),
    ],
)
def test_is_manuscript_upload(name: str, expected: bool) -> None:
    assert is_manuscript_upload(Path("drop") / name) is expected


def test_pending_upload_settles_after_quiet_period() -> None:
    clock = _Clock()
    pending = PendingUploads(settle_seconds=1.0, clock=clock)
    path = Path("drop/novel.md")

    pending.add(path)
    clock.now = 0.8
    pending.touch(path)
    clock.now = 1.5

    assert pending.pop_settled() == []

    clock.now = 1.8
    assert pending.pop_settled() == [path]
    assert len(pending) == 0


def test_touch_ignores_paths_that_are_not_pending() -> None:
    pending = PendingUploads(settle_seconds=0.0, clock=_Clock())

    pending.touch(Path("drop/already-imported.md"))

    assert pending.pop_settled() == []


def test_upload_handler_tracks_manuscripts_and_renamed_partials() -> None:
    pending = PendingUploads(settle_seconds=1.0, clock=_Clock())
    handler = ManuscriptUploadHandler(pending)

    handler.dispatch(FileCreatedEvent("drop/ok.textpack"))
    handler.dispatch(FileCreatedEvent("drop/cover.jpg"))
    handler.dispatch(FileCreatedEvent("drop/upload.md.part"))
    handler.dispatch(FileModifiedEvent("drop/untracked.md"))
    handler.dispatch(FileMovedEvent("drop/upload.md.part", "drop/upload.md"))

    assert Path("drop/ok.textpack") in pending
    assert Path("drop/upload.md") in pending
    assert Path("drop/untracked.md") not in pending
    assert len(pending) == 2


@pytest.mark.asyncio
async def test_same_title_uploads_get_distinct_slugs(tmp_path: Path) -> None:
    first = _manuscript(tmp_path / "first.md", "Twin Peaks")
    second = _manuscript(tmp_path / "second.md", "Twin Peaks")
    importer = DropFolderImporter(tmp_path, _options(tmp_path))

    results = await asyncio.gather(importer.import_path(first), importer.import_path(second))

    assert all(result.success for result in results)
    assert sorted(result.publication_slug for result in results) == ["twin-peaks", "twin-peaks-2"]
    with PublicationRepository(tmp_path / "library.db") as repository:
        for slug in ("twin-peaks", "twin-peaks-2"):
            publication = repository.find_publication_by_slug(slug)
            assert publication is not None
            assert [chapter.title for chapter in repository.list_chapters(publication.id)] == [
                "Opening",
                "Closing",
            ]


@pytest.mark.asyncio
async def test_unparseable_upload_is_reported_not_raised(tmp_path: Path) -> None:
    empty = tmp_path / "empty.md"
    empty.write_bytes(b"")
    reported: list[tuple[Path, ImportResult]] = []
    importer = DropFolderImporter(
        tmp_path,
        _options(tmp_path),
        on_result=lambda path, result: reported.append((path, result)),
    )

    result = await importer.import_path(empty)

    assert result.success is False
    assert result.errors[0].startswith("Parse error: Manuscript file is empty")
    assert reported == [(empty, result)]


@pytest.mark.asyncio
async def test_missing_actor_fails_each_import(tmp_path: Path) -> None:
    manuscript = _manuscript(tmp_path / "book.md", "Ownerless")
    importer = DropFolderImporter(tmp_path, _options(tmp_path, actor=None))

    result = await importer.import_path(manuscript)

    assert result.success is False
    assert any("No publication owner available" in entry for entry in result.errors)


@pytest.mark.asyncio
async def test_dropped_file_is_imported_once_settled(tmp_path: Path) -> None:
    drop = tmp_path / "drop"
    drop.mkdir()
    done = asyncio.Event()
    seen: list[tuple[Path, ImportResult]] = []

    def _on_result(path: Path, result: ImportResult) -> None:
        seen.append((path, result))
        done.set()

    importer = DropFolderImporter(
        drop,
        _options(tmp_path),
        settle_seconds=0.1,
        poll_interval=0.02,
        on_result=_on_result,
    )
    await importer.start()
    assert importer.running is True

    _manuscript(drop / "arrival.md", "Arrival")
    await asyncio.wait_for(done.wait(), timeout=5.0)
    await importer.stop()

    assert importer.running is False
    assert len(seen) == 1
    path, result = seen[0]
    assert path.name == "arrival.md"
    assert result.success is True
    assert result.publication_slug == "arrival"
    assert result.chapters_created == ["Opening", "Closing"]


@pytest.mark.asyncio
async def test_start_rejects_missing_directory(tmp_path: Path) -> None:
    importer = DropFolderImporter(tmp_path / "missing", _options(tmp_path))

    with pytest.raises(ValueError, match="does not exist"):
        await importer.start()
