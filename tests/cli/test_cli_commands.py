from __future__ import annotations

import json
from pathlib import Path

import pytest

from bookimport.cli import import_book, parse_book, watch_folder

_ENV_KEYS = (
    "BOOKIMPORT_DB_PATH",
    "BOOKIMPORT_ACTOR",
    "BOOKIMPORT_DEFAULT_ACCESS_LEVEL",
    "BOOKIMPORT_PUBLISH",
    "BOOKIMPORT_REPLACE_EXISTING",
    "BOOKIMPORT_WATCH_SETTLE_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _manuscript(tmp_path: Path) -> Path:
    path = tmp_path / "Field Notes.md"
    path.write_text(
        "# Chapter 1: Arrival\nWe landed.\n\n# Chapter 2: Camp\nWe camped.\n",
        encoding="utf-8",
    )
    return path


def test_parse_book_cli_prints_chapter_structure(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manuscript = _manuscript(tmp_path)

    exit_code = parse_book.main(["--path", str(manuscript)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["title"] == "Field Notes"
    assert payload["format"] == "markdown"
    assert [chapter["title"] for chapter in payload["chapters"]] == ["Arrival", "Camp"]
    assert payload["word_count"] == 4


def test_parse_book_cli_reports_parse_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manuscript = tmp_path / "blank.txt"
    manuscript.write_bytes(b"")

    exit_code = parse_book.main(["--path", str(manuscript)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert "Manuscript file is empty" in payload["error"]


def test_import_cli_json_runs_twice_idempotently(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manuscript = _manuscript(tmp_path)
    db_path = tmp_path / "library.db"
    argv = ["--path", str(manuscript), "--db-path", str(db_path), "--actor", "admin", "--publish", "--json"]

    first_code = import_book.main(argv)
    first = json.loads(capsys.readouterr().out)
    second_code = import_book.main(argv + ["--slug", "field-notes"])
    second = json.loads(capsys.readouterr().out)

    assert first_code == 0
    assert first["success"] is True
    assert first["publication_slug"] == "field-notes"
    assert first["chapters_created"] == ["Arrival", "Camp"]
    assert second_code == 0
    assert second["chapters_created"] == []
    assert second["chapters_skipped"] == ["Arrival", "Camp"]


def test_import_cli_text_output_and_missing_actor(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manuscript = _manuscript(tmp_path)

    exit_code = import_book.main(["--path", str(manuscript), "--db-path", str(tmp_path / "library.db")])

    output = capsys.readouterr().out
    assert exit_code == 1
    assert output.startswith("Import FAILED")
    assert "No publication owner available" in output


def test_import_cli_uses_environment_defaults(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    manuscript = _manuscript(tmp_path)
    monkeypatch.setenv("BOOKIMPORT_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("BOOKIMPORT_ACTOR", "env-admin")

    exit_code = import_book.main(["--path", str(manuscript), "--dry-run", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["dry_run"] is True
    assert payload["publication_ref"] == "new:field-notes"


def test_import_cli_rejects_bad_configuration(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("BOOKIMPORT_PUBLISH", "sometimes")

    exit_code = import_book.main(["--path", str(_manuscript(tmp_path))])

    assert exit_code == 2
    assert "Configuration error" in capsys.readouterr().out


def test_watch_folder_cli_rejects_missing_directory(tmp_path: Path) -> None:
    exit_code = watch_folder.main(["--watch-dir", str(tmp_path / "missing"), "--actor", "admin"])

    assert exit_code == 2


def test_watch_folder_cli_requires_owner(tmp_path: Path) -> None:
    exit_code = watch_folder.main(["--watch-dir", str(tmp_path), "--db-path", str(tmp_path / "library.db")])

    assert exit_code == 2
