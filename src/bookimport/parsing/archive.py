"""Archive-extraction collaborators: list bundle entries without touching disk."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Protocol, runtime_checkable
from zipfile import BadZipFile, ZipFile
import zlib

from bookimport.parsing.errors import ParseError

ZIP_MAGIC = b"PK\x03\x04"
_IGNORED_DIRS = {"__macosx", "assets", "images"}


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """One file inside a bundle, addressed by its slash-separated path."""

    name: str
    data: bytes

    @property
    def basename(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @property
    def suffix(self) -> str:
        base = self.basename
        if "." not in base:
            return ""
        return "." + base.rsplit(".", 1)[-1].lower()


@runtime_checkable
class ArchiveReader(Protocol):
    """Protocol for anything that can enumerate bundle entries in order."""

    def list_entries(self) -> list[ArchiveEntry]:
        """Return every file entry with its bytes."""


def _is_ignored(name: str) -> bool:
    parts = [part for part in name.split("/") if part]
    if not parts:
        return True
    if any(part.startswith(".") for part in parts):
        return True
    return any(part.casefold() in _IGNORED_DIRS for part in parts[:-1])


class ZipArchiveReader:
    """Read entries from zip bytes (``.zip`` and ``.textpack``)."""

    def __init__(self, raw: bytes, *, source: str | None = None) -> None:
        self._raw = raw
        self._source = source

    def list_entries(self) -> list[ArchiveEntry]:
        try:
            with ZipFile(BytesIO(self._raw), "r") as archive:
                entries: list[ArchiveEntry] = []
                for info in archive.infolist():
                    if info.is_dir() or _is_ignored(info.filename):
                        continue
                    entries.append(ArchiveEntry(name=info.filename, data=archive.read(info)))
                return entries
        except (BadZipFile, OSError, EOFError, zlib.error) as exc:
            raise ParseError(f"Corrupt archive: {exc}", self._source) from exc
        except NotImplementedError as exc:
            raise ParseError(f"Unsupported archive compression: {exc}", self._source) from exc
        except RuntimeError as exc:
            raise ParseError(f"Encrypted archive entries are not supported: {exc}", self._source) from exc


class DirectoryArchiveReader:
    """Treat an unpacked folder (or ``.textbundle`` directory) as a bundle."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def list_entries(self) -> list[ArchiveEntry]:
        entries: list[ArchiveEntry] = []
        try:
            for path in sorted(self._root.rglob("*")):
                if not path.is_file():
                    continue
                name = path.relative_to(self._root).as_posix()
                if _is_ignored(name):
                    continue
                entries.append(ArchiveEntry(name=name, data=path.read_bytes()))
        except OSError as exc:
            raise ParseError(f"Failed to read bundle folder: {exc}", str(self._root)) from exc
        return entries
