"""Runtime configuration for the import CLIs and folder watcher."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from bookimport.importing.models import AccessLevel


DEFAULT_DB_PATH = ".bookimport.db"
DEFAULT_WATCH_SETTLE_SECONDS = 2.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(*, name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: 1, 0, true, false, yes, no, on, off")


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    value = float(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Validated defaults for command-line and drop-folder imports."""

    db_path: Path
    actor: str | None = None
    default_access_level: AccessLevel = AccessLevel.FREE
    publish: bool = False
    replace_existing: bool = False
    watch_settle_seconds: float = DEFAULT_WATCH_SETTLE_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ImportSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        db_path_raw = source.get("BOOKIMPORT_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path_raw:
            raise ValueError("BOOKIMPORT_DB_PATH cannot be empty")

        actor = source.get("BOOKIMPORT_ACTOR", "").strip() or None

        access_raw = source.get("BOOKIMPORT_DEFAULT_ACCESS_LEVEL", AccessLevel.FREE.value).strip()
        if not access_raw:
            raise ValueError("BOOKIMPORT_DEFAULT_ACCESS_LEVEL cannot be empty")
        try:
            access_level = AccessLevel.parse(access_raw)
        except ValueError as exc:
            raise ValueError(f"BOOKIMPORT_DEFAULT_ACCESS_LEVEL: {exc}") from exc

        publish = _parse_bool(name="BOOKIMPORT_PUBLISH", raw_value=source.get("BOOKIMPORT_PUBLISH", "false"))
        replace_existing = _parse_bool(
            name="BOOKIMPORT_REPLACE_EXISTING",
            raw_value=source.get("BOOKIMPORT_REPLACE_EXISTING", "false"),
        )

        settle_raw = source.get(
            "BOOKIMPORT_WATCH_SETTLE_SECONDS", str(DEFAULT_WATCH_SETTLE_SECONDS)
        ).strip()
        if not settle_raw:
            raise ValueError("BOOKIMPORT_WATCH_SETTLE_SECONDS cannot be empty")
        watch_settle_seconds = _parse_positive_float(
            name="BOOKIMPORT_WATCH_SETTLE_SECONDS",
            raw_value=settle_raw,
            minimum=0.01,
        )

        return cls(
            db_path=Path(db_path_raw),
            actor=actor,
            default_access_level=access_level,
            publish=publish,
            replace_existing=replace_existing,
            watch_settle_seconds=watch_settle_seconds,
        )
