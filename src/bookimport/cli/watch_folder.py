"""CLI entrypoint that imports manuscripts dropped into a folder."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from bookimport.automation.drop_folder import DropFolderImporter, DropImportOptions
from bookimport.config import ImportSettings
from bookimport.importing.models import AccessLevel, ImportResult
from bookimport.importing.service import result_to_payload


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None, settings: ImportSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import every manuscript dropped into a folder")
    parser.add_argument("--watch-dir", required=True, help="Folder that receives .md, .txt, .zip or .textpack uploads")
    parser.add_argument("--db-path", default=str(settings.db_path), help="SQLite database path")
    parser.add_argument("--actor", default=settings.actor, help="Account that owns created publications")
    parser.add_argument(
        "--access-level",
        choices=[level.value for level in AccessLevel],
        default=settings.default_access_level.value,
        help="Access level for created chapters",
    )
    parser.add_argument("--publish", action=argparse.BooleanOptionalAction, default=settings.publish)
    parser.add_argument(
        "--settle",
        type=float,
        default=settings.watch_settle_seconds,
        help="Seconds without writes before an upload is imported",
    )
    parser.add_argument("--json", action="store_true", help="Print one JSON line per import result")
    return parser.parse_args(argv)


def _print_json(path: Path, result: ImportResult) -> None:
    payload = {"path": str(path), **result_to_payload(result)}
    print(json.dumps(payload, ensure_ascii=False), flush=True)


async def _run(args: argparse.Namespace) -> int:
    watch_dir = Path(args.watch_dir)
    if not watch_dir.is_dir():
        LOGGER.error("watch-dir must exist and be a directory: %s", watch_dir)
        return 2
    if not args.actor:
        LOGGER.error("An --actor (or BOOKIMPORT_ACTOR) is required to own imported publications")
        return 2

    options = DropImportOptions(
        db_path=Path(args.db_path),
        actor=args.actor,
        access_level=AccessLevel.parse(args.access_level),
        publish=args.publish,
    )
    importer = DropFolderImporter(
        watch_dir,
        options,
        settle_seconds=float(args.settle),
        on_result=_print_json if args.json else None,
    )

    await importer.start()
    LOGGER.info("Waiting for uploads in %s (settle %.1fs)", watch_dir, float(args.settle))
    try:
        while True:
            await asyncio.sleep(1.0)
    finally:
        await importer.stop()
        LOGGER.info("Drop-folder importer stopped")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    try:
        settings = ImportSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 2
    args = _parse_args(argv, settings)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        LOGGER.info("Shutdown requested")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
