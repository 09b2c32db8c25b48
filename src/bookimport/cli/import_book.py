"""CLI command that imports a manuscript into the publication database."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from bookimport.config import ImportSettings
from bookimport.importing.models import AccessLevel, ImportResult, RunState
from bookimport.importing.service import format_result_text, import_manuscript, result_to_payload
from bookimport.importing.storage import StorageError
from bookimport.storage.repository import PublicationRepository


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None, settings: ImportSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a manuscript as numbered chapters")
    parser.add_argument("--path", required=True, help="Manuscript file (.md, .txt, .zip, .textpack) or bundle folder")
    parser.add_argument("--format", default=None, help="Format hint: markdown, text or archive")
    parser.add_argument("--slug", default=None, help="Target publication slug (derived from the title if omitted)")
    parser.add_argument("--publication-id", default=None, help="Existing publication id to re-import into")
    parser.add_argument(
        "--publish",
        action=argparse.BooleanOptionalAction,
        default=settings.publish,
        help="Mark newly created chapters as published",
    )
    parser.add_argument(
        "--access-level",
        choices=[level.value for level in AccessLevel],
        default=settings.default_access_level.value,
        help="Access level for newly created chapters",
    )
    parser.add_argument(
        "--replace-existing",
        action=argparse.BooleanOptionalAction,
        default=settings.replace_existing,
        help="Overwrite text of chapters that already exist instead of skipping them",
    )
    parser.add_argument("--actor", default=settings.actor, help="Account that owns newly created publications")
    parser.add_argument("--db-path", default=str(settings.db_path), help="SQLite database path")
    parser.add_argument("--dry-run", action="store_true", help="Report the plan without writing anything")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--verbose", action="store_true", help="Log import progress to stderr")
    return parser.parse_args(argv)


def _run(args: argparse.Namespace) -> ImportResult:
    try:
        repository = PublicationRepository(args.db_path)
    except StorageError as exc:
        return ImportResult(success=False, errors=[f"Storage failure: {exc}"], state=RunState.FAILED)

    with repository:
        return import_manuscript(
            Path(args.path),
            repository,
            format_hint=args.format,
            slug=args.slug,
            publish=args.publish,
            access_level=args.access_level,
            replace_existing=args.replace_existing,
            existing_publication_id=args.publication_id,
            actor=args.actor,
            dry_run=args.dry_run,
        )


def main(argv: list[str] | None = None) -> int:
    try:
        settings = ImportSettings.from_env()
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        return 2

    args = _parse_args(argv, settings)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    result = _run(args)
    if args.json:
        payload = {"path": args.path, **result_to_payload(result)}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(format_result_text(result))

    if not result.success:
        LOGGER.error("Import of %s failed", args.path)
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
