"""Chapter import package interfaces."""

from .importer import BookImporter, BookImportError, plan_chapters
from .models import AccessLevel, ChapterOutcome, ImportPlan, ImportRequest, ImportResult, RunState
from .service import format_result_text, import_manuscript, import_parsed_book, result_to_payload
from .storage import ExistingChapter, NewPublication, Publication, PublicationStore, StorageError

__all__ = [
    "AccessLevel",
    "BookImportError",
    "BookImporter",
    "ChapterOutcome",
    "ExistingChapter",
    "ImportPlan",
    "ImportRequest",
    "ImportResult",
    "NewPublication",
    "Publication",
    "PublicationStore",
    "RunState",
    "StorageError",
    "format_result_text",
    "import_manuscript",
    "import_parsed_book",
    "plan_chapters",
    "result_to_payload",
]
