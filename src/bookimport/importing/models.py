"""Request, plan and result structures for chapter imports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bookimport.parsing.models import ParsedBook


class AccessLevel(str, Enum):
    """Reader tiers a chapter can be restricted to, lowest first."""

    FREE = "free"
    MEMBER = "member"
    SUPPORTER = "supporter"
    PATRON = "patron"

    @classmethod
    def parse(cls, value: str | AccessLevel) -> AccessLevel:
        if isinstance(value, AccessLevel):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(level.value for level in cls)
            raise ValueError(f"Unknown access level '{value}' (expected one of: {choices})") from None


class ChapterOutcome(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class RunState(str, Enum):
    PENDING = "pending"
    RECONCILING = "reconciling"
    COMPLETED = "completed"
    FAILED = "failed"


REVIEW_APPROVED = "approved"
REVIEW_DRAFT = "draft"


@dataclass(frozen=True, slots=True)
class ImportRequest:
    """Everything one import run needs; no ambient settings are consulted."""

    parsed_book: ParsedBook
    target_slug: str | None = None
    publish: bool = False
    default_access_level: AccessLevel = AccessLevel.FREE
    replace_existing: bool = False
    existing_publication_id: int | str | None = None
    actor: str | None = None
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class ChapterCreate:
    """A chapter the storage collaborator should create."""

    number: int
    title: str
    body: str
    word_count: int
    access_level: AccessLevel
    published: bool
    review_status: str


@dataclass(frozen=True, slots=True)
class ChapterUpdate:
    """New text for an existing chapter; access level and published state are untouched."""

    chapter_id: int | str
    number: int
    title: str
    body: str
    word_count: int


@dataclass(frozen=True, slots=True)
class ChapterDecision:
    number: int
    title: str
    outcome: ChapterOutcome
    existing_id: int | str | None = None


@dataclass(slots=True)
class ImportPlan:
    """Per-chapter decisions plus the change set handed to storage."""

    decisions: list[ChapterDecision] = field(default_factory=list)
    creates: list[ChapterCreate] = field(default_factory=list)
    updates: list[ChapterUpdate] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.creates or self.updates)

    def titles(self, outcome: ChapterOutcome) -> list[str]:
        return [decision.title for decision in self.decisions if decision.outcome is outcome]


@dataclass(slots=True)
class ImportResult:
    """Outcome of one import run, returned to the CLI or admin caller.

    ``errors`` mixes fatal diagnostics (when ``success`` is False) with
    non-fatal warnings; an empty ``chapters_created``/``chapters_updated``
    pair on success means there was nothing to do.
    """

    success: bool
    publication_ref: int | str | None = None
    publication_slug: str | None = None
    chapters_created: list[str] = field(default_factory=list)
    chapters_updated: list[str] = field(default_factory=list)
    chapters_skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    state: RunState = RunState.PENDING
    fresh_publication: bool = False
    dry_run: bool = False
    plan: ImportPlan | None = None

    @property
    def has_changes(self) -> bool:
        return bool(self.chapters_created or self.chapters_updated)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "state": self.state.value,
            "publication_ref": self.publication_ref,
            "publication_slug": self.publication_slug,
            "fresh_publication": self.fresh_publication,
            "dry_run": self.dry_run,
            "chapters_created": list(self.chapters_created),
            "chapters_updated": list(self.chapters_updated),
            "chapters_skipped": list(self.chapters_skipped),
            "errors": list(self.errors),
        }
