"""Deterministic slug derivation and collision resolution."""

from __future__ import annotations

import re
import unicodedata
from typing import Callable

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

UNTITLED_SLUG = "untitled"
MAX_SUFFIX_ATTEMPTS = 1000


def slugify(title: str | None) -> str:
    """Lowercase, collapse non-alphanumeric runs to ``-``, trim hyphens.

    Accented letters are folded to ASCII first; an empty result becomes
    ``untitled``.
    """

    if not title:
        return UNTITLED_SLUG
    folded = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM_RE.sub("-", folded.lower()).strip("-")
    return slug or UNTITLED_SLUG


def resolve_unique_slug(base: str, is_taken: Callable[[str], bool]) -> str:
    """Return ``base`` or the first free ``base-2``, ``base-3``, ... candidate.

    Only ``is_taken`` lookups happen here; nothing is reserved until the
    caller commits the chosen slug.
    """

    if not is_taken(base):
        return base
    for suffix in range(2, MAX_SUFFIX_ATTEMPTS + 2):
        candidate = f"{base}-{suffix}"
        if not is_taken(candidate):
            return candidate
    raise ValueError(f"Could not find a free slug for '{base}' after {MAX_SUFFIX_ATTEMPTS} attempts")
