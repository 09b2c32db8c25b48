"""YAML front matter handling for Markdown manuscripts."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any

import yaml

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)

METADATA_KEYS = ("title", "author", "description", "type")


@dataclass(slots=True)
class FrontMatter:
    """Metadata block split off the top of a Markdown document."""

    fields: dict[str, str] = field(default_factory=dict)
    body: str = ""
    present: bool = False
    error: str | None = None

    def get(self, key: str) -> str | None:
        return self.fields.get(key)


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        text = ", ".join(str(item).strip() for item in value if str(item).strip())
    else:
        text = str(value).strip()
    return text or None


def split_front_matter(text: str) -> FrontMatter:
    """Strip a leading ``---`` block and parse it with ``yaml.safe_load``.

    The block is removed even when its YAML is invalid; the failure is
    reported through ``error`` so callers can surface a warning.
    """

    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return FrontMatter(body=text)

    body = text[match.end():]
    try:
        loaded = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        return FrontMatter(body=body, present=True, error=f"Invalid front matter ignored: {str(exc).splitlines()[0]}")

    if loaded is None:
        return FrontMatter(body=body, present=True)
    if not isinstance(loaded, dict):
        return FrontMatter(body=body, present=True, error="Front matter is not a key/value block; ignored")

    fields: dict[str, str] = {}
    for key in METADATA_KEYS:
        value = _stringify(loaded.get(key))
        if value:
            fields[key] = value
    return FrontMatter(fields=fields, body=body, present=True)
