"""Format adapter implementations and contracts."""

from .archive_adapter import ArchiveAdapter
from .base import FormatAdapter
from .markdown_adapter import MarkdownAdapter
from .txt_adapter import PlainTextAdapter

__all__ = [
    "ArchiveAdapter",
    "FormatAdapter",
    "MarkdownAdapter",
    "PlainTextAdapter",
]
