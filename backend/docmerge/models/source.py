"""
DocMerge — Source file contracts.

A SourceFile is one uploaded file as it enters the pipeline. Its kind is
derived from the filename extension alone; content is never sniffed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path, PurePath

from docmerge.errors import UnsupportedFormatError


class SourceKind(str, enum.Enum):
    DOCUMENT = "document"
    RASTER_IMAGE = "raster_image"


EXTENSION_KINDS: dict[str, SourceKind] = {
    ".pdf": SourceKind.DOCUMENT,
    ".png": SourceKind.RASTER_IMAGE,
    ".jpg": SourceKind.RASTER_IMAGE,
    ".jpeg": SourceKind.RASTER_IMAGE,
}


def classify(name: str) -> SourceKind:
    """Map a filename to its kind by extension, case-insensitive."""
    ext = PurePath(name).suffix.lower()
    try:
        return EXTENSION_KINDS[ext]
    except KeyError:
        raise UnsupportedFormatError(name, ext) from None


@dataclass(frozen=True)
class SourceFile:
    name: str
    content: bytes
    kind: SourceKind

    @classmethod
    def from_upload(cls, name: str, content: bytes) -> "SourceFile":
        return cls(name=name, content=content, kind=classify(name))


@dataclass
class ConvertedDocument:
    """A PDF on disk derived from exactly one SourceFile."""

    path: Path
    source_name: str
    kind: SourceKind
    pages: int
