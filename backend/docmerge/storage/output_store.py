"""
DocMerge — Output store for merged artifacts.

Append-only: each job commits one uniquely named file, written
elsewhere first and renamed into place, so readers never observe a
partial artifact. Names are validated before they touch the filesystem.

Security controls:
  - Path traversal: blocked (separators and '..' rejected, resolve + parent check)
  - Only generated '.pdf' names are addressable
"""

from __future__ import annotations

import os
import re
import tempfile
import uuid
from datetime import datetime
from pathlib import Path

from docmerge.errors import ArtifactStoreError, OutputNotFoundError
from docmerge.utils.logging import logger

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*\.pdf$")


def generate_name(job_id: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"merged_{stamp}_{job_id}.pdf"


class OutputStore:
    """Filesystem-backed store keyed by generated artifact name."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _ensure_root(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactStoreError("create output directory", str(exc)) from exc
        return self.root

    def path_for(self, name: str) -> Path:
        """Resolve a name to its path without checking existence."""
        if not name or not _NAME_RE.match(name) or ".." in name:
            raise OutputNotFoundError(name)
        base = self.root.resolve()
        resolved = (base / name).resolve()
        if resolved.parent != base:
            raise OutputNotFoundError(name)
        return resolved

    def staging_path(self, name: str) -> Path:
        """A path on the store's filesystem for building ``name`` before commit."""
        root = self._ensure_root()
        self.path_for(name)
        return root / f".{name}.staging"

    def commit(self, staged: Path, name: str) -> str:
        """Atomically move a fully written file into the store."""
        target = self.path_for(name)
        if target.exists():
            raise ArtifactStoreError("commit artifact", f"{name} already exists")
        try:
            os.replace(staged, target)
        except OSError as exc:
            raise ArtifactStoreError("commit artifact", str(exc)) from exc
        logger.info("  Stored %s (%d bytes)", name, target.stat().st_size)
        return name

    def store(self, data: bytes, name: str | None = None) -> str:
        """
        Write bytes as a new artifact and return its name (the handle).

        Without ``name`` a fresh ``merged_<timestamp>_<id>.pdf`` is generated.
        """
        name = name or generate_name(uuid.uuid4().hex[:12])
        root = self._ensure_root()
        self.path_for(name)
        try:
            fd, tmp = tempfile.mkstemp(dir=root, prefix=".", suffix=".staging")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            raise ArtifactStoreError("write artifact", str(exc)) from exc
        try:
            return self.commit(Path(tmp), name)
        finally:
            Path(tmp).unlink(missing_ok=True)

    def exists(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except OutputNotFoundError:
            return False

    def load(self, name: str) -> bytes:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise OutputNotFoundError(name) from None
        except OSError as exc:
            raise ArtifactStoreError("read artifact", str(exc)) from exc

    def open_path(self, name: str) -> Path:
        """Path of an existing artifact, for streaming responses."""
        path = self.path_for(name)
        if not path.is_file():
            raise OutputNotFoundError(name)
        return path

    def delete(self, name: str) -> None:
        try:
            self.path_for(name).unlink(missing_ok=True)
        except OSError as exc:
            raise ArtifactStoreError("delete artifact", str(exc)) from exc

    def list_names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file() and _NAME_RE.match(p.name))

