"""
DocMerge — Document assembler.

Concatenates an ordered list of PDFs into one output file using
PyMuPDF. Inputs are opened leniently (PyMuPDF repairs minor xref and
trailer damage on open) but anything it cannot open fails the whole
merge. The output appears at its final path only once complete.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Sequence

import fitz

from docmerge.errors import ArtifactStoreError, MergeError
from docmerge.utils.logging import logger, step_timer


def count_pages(path: Path) -> int:
    """Page count of a PDF on disk; MergeError if it cannot be read."""
    try:
        with fitz.open(str(path), filetype="pdf") as doc:
            if doc.needs_pass:
                raise MergeError("document is password protected", path.name)
            return doc.page_count
    except (RuntimeError, ValueError) as exc:
        raise MergeError(str(exc), path.name) from exc


def _partial_path(output_path: Path) -> Path:
    return output_path.with_name(f".{output_path.name}.part")


def _merge_into(document_paths: Sequence[Path], target: Path) -> int:
    merged = fitz.open()
    try:
        for path in document_paths:
            try:
                src = fitz.open(str(path), filetype="pdf")
            except (RuntimeError, ValueError) as exc:
                raise MergeError(str(exc), path.name) from exc
            try:
                if src.needs_pass:
                    raise MergeError("document is password protected", path.name)
                merged.insert_pdf(src)
            except (RuntimeError, ValueError) as exc:
                raise MergeError(str(exc), path.name) from exc
            finally:
                src.close()
        pages = merged.page_count
        try:
            merged.save(str(target), garbage=1)
        except (RuntimeError, OSError) as exc:
            raise ArtifactStoreError("write merged PDF", str(exc)) from exc
        return pages
    finally:
        merged.close()


def assemble(document_paths: Sequence[Path], output_path: Path) -> int:
    """
    Write the concatenation of ``document_paths`` to ``output_path``.

    One input is copied byte for byte; two or more are merged in order.
    Returns the number of pages written. All-or-nothing: on failure no
    file is left at ``output_path``.
    """
    if not document_paths:
        raise MergeError("no PDF files to merge")

    partial = _partial_path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if len(document_paths) == 1:
            pages = count_pages(document_paths[0])
            try:
                shutil.copyfile(document_paths[0], partial)
            except OSError as exc:
                raise ArtifactStoreError("copy PDF", str(exc)) from exc
        else:
            with step_timer(f"Merge {len(document_paths)} PDFs"):
                pages = _merge_into(document_paths, partial)
        os.replace(partial, output_path)
    except OSError as exc:
        raise ArtifactStoreError("commit merged PDF", str(exc)) from exc
    finally:
        partial.unlink(missing_ok=True)

    logger.info(
        "  Assembled %d document(s) → %s (%d pages)",
        len(document_paths), output_path.name, pages,
    )
    return pages
