"""
DocMerge — Structured error catalog.

Every error has a code, human message, and suggested fix.
No raw exceptions leak to the client. All errors are terminal
for the job that raised them.
"""

from __future__ import annotations

from typing import Any


class DocMergeError(Exception):
    """Base error with structured code + suggestion."""

    status_code: int = 500

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


class NoFilesError(DocMergeError):
    status_code = 400

    def __init__(self):
        super().__init__(
            code="NO_FILES",
            message="No files uploaded",
            suggestion="Upload at least one PDF, PNG or JPG file.",
        )


class UnsupportedFormatError(DocMergeError):
    status_code = 415

    def __init__(self, name: str, ext: str):
        super().__init__(
            code="UNSUPPORTED_FORMAT",
            message=f"Unsupported file format: {ext or '(none)'} ({name})",
            suggestion="Allowed types: pdf, png, jpg, jpeg.",
        )


class FileTooLargeError(DocMergeError):
    status_code = 413

    def __init__(self, name: str, size_mb: float, limit_mb: float):
        super().__init__(
            code="FILE_TOO_LARGE",
            message=f"File exceeds {limit_mb:g}MB limit: {name} ({size_mb:.1f}MB)",
            suggestion="Compress or split the file before uploading.",
        )


class DecodeError(DocMergeError):
    status_code = 422

    def __init__(self, name: str, reason: str = ""):
        super().__init__(
            code="IMAGE_DECODE_FAILED",
            message=f"Could not decode image: {name}",
            suggestion="Check that the file is a valid PNG or JPEG image.",
            detail=reason or None,
        )


class InvalidImageError(DocMergeError):
    status_code = 422

    def __init__(self, width: float, height: float):
        super().__init__(
            code="INVALID_IMAGE",
            message=f"Image has degenerate dimensions: {width}x{height}",
            suggestion="Images must be at least 1x1 pixel.",
        )


class MergeError(DocMergeError):
    status_code = 422

    def __init__(self, message: str, source: str = ""):
        super().__init__(
            code="MERGE_FAILED",
            message=f"Error merging PDFs: {message}",
            suggestion="One of the PDF files appears to be corrupt. Re-export it and try again.",
            detail=source or None,
        )


class ArtifactStoreError(DocMergeError):
    status_code = 500

    def __init__(self, operation: str, reason: str):
        super().__init__(
            code="ARTIFACT_STORE_ERROR",
            message=f"Artifact store failed to {operation}: {reason}",
            suggestion="Check that the upload and output directories are writable.",
        )


class JobTimeoutError(DocMergeError):
    status_code = 504

    def __init__(self, timeout_s: float):
        super().__init__(
            code="JOB_TIMEOUT",
            message=f"Merge job timed out after {timeout_s:g}s",
            suggestion="Upload fewer or smaller files.",
        )


class JobCancelledError(DocMergeError):
    status_code = 499

    def __init__(self, job_id: str):
        super().__init__(
            code="JOB_CANCELLED",
            message=f"Merge job {job_id} was cancelled",
        )


class OutputNotFoundError(DocMergeError):
    status_code = 404

    def __init__(self, name: str):
        super().__init__(
            code="OUTPUT_NOT_FOUND",
            message=f"File not found: {name}",
            suggestion="Merged files are only kept until they are cleaned up; run the merge again.",
        )
