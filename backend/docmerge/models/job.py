"""
DocMerge — Job result and pipeline output contracts.

Every merge returns a JobResult with full traceability:
per-step timings, per-source page counts, and artifact metadata.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field


class JobState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    CONVERTING = "CONVERTING"
    ASSEMBLING = "ASSEMBLING"
    DONE = "DONE"
    FAILED = "FAILED"


class StepTiming(BaseModel):
    step: str
    duration_ms: int
    status: str = "ok"  # ok | skipped | failed
    detail: str = ""


class ArtifactMetadata(BaseModel):
    filename: str
    size_bytes: int
    pages: int = 0
    content_hash: str = ""  # SHA-256 of merged PDF


class SourceSummary(BaseModel):
    """How one submitted file contributed to the output."""

    position: int
    name: str
    kind: str
    pages: int


class JobResult(BaseModel):
    """Complete output contract for every merge job."""

    job_id: str
    state: JobState = JobState.DONE
    artifact: ArtifactMetadata
    sources: list[SourceSummary] = Field(default_factory=list)
    timings: list[StepTiming] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "job_id": "3f9c2a1b7d4e",
                "state": "DONE",
                "artifact": {
                    "filename": "merged_20240101_120000_3f9c2a1b7d4e.pdf",
                    "size_bytes": 48213,
                    "pages": 4,
                },
                "sources": [
                    {"position": 0, "name": "scan.png", "kind": "raster_image", "pages": 1},
                    {"position": 1, "name": "report.pdf", "kind": "document", "pages": 3},
                ],
            }
        }
    }
