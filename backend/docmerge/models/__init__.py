"""DocMerge data models — typed contracts for the merge pipeline."""

from docmerge.models.job import (
    JobState,
    StepTiming,
    ArtifactMetadata,
    SourceSummary,
    JobResult,
)
from docmerge.models.source import (
    SourceKind,
    SourceFile,
    ConvertedDocument,
    classify,
)

__all__ = [
    "JobState",
    "StepTiming",
    "ArtifactMetadata",
    "SourceSummary",
    "JobResult",
    "SourceKind",
    "SourceFile",
    "ConvertedDocument",
    "classify",
]
