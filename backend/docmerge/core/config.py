"""
DocMerge — Backend Configuration
Loads .env automatically, then reads all settings from environment variables.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

MB = 1024 * 1024


@dataclass(frozen=True)
class PipelineConfig:
    """Per-process settings handed to every ConversionPipeline."""
    upload_dir: Path
    max_workers: int = 4
    job_timeout: float = 120.0


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""
    host: str
    port: int
    debug: bool
    output_dir: Path
    max_upload_bytes: int
    pipeline: PipelineConfig


def _load_config() -> AppConfig:
    port = os.getenv("PORT") or os.getenv("APP_PORT", "8080")
    return AppConfig(
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=int(port),
        debug=os.getenv("APP_DEBUG", "false").lower() == "true",
        output_dir=Path(os.getenv("DOCMERGE_OUTPUT_DIR", "output")),
        max_upload_bytes=int(float(os.getenv("DOCMERGE_MAX_UPLOAD_MB", "32")) * MB),
        pipeline=PipelineConfig(
            upload_dir=Path(os.getenv("DOCMERGE_UPLOAD_DIR", "uploads")),
            max_workers=int(os.getenv("DOCMERGE_MAX_WORKERS", "4")),
            job_timeout=float(os.getenv("DOCMERGE_JOB_TIMEOUT", "120")),
        ),
    )


def _validate_config(cfg: AppConfig) -> None:
    """Fail fast on limits that would make every job fail."""
    problems: list[str] = []
    if cfg.max_upload_bytes <= 0:
        problems.append("DOCMERGE_MAX_UPLOAD_MB must be positive")
    if cfg.pipeline.max_workers < 1:
        problems.append("DOCMERGE_MAX_WORKERS must be at least 1")
    if cfg.pipeline.job_timeout <= 0:
        problems.append("DOCMERGE_JOB_TIMEOUT must be positive")
    if cfg.output_dir.resolve() == cfg.pipeline.upload_dir.resolve():
        problems.append("DOCMERGE_OUTPUT_DIR and DOCMERGE_UPLOAD_DIR must differ")
    if problems:
        print(
            f"\n  ERROR: Invalid configuration: {'; '.join(problems)}\n"
            f"  Check backend/.env or the process environment.\n",
            file=sys.stderr,
        )
        sys.exit(1)


settings = _load_config()
_validate_config(settings)
