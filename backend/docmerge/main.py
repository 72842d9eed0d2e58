"""
DocMerge — FastAPI Backend

Endpoints:
  POST /v1/merge                — PDF/PNG/JPG files (in order) → one merged PDF
  GET  /v1/download/{filename}  — Download a merged PDF
  GET  /health                  — Health check

The HTTP layer only enforces transport limits (allowed extensions,
per-file size ceiling). Everything else happens in ConversionPipeline.
"""

import asyncio
import threading
import uuid

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from docmerge.core.config import MB, settings
from docmerge.errors import DocMergeError, FileTooLargeError, NoFilesError
from docmerge.models.source import SourceFile, classify
from docmerge.pipeline.orchestrator import ConversionPipeline
from docmerge.storage.output_store import OutputStore
from docmerge.utils.logging import logger

VERSION = "1.0.0"

app = FastAPI(
    title="DocMerge API",
    description="Merge PDFs and images (PNG, JPG) into a single PDF, in the order uploaded.",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id"],
)

app.state.pipeline_config = settings.pipeline
app.state.store = OutputStore(settings.output_dir)
app.state.max_upload_bytes = settings.max_upload_bytes


@app.on_event("startup")
async def _startup_banner():
    cfg = app.state.pipeline_config
    logger.info("")
    logger.info("╔══════════════════════════════════════════════════╗")
    logger.info("║              DocMerge  ·  API Server             ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  POST /v1/merge           → Merge files → PDF    ║")
    logger.info("║  GET  /v1/download/{name} → Download result      ║")
    logger.info("║  GET  /health             → Health check         ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  Uploads : %-38s║", str(cfg.upload_dir))
    logger.info("║  Output  : %-38s║", str(app.state.store.root))
    logger.info("║  Workers : %-3d  Timeout: %-5.0fs                  ║", cfg.max_workers, cfg.job_timeout)
    logger.info("╚══════════════════════════════════════════════════╝")
    logger.info("")


async def _watch_disconnect(request: Request, cancel_event: threading.Event, interval: float = 0.5) -> None:
    """Set the job's cancel event if the client goes away before it finishes."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.warning("Client disconnected; cancelling merge job")
            cancel_event.set()
            return
        await asyncio.sleep(interval)


async def _read_sources(files: list[UploadFile], limit: int) -> list[SourceFile]:
    if not files:
        raise NoFilesError()

    sources: list[SourceFile] = []
    for f in files:
        name = f.filename or ""
        classify(name)
        content = await f.read(limit + 1)
        if len(content) > limit:
            raise FileTooLargeError(name, len(content) / MB, limit / MB)
        sources.append(SourceFile.from_upload(name, content))
    return sources


# ──────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "service": "docmerge-api", "version": VERSION}


@app.post("/v1/merge")
async def merge_files(
    request: Request,
    files: list[UploadFile] | None = File(default=None, description="Files to merge, in order"),
):
    """
    Convert images to single-page PDFs and merge everything, in upload
    order, into one PDF. Returns a download link for the result.

    All-or-nothing: if any file fails, no output is produced.
    """
    request_id = uuid.uuid4().hex[:12]
    logger.info("[%s] POST /v1/merge — %d files", request_id, len(files or []))

    try:
        sources = await _read_sources(files or [], app.state.max_upload_bytes)
        pipeline = ConversionPipeline(app.state.pipeline_config, app.state.store)
        cancel_event = threading.Event()
        watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
        try:
            job_result = await pipeline.run(sources, cancel_event=cancel_event)
        finally:
            watcher.cancel()
    except DocMergeError as exc:
        logger.warning("[%s] DocMerge error: %s", request_id, exc.code)
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())
    except Exception as exc:
        logger.exception("[%s] Merge failed", request_id)
        raise HTTPException(status_code=500, detail=str(exc))

    filename = job_result.artifact.filename
    return {
        "status": "success",
        "download_url": f"/v1/download/{filename}",
        "filename": filename,
        "job": job_result.model_dump(mode="json"),
    }


@app.get("/v1/download/")
async def download_missing_name():
    raise HTTPException(status_code=400, detail="No filename specified")


@app.get(
    "/v1/download/{filename}",
    response_class=FileResponse,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Merged PDF"},
        404: {"description": "File not found"},
    },
)
async def download(filename: str):
    try:
        path = app.state.store.open_path(filename)
    except DocMergeError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())

    logger.info("GET /v1/download — %s", filename)
    return FileResponse(path, media_type="application/pdf", filename=filename)
