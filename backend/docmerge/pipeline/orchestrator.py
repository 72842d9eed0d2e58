"""
DocMerge — Conversion pipeline (job orchestrator).

Runs one merge job as a state machine:

  RECEIVED → CONVERTING → ASSEMBLING → DONE
                 └──────────┴────────→ FAILED

Every source is classified before any work starts. Conversions run on a
per-job thread pool, but results are collected by submission index so
the merged page order never depends on completion order. Assembly waits
for every conversion. The first error fails the whole job.

Every temporary file is registered for removal the moment it is created,
and removal runs in reverse order on every exit path. Only the merged
artifact in the OutputStore outlives the job.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import shutil
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from pathlib import Path, PurePath
from typing import Sequence, Union

from docmerge.core.config import PipelineConfig
from docmerge.errors import (
    ArtifactStoreError,
    DocMergeError,
    JobCancelledError,
    JobTimeoutError,
    NoFilesError,
)
from docmerge.models.job import (
    ArtifactMetadata,
    JobResult,
    JobState,
    SourceSummary,
    StepTiming,
)
from docmerge.models.source import ConvertedDocument, SourceFile, SourceKind, classify
from docmerge.pdf.assemble import assemble, count_pages
from docmerge.pdf.geometry import A4_GEOMETRY, PageGeometry
from docmerge.pdf.image_to_pdf import image_to_pdf
from docmerge.storage.output_store import OutputStore, generate_name
from docmerge.utils.logging import job_logger

SourceInput = Union[SourceFile, tuple[str, bytes]]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _safe_filename(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", PurePath(name).name) or "upload"


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ConversionPipeline:
    """
    Orchestrator for a single merge job.

    One instance per request. The only state shared with other jobs is
    the OutputStore, which is append-only.
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: OutputStore,
        geometry: PageGeometry = A4_GEOMETRY,
    ):
        self.job_id = uuid.uuid4().hex[:12]
        self.config = config
        self.store = store
        self.geometry = geometry
        self.state = JobState.RECEIVED
        self.timings: list[StepTiming] = []
        self.documents: list[ConvertedDocument] = []
        self.output_name = generate_name(self.job_id)
        self.log = job_logger(self.job_id)
        self._cancel = threading.Event()
        self._cleanup_lock = threading.Lock()
        self._cleanup: ExitStack | None = None
        self._job_dir: Path | None = None

    # ── lifecycle helpers ────────────────────────────────────

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel

    def cancel(self) -> None:
        """Ask the job to stop. Honoured before each conversion, before assembly and before commit."""
        if not self._cancel.is_set():
            self.log.warning("Cancellation requested")
        self._cancel.set()

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise JobCancelledError(self.job_id)

    def _remove_file(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            self.log.warning("Could not remove %s: %s", path, exc)

    def _remove_tree(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.log.warning("Could not remove %s: %s", path, exc)

    def _track(self, path: Path) -> Path:
        """Register ``path`` for removal when the job ends."""
        with self._cleanup_lock:
            self._cleanup.callback(self._remove_file, path)
        return path

    def _record_step(self, name: str, start: float, status: str = "ok", detail: str = ""):
        ms = int((time.perf_counter() - start) * 1000)
        self.timings.append(StepTiming(step=name, duration_ms=ms, status=status, detail=detail))
        symbol = "✓" if status == "ok" else ("⊘" if status == "skipped" else "✗")
        self.log.info("  %s %s — %dms %s", symbol, name, ms, detail)

    # ── entry point ──────────────────────────────────────────

    async def run(
        self,
        sources: Sequence[SourceInput],
        cancel_event: threading.Event | None = None,
    ) -> JobResult:
        """
        Execute the job. Returns a JobResult or raises a DocMergeError.

        Setting ``cancel_event`` (from any thread) has the same effect as
        calling ``cancel()``.
        """
        if cancel_event is not None:
            self._cancel = cancel_event
        self.log.info("=" * 60)
        self.log.info("Merge job starting (%d files)", len(sources))
        self.log.info("=" * 60)
        start = time.perf_counter()

        try:
            result = await asyncio.wait_for(self._execute(sources), timeout=self.config.job_timeout)
        except asyncio.TimeoutError:
            self.state = JobState.FAILED
            self.log.error("Job timed out after %.0fs", self.config.job_timeout)
            raise JobTimeoutError(self.config.job_timeout) from None
        except DocMergeError as exc:
            self.log.warning("Job failed: %s — %s", exc.code, exc.message)
            raise

        total_ms = int((time.perf_counter() - start) * 1000)
        self.log.info("=" * 60)
        self.log.info(
            "Merge job complete — %s, %d bytes, %d pages, %dms",
            result.artifact.filename, result.artifact.size_bytes, result.artifact.pages, total_ms,
        )
        self.log.info("=" * 60)
        return result

    async def _execute(self, sources: Sequence[SourceInput]) -> JobResult:
        with ExitStack() as cleanup:
            self._cleanup = cleanup
            try:
                classified = self._step_receive(sources)
                self._job_dir = self._create_job_dir()
                cleanup.callback(self._remove_tree, self._job_dir)

                executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers,
                    thread_name_prefix=f"docmerge-{self.job_id}",
                )
                try:
                    self.documents = await self._step_convert(executor, classified)
                    staging, artifact = await self._step_assemble(executor)
                except BaseException:
                    self._cancel.set()
                    raise
                finally:
                    await asyncio.to_thread(executor.shutdown, wait=True, cancel_futures=True)

                # Last step of the job: nothing is awaited after the commit.
                self._commit(staging)
            except BaseException:
                self.state = JobState.FAILED
                self._cancel.set()
                raise
            finally:
                self._cleanup = None

        return JobResult(
            job_id=self.job_id,
            state=self.state,
            artifact=artifact,
            sources=[
                SourceSummary(position=i, name=d.source_name, kind=d.kind.value, pages=d.pages)
                for i, d in enumerate(self.documents)
            ],
            timings=self.timings,
        )

    # ── steps ────────────────────────────────────────────────

    def _step_receive(self, sources: Sequence[SourceInput]) -> list[SourceFile]:
        t = time.perf_counter()
        if not sources:
            self._record_step("receive", t, "failed", "no files")
            raise NoFilesError()

        classified: list[SourceFile] = []
        try:
            for item in sources:
                if isinstance(item, SourceFile):
                    name, content = item.name, item.content
                else:
                    name, content = item
                classified.append(SourceFile(name=name, content=content, kind=classify(name)))
        except DocMergeError as exc:
            self._record_step("receive", t, "failed", exc.message)
            raise

        images = sum(1 for s in classified if s.kind == SourceKind.RASTER_IMAGE)
        self._record_step(
            "receive", t,
            detail=f"{len(classified) - images} pdf, {images} image(s)",
        )
        return classified

    def _create_job_dir(self) -> Path:
        job_dir = self.config.upload_dir / self.job_id
        try:
            job_dir.mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise ArtifactStoreError("create job directory", str(exc)) from exc
        return job_dir

    def _convert_one(self, index: int, source: SourceFile) -> ConvertedDocument:
        self._check_cancelled()

        original = self._track(self._job_dir / f"{index:03d}_{_safe_filename(source.name)}")
        try:
            original.write_bytes(source.content)
        except OSError as exc:
            raise ArtifactStoreError(f"save upload {source.name}", str(exc)) from exc

        if source.kind == SourceKind.DOCUMENT:
            return ConvertedDocument(
                path=original,
                source_name=source.name,
                kind=SourceKind.DOCUMENT,
                pages=count_pages(original),
            )

        self._track(original.with_suffix(".pdf"))
        return image_to_pdf(original, source.name, self.geometry)

    async def _step_convert(
        self, executor: ThreadPoolExecutor, sources: list[SourceFile]
    ) -> list[ConvertedDocument]:
        t = time.perf_counter()
        self.state = JobState.CONVERTING
        loop = asyncio.get_running_loop()

        futures = [
            loop.run_in_executor(executor, self._convert_one, i, source)
            for i, source in enumerate(sources)
        ]
        for fut in futures:
            # Mark exceptions as retrieved; the first failure is reported below.
            fut.add_done_callback(lambda f: f.cancelled() or f.exception())

        try:
            done, pending = await asyncio.wait(futures, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for fut in futures:
                fut.cancel()
            self._record_step("convert", t, "failed", "cancelled")
            raise

        failed = [
            f for f in futures
            if f in done and not f.cancelled() and f.exception() is not None
        ]
        if failed:
            self._cancel.set()
            for fut in pending:
                fut.cancel()
            exc = failed[0].exception()
            index = futures.index(failed[0])
            self._record_step("convert", t, "failed", f"{sources[index].name}: {exc}")
            raise exc

        documents = [f.result() for f in futures]
        self._record_step(
            "convert", t,
            detail=f"{len(documents)} document(s), {sum(d.pages for d in documents)} pages",
        )
        return documents

    async def _step_assemble(self, executor: ThreadPoolExecutor) -> tuple[Path, ArtifactMetadata]:
        t = time.perf_counter()
        self._check_cancelled()
        self.state = JobState.ASSEMBLING

        staging = self._track(self.store.staging_path(self.output_name))
        loop = asyncio.get_running_loop()
        try:
            pages = await loop.run_in_executor(
                executor, assemble, [d.path for d in self.documents], staging
            )
            content_hash = await loop.run_in_executor(executor, _sha256_file, staging)
            size = staging.stat().st_size
        except DocMergeError as exc:
            self._record_step("assemble", t, "failed", exc.message)
            raise
        except OSError as exc:
            self._record_step("assemble", t, "failed", str(exc))
            raise ArtifactStoreError("inspect merged PDF", str(exc)) from exc

        self._record_step("assemble", t, detail=f"{pages} pages → {self.output_name}")
        return staging, ArtifactMetadata(
            filename=self.output_name,
            size_bytes=size,
            pages=pages,
            content_hash=content_hash,
        )

    def _commit(self, staging: Path) -> None:
        """Make the merged PDF addressable. Synchronous, so a timeout cannot land after it."""
        self._check_cancelled()
        self.store.commit(staging, self.output_name)
        self.state = JobState.DONE
