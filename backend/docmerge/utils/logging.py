"""
DocMerge — Job-scoped logging with step duration tracking.

Every line emitted on behalf of a merge job carries the job id,
so interleaved concurrent jobs stay readable in one log stream.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Generator, MutableMapping

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("docmerge")


class JobLogger(logging.LoggerAdapter):
    """Prefixes every message with ``[job_id]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['job_id']}] {msg}", kwargs


def job_logger(job_id: str) -> JobLogger:
    return JobLogger(logger, {"job_id": job_id})


@contextmanager
def step_timer(step_name: str, log: logging.Logger | JobLogger = logger) -> Generator[None, None, None]:
    """Log the start and duration of a pipeline step, including failed ones."""
    log.info("▶ %s started", step_name)
    start = time.perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if ok:
            log.info("✔ %s completed in %.0f ms", step_name, elapsed_ms)
        else:
            log.warning("✗ %s aborted after %.0f ms", step_name, elapsed_ms)
