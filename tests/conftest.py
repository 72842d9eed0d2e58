"""Shared test configuration and fixtures for DocMerge test suite."""

import io
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add backend to Python path so imports work
backend_dir = str(Path(__file__).parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

# Keep the app's default directories out of the working tree.
_scratch = Path(tempfile.mkdtemp(prefix="docmerge-tests-"))
os.environ.setdefault("DOCMERGE_UPLOAD_DIR", str(_scratch / "uploads"))
os.environ.setdefault("DOCMERGE_OUTPUT_DIR", str(_scratch / "output"))


def make_image(width: int, height: int, fmt: str = "PNG", color=(200, 30, 30), mode: str = "RGB") -> bytes:
    from PIL import Image

    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_pdf(*labels: str) -> bytes:
    """A PDF with one page per label, the label drawn as text."""
    import fitz

    doc = fitz.open()
    for label in labels:
        page = doc.new_page()
        page.insert_text((72, 72), label, fontsize=12)
    pdf_bytes = doc.tobytes()
    doc.close()
    return pdf_bytes


def page_texts(pdf: bytes | Path) -> list[str]:
    import fitz

    doc = fitz.open(stream=pdf, filetype="pdf") if isinstance(pdf, bytes) else fitz.open(str(pdf))
    texts = [page.get_text().strip() for page in doc]
    doc.close()
    return texts


def page_image_counts(pdf: bytes | Path) -> list[int]:
    import fitz

    doc = fitz.open(stream=pdf, filetype="pdf") if isinstance(pdf, bytes) else fitz.open(str(pdf))
    counts = [len(page.get_images()) for page in doc]
    doc.close()
    return counts


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).parent.parent


@pytest.fixture
def png_bytes():
    return make_image(400, 300, "PNG")


@pytest.fixture
def jpg_bytes():
    return make_image(300, 400, "JPEG", color=(20, 90, 200))


@pytest.fixture
def two_page_pdf():
    return make_pdf("Report page one", "Report page two")


@pytest.fixture
def pipeline_config(tmp_path):
    from docmerge.core.config import PipelineConfig

    return PipelineConfig(upload_dir=tmp_path / "uploads", max_workers=4, job_timeout=30.0)


@pytest.fixture
def store(tmp_path):
    from docmerge.storage.output_store import OutputStore

    return OutputStore(tmp_path / "output")
