"""Unit tests for the document assembler."""

import pytest

from conftest import make_pdf, page_texts
from docmerge.errors import MergeError
from docmerge.pdf.assemble import assemble, count_pages


@pytest.fixture
def write_pdf(tmp_path):
    def _write(name: str, *labels: str):
        path = tmp_path / name
        path.write_bytes(make_pdf(*labels))
        return path
    return _write


class TestAssemble:
    def test_single_document_is_copied_byte_for_byte(self, tmp_path, write_pdf):
        src = write_pdf("a.pdf", "A1", "A2", "A3")
        out = tmp_path / "out" / "merged.pdf"

        pages = assemble([src], out)

        assert pages == 3
        assert out.read_bytes() == src.read_bytes()

    def test_pages_concatenated_in_input_order(self, tmp_path, write_pdf):
        a = write_pdf("a.pdf", "A1", "A2")
        b = write_pdf("b.pdf", "B1")
        c = write_pdf("c.pdf", "C1", "C2", "C3")
        out = tmp_path / "merged.pdf"

        pages = assemble([c, a, b], out)

        assert pages == 6
        assert page_texts(out) == ["C1", "C2", "C3", "A1", "A2", "B1"]

    def test_same_document_twice(self, tmp_path, write_pdf):
        a = write_pdf("a.pdf", "A1")
        out = tmp_path / "merged.pdf"
        assert assemble([a, a], out) == 2
        assert page_texts(out) == ["A1", "A1"]

    def test_empty_input(self, tmp_path):
        with pytest.raises(MergeError):
            assemble([], tmp_path / "merged.pdf")

    def test_corrupt_document_fails_whole_merge(self, tmp_path, write_pdf):
        a = write_pdf("a.pdf", "A1")
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"definitely not a pdf")
        out = tmp_path / "merged.pdf"

        with pytest.raises(MergeError) as info:
            assemble([a, bad], out)

        assert info.value.detail == "bad.pdf"
        assert not out.exists()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.pdf", "bad.pdf"]

    def test_corrupt_single_document(self, tmp_path):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"")
        out = tmp_path / "merged.pdf"
        with pytest.raises(MergeError):
            assemble([bad], out)
        assert not out.exists()

    def test_tolerates_damaged_xref(self, tmp_path, write_pdf):
        src = write_pdf("a.pdf", "A1")
        damaged = tmp_path / "damaged.pdf"
        data = src.read_bytes()
        # Drop the trailer; the body objects are still intact.
        damaged.write_bytes(data[: data.rfind(b"startxref")])
        out = tmp_path / "merged.pdf"

        assert assemble([src, damaged], out) == 2


class TestCountPages:
    def test_counts(self, write_pdf):
        assert count_pages(write_pdf("a.pdf", "1", "2", "3", "4")) == 4

    def test_unreadable(self, tmp_path):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"\x00\x01 garbage bytes")
        with pytest.raises(MergeError):
            count_pages(bad)
