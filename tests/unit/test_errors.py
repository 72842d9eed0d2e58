"""Unit tests for the structured error catalog."""

from docmerge.errors import (
    DocMergeError, NoFilesError, UnsupportedFormatError, FileTooLargeError,
    DecodeError, InvalidImageError, MergeError, ArtifactStoreError,
    JobTimeoutError, JobCancelledError, OutputNotFoundError,
)


class TestErrorCatalog:
    def test_base_error(self):
        e = DocMergeError(code="TEST", message="test msg", suggestion="try this")
        d = e.to_dict()
        assert d["error_code"] == "TEST"
        assert d["message"] == "test msg"
        assert d["suggestion"] == "try this"
        assert "detail" not in d

    def test_no_files(self):
        e = NoFilesError()
        assert e.code == "NO_FILES"
        assert e.status_code == 400

    def test_unsupported_format(self):
        e = UnsupportedFormatError("notes.txt", ".txt")
        assert e.code == "UNSUPPORTED_FORMAT"
        assert ".txt" in e.message
        assert "notes.txt" in e.message

    def test_unsupported_format_without_extension(self):
        e = UnsupportedFormatError("README", "")
        assert "(none)" in e.message

    def test_file_too_large(self):
        e = FileTooLargeError("big.pdf", 40.0, 32.0)
        assert e.code == "FILE_TOO_LARGE"
        assert e.status_code == 413
        assert "32MB" in e.message

    def test_decode_error_keeps_reason(self):
        e = DecodeError("broken.png", "cannot identify image file")
        assert e.code == "IMAGE_DECODE_FAILED"
        assert e.to_dict()["detail"] == "cannot identify image file"

    def test_invalid_image(self):
        e = InvalidImageError(0, 10)
        assert e.code == "INVALID_IMAGE"

    def test_merge_error(self):
        e = MergeError("cannot open broken document", "b.pdf")
        assert e.code == "MERGE_FAILED"
        assert e.message.startswith("Error merging PDFs")
        assert e.detail == "b.pdf"

    def test_artifact_store_error(self):
        e = ArtifactStoreError("write artifact", "disk full")
        assert e.code == "ARTIFACT_STORE_ERROR"
        assert e.status_code == 500

    def test_timeout(self):
        e = JobTimeoutError(120)
        assert e.code == "JOB_TIMEOUT"
        assert "120s" in e.message

    def test_cancelled(self):
        e = JobCancelledError("abc123")
        assert "abc123" in e.message

    def test_not_found(self):
        e = OutputNotFoundError("merged_x.pdf")
        assert e.status_code == 404

    def test_all_errors_are_docmerge_errors(self):
        error_classes = [
            NoFilesError, UnsupportedFormatError, FileTooLargeError, DecodeError,
            InvalidImageError, MergeError, ArtifactStoreError, JobTimeoutError,
            JobCancelledError, OutputNotFoundError,
        ]
        for cls in error_classes:
            assert issubclass(cls, DocMergeError)
            assert issubclass(cls, Exception)
