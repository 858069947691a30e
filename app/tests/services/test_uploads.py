import pytest

from app.core.uploads import (
    MAX_FILE_SIZE,
    file_extension,
    guess_content_type,
    sanitize_filename,
    validate_upload,
)


@pytest.mark.parametrize("name", ["a.pdf", "b.DOC", "c.docx", "notes.TxT"])
def test_allowed_extensions_case_insensitive(name):
    assert validate_upload(name, 1) is None


@pytest.mark.parametrize("name", ["a.png", "archive.pdf.zip", "noext", ".pdf.exe"])
def test_disallowed_extensions(name):
    assert "Invalid file type" in validate_upload(name, 1)


def test_exactly_max_size_is_accepted():
    assert MAX_FILE_SIZE == 50 * 1024 * 1024
    assert validate_upload("big.pdf", MAX_FILE_SIZE) is None


def test_one_byte_over_max_size_is_rejected():
    reason = validate_upload("big.pdf", MAX_FILE_SIZE + 1)
    assert reason == "File too large. Maximum size: 50MB"


def test_sanitize_filename_replaces_unsafe_characters():
    assert sanitize_filename("Q3 report (final).pdf") == "Q3_report__final_.pdf"
    assert sanitize_filename("ok-name.v2.txt") == "ok-name.v2.txt"


def test_extension_and_content_type():
    assert file_extension("X.PDF") == ".pdf"
    assert guess_content_type("x.docx").endswith("wordprocessingml.document")
    assert guess_content_type("x.bin") == "application/octet-stream"
