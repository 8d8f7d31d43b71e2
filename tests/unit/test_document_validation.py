"""Unit tests for upload validation"""

import pytest

from debitflow.domain.documents.models import DocumentKind
from debitflow.domain.documents.validation import (
    PDF_MIME_TYPE,
    XLSX_MIME_TYPE,
    document_kind,
    resolve_mime_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)


class TestResolveMimeType:

    def test_supported_declared_type(self):
        assert resolve_mime_type("application/pdf", "scan.bin") == PDF_MIME_TYPE

    def test_parameters_stripped(self):
        assert resolve_mime_type("Application/PDF; charset=binary", "fiche.pdf") == PDF_MIME_TYPE

    @pytest.mark.parametrize("declared", [None, "", "application/octet-stream"])
    def test_generic_type_uses_extension(self, declared):
        assert resolve_mime_type(declared, "FICHE.XLSX") == XLSX_MIME_TYPE

    def test_unsupported(self):
        assert resolve_mime_type("application/msword", "fiche.doc") is None
        assert resolve_mime_type("application/octet-stream", "fiche.doc") is None

    def test_document_kind(self):
        assert document_kind(PDF_MIME_TYPE) == DocumentKind.PDF
        assert document_kind(XLSX_MIME_TYPE) == DocumentKind.SPREADSHEET
        assert document_kind("text/csv") is None


class TestValidateFileSize:

    def test_within_limit(self):
        assert validate_file_size(1024, 2048) == (True, None)

    def test_empty(self):
        assert validate_file_size(0, 2048) == (False, "File is empty (0 bytes)")

    def test_too_large(self):
        valid, error = validate_file_size(4096, 2048)
        assert valid is False
        assert "2048" in error


class TestFilename:

    def test_valid(self):
        assert validate_filename("fiche.pdf") == (True, None)

    @pytest.mark.parametrize("filename", ["", "   ", "a\x00b.pdf", "x" * 256])
    def test_invalid(self, filename):
        valid, error = validate_filename(filename)
        assert valid is False
        assert error

    def test_sanitize_strips_directories(self):
        assert sanitize_filename("../../fiche.pdf") == "fiche.pdf"
        assert sanitize_filename("C:\\scans\\ARC 4512.pdf") == "ARC_4512.pdf"

    def test_sanitize_keeps_degree_sign(self):
        assert sanitize_filename("OS N°2451 (copie).pdf") == "OS_N°2451_copie_.pdf"
