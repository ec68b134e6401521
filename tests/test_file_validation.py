"""Unit tests for document intake validation."""

import hashlib

from mms.services.file_validation import (
    DocumentValidator,
    detect_mime_type,
    generate_file_key,
    get_document_categories,
    get_documents_by_category,
    get_file_extension,
)
from tests.conftest import make_pdf

PADDING = b" " * 200


class TestSizeChecks:
    """Size bounds"""

    def test_tiny_file_rejected(self):
        result = DocumentValidator.validate(b"%PDF-1.4\n%%EOF", "cert.pdf", "application/pdf", "o_level_cert")
        assert not result.is_valid
        assert "File is too small or appears to be empty" in result.errors

    def test_file_over_type_limit_rejected(self):
        data = b"%PDF-1.4\n" + b"0" * (3 * 1024 * 1024 + 1) + b"%%EOF"
        result = DocumentValidator.validate(data, "tax.pdf", "application/pdf", "tax_clearance")
        assert not result.is_valid
        assert any("exceeds maximum allowed size" in e for e in result.errors)


class TestTypeChecks:
    """Allow-lists and magic numbers"""

    def test_valid_pdf_passes_with_file_info(self):
        data = make_pdf("valid")
        result = DocumentValidator.validate(data, "o-level.pdf", "application/pdf", "o_level_cert")

        assert result.is_valid
        assert result.errors == []
        assert result.file_info["sha256"] == hashlib.sha256(data).hexdigest()
        assert result.file_info["extension"] == ".pdf"
        assert result.file_info["size"] == len(data)

    def test_extension_not_allowed(self):
        result = DocumentValidator.validate(make_pdf(), "cert.docx", "application/pdf", "o_level_cert")
        assert any("File extension '.docx' not allowed" in e for e in result.errors)

    def test_unknown_doc_type(self):
        result = DocumentValidator.validate(make_pdf(), "cert.pdf", "application/pdf", "selfie")
        assert "Unknown document type 'selfie'" in result.errors

    def test_magic_mismatch_is_only_a_warning(self):
        png = b"\x89PNG\r\n\x1a\n" + PADDING
        result = DocumentValidator.validate(png, "letter.doc", "application/msword", "partnership_agreement")

        assert result.is_valid
        assert any("doesn't match declared type" in w for w in result.warnings)

    def test_jpeg_declared_as_jpg_is_consistent(self):
        jpeg = b"\xff\xd8\xff\xe0" + PADDING + b"\xff\xd9"
        result = DocumentValidator.validate(jpeg, "id.jpg", "image/jpg", "id_or_passport")
        assert result.is_valid
        assert result.warnings == []


class TestStructureChecks:
    """PDF and image structure"""

    def test_pdf_without_header_is_invalid(self):
        data = b"This is not really a PDF" + PADDING
        result = DocumentValidator.validate(data, "cert.pdf", "application/pdf", "o_level_cert")
        assert "Invalid PDF file structure" in result.errors

    def test_pdf_without_eof_marker_warns(self):
        data = b"%PDF-1.4\n" + PADDING
        result = DocumentValidator.validate(data, "cert.pdf", "application/pdf", "o_level_cert")
        assert result.is_valid
        assert "PDF file may be corrupted - missing EOF marker" in result.warnings

    def test_jpeg_without_end_marker_warns(self):
        data = b"\xff\xd8\xff\xe0" + PADDING
        result = DocumentValidator.validate(data, "id.jpeg", "image/jpeg", "id_or_passport")
        assert result.is_valid
        assert "JPEG file may be corrupted - missing end marker" in result.warnings

    def test_png_with_wrong_header_is_invalid(self):
        result = DocumentValidator.validate(b"GIF89a" + PADDING, "id.png", "image/png", "id_or_passport")
        assert "Invalid PNG file structure" in result.errors


class TestMaliciousContent:
    """Filename and content heuristics"""

    def test_script_in_word_document_rejected(self):
        data = b"PK\x03\x04" + PADDING + b"<script>alert(1)</script>"
        result = DocumentValidator.validate(
            data, "returns.docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "annual_return_1",
        )
        assert "File contains potentially malicious content" in result.errors

    def test_pdf_content_is_not_text_scanned(self):
        data = b"%PDF-1.4\n/JS (javascript:app.alert(1))\n" + PADDING + b"%%EOF"
        result = DocumentValidator.validate(data, "cert.pdf", "application/pdf", "o_level_cert")
        assert result.is_valid

    def test_path_traversal_filename_rejected_even_for_pdf(self):
        result = DocumentValidator.validate(make_pdf("dots"), "..cert.pdf", "application/pdf", "o_level_cert")
        assert "Filename contains suspicious patterns" in result.errors

    def test_custom_check_error_is_reported(self):
        def no_drafts(data, filename):
            return "Draft documents are not accepted" if "draft" in filename else None

        result = DocumentValidator.validate(
            make_pdf("custom"), "draft.pdf", "application/pdf", "o_level_cert", custom_checks=[no_drafts],
        )
        assert "Draft documents are not accepted" in result.errors


class TestMetadataAndHelpers:
    """Pre-upload checks and lookup helpers"""

    def test_metadata_rejects_executable(self):
        errors = DocumentValidator.validate_metadata("setup.exe", "application/pdf", "o_level_cert")
        assert "Filename contains suspicious patterns" in errors

    def test_metadata_accepts_allowed_file(self):
        assert DocumentValidator.validate_metadata("cert.pdf", "application/pdf", "o_level_cert") == []

    def test_extension_and_mime_detection(self):
        assert get_file_extension("Scan.PDF") == ".pdf"
        assert get_file_extension("noextension") == ""
        assert detect_mime_type(b"%PDF-1.7") == "application/pdf"
        assert detect_mime_type(b"plain text") is None

    def test_file_key_is_scoped_to_application(self):
        key = generate_file_key("MBR-APP-2025-0001", "../../etc/passwd.pdf")
        assert key.startswith("applications/MBR-APP-2025-0001/")
        assert key.endswith(".pdf")
        assert ".." not in key

    def test_categories(self):
        assert "education" in get_document_categories()
        assert set(get_documents_by_category("education")) == {"o_level_cert", "a_level_cert", "equivalent_cert"}
