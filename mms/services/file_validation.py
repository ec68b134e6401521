# mms/services/file_validation.py
"""Document intake validation.

``DocumentValidator.validate`` inspects the raw bytes of an uploaded file
against the policy for its document type and returns a
``FileValidationResult``. Errors make the file unacceptable. Warnings are
passed back to the client alongside a successful upload.

Checks run in a fixed order:

1. size bounds (max per doc type, 100 byte minimum for every type)
2. extension and declared MIME type allow-lists
3. magic-number sniffing (mismatch is only a warning)
4. malicious content heuristics (text scan skipped for PDF and images)
5. structural sanity of PDF/JPEG/PNG files
"""

import hashlib
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

MB = 1024 * 1024
DEFAULT_MAX_SIZE = 10 * MB
MIN_FILE_SIZE = 100
LARGE_FILE_WARNING_SIZE = 5 * MB

PDF = "application/pdf"
JPEG = "image/jpeg"
JPG = "image/jpg"
PNG = "image/png"
SVG = "image/svg+xml"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_CERTIFICATE_MIME_TYPES = [PDF, JPEG, JPG, PNG, SVG]
_CERTIFICATE_EXTENSIONS = [".pdf", ".jpg", ".jpeg", ".png", ".svg"]
_SCAN_MIME_TYPES = [PDF, JPEG, JPG, PNG]
_SCAN_EXTENSIONS = [".pdf", ".jpg", ".jpeg", ".png"]
_WORD_MIME_TYPES = [PDF, DOC, DOCX]
_WORD_EXTENSIONS = [".pdf", ".doc", ".docx"]


def _policy(label, description, category, mime_types, extensions, max_size):
    return {
        "label": label,
        "description": description,
        "category": category,
        "allowed_mime_types": list(mime_types),
        "allowed_extensions": list(extensions),
        "max_size": max_size,
    }


DOCUMENT_TYPE_CONFIG: Dict[str, dict] = {
    # Individual applicants
    "o_level_cert": _policy("O-Level Certificate", "Ordinary level certificate or results slip",
                            "education", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    "a_level_cert": _policy("A-Level Certificate", "Advanced level certificate or results slip",
                            "education", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    "equivalent_cert": _policy("Equivalent Qualification", "Certificate of an equivalent qualification",
                               "education", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    "id_or_passport": _policy("National ID or Passport", "Government issued identity document",
                              "identity", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    "birth_certificate": _policy("Birth Certificate", "Full birth certificate",
                                 "identity", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    "application_fee_pop": _policy("Proof of Payment", "Proof of payment of the application fee",
                                   "financial", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    # Organizations
    "bank_trust_letter": _policy("Trust Account Letter", "Bank confirmation of the trust account",
                                 "financial", _CERTIFICATE_MIME_TYPES, _CERTIFICATE_EXTENSIONS, 20 * MB),
    "certificate_incorporation": _policy("Certificate of Incorporation", "Company certificate of incorporation",
                                         "legal", _SCAN_MIME_TYPES, _SCAN_EXTENSIONS, 5 * MB),
    "partnership_agreement": _policy("Partnership Agreement", "Signed partnership agreement",
                                     "legal", _WORD_MIME_TYPES, _WORD_EXTENSIONS, 10 * MB),
    "cr6": _policy("CR6 Form", "Notice of registered office",
                   "legal", _SCAN_MIME_TYPES, _SCAN_EXTENSIONS, 5 * MB),
    "cr11": _policy("CR11 Form", "Register of directors",
                    "legal", _SCAN_MIME_TYPES, _SCAN_EXTENSIONS, 5 * MB),
    "tax_clearance": _policy("Tax Clearance Certificate", "Current tax clearance certificate",
                             "financial", [PDF, JPEG, PNG], [".pdf", ".jpg", ".jpeg", ".png"], 3 * MB),
    "annual_return_1": _policy("Annual Return (Year 1)", "Most recent annual return",
                               "financial", _WORD_MIME_TYPES, _WORD_EXTENSIONS, 5 * MB),
    "annual_return_2": _policy("Annual Return (Year 2)", "Annual return for the prior year",
                               "financial", _WORD_MIME_TYPES, _WORD_EXTENSIONS, 5 * MB),
    "annual_return_3": _policy("Annual Return (Year 3)", "Annual return for two years prior",
                               "financial", _WORD_MIME_TYPES, _WORD_EXTENSIONS, 5 * MB),
    "police_clearance_director": _policy("Director Police Clearance", "Police clearance for each director",
                                         "identity", [PDF, JPEG, PNG], [".pdf", ".jpg", ".jpeg", ".png"], 3 * MB),
}

# An application holds at most one of each of these; re-uploading replaces the old row.
SINGLE_INSTANCE_DOC_TYPES = {"id_or_passport", "birth_certificate", "certificate_incorporation"}

MAGIC_NUMBERS = {
    PDF: b"%PDF",
    JPEG: b"\xff\xd8\xff",
    PNG: b"\x89PNG\r\n\x1a\n",
    DOC: b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",
    # DOCX is a ZIP container
    DOCX: b"PK\x03\x04",
}

SUSPICIOUS_PATTERNS = [
    re.compile(r"<script[\s\S]*?>[\s\S]*?</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<\?php", re.IGNORECASE),
    re.compile(r"<\?="),
    re.compile(r"<%[\s\S]*?%>"),
    re.compile(r"union\s+select", re.IGNORECASE),
    re.compile(r"drop\s+table", re.IGNORECASE),
    re.compile(r"delete\s+from", re.IGNORECASE),
]

DANGEROUS_FILENAMES = [
    re.compile(r"\.(bat|cmd|com|exe|scr|vbs|jar)$", re.IGNORECASE),
    re.compile(r"\.\.+"),
]

SUSPICIOUS_FILENAMES = [
    re.compile(r"\.(bat|cmd|com|exe|scr|vbs|js|jar)$", re.IGNORECASE),
    re.compile(r"\.(php|asp|jsp|py|rb|pl)$", re.IGNORECASE),
    re.compile(r"\.\.+"),
    re.compile(r'[<>:"|?*]'),
]

# Binary document formats that skip the text content scan
BINARY_DOCUMENT_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg", ".svg"}

CustomCheck = Callable[[bytes, str], Optional[str]]


@dataclass
class FileValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    file_info: dict = field(default_factory=dict)


def get_file_extension(filename: str) -> str:
    """Lower-cased extension including the dot, or '' when there is none."""
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


def detect_mime_type(data: bytes) -> Optional[str]:
    if data.startswith(MAGIC_NUMBERS[PDF]):
        return PDF
    if data.startswith(MAGIC_NUMBERS[JPEG]):
        return JPEG
    if data.startswith(MAGIC_NUMBERS[PNG]):
        return PNG
    if data.startswith(MAGIC_NUMBERS[DOC]):
        return DOC
    if data.startswith(MAGIC_NUMBERS[DOCX]):
        return DOCX
    return None


def _mime_matches(declared: str, detected: str) -> bool:
    if declared in (JPEG, JPG) and detected == JPEG:
        return True
    return declared == detected


class DocumentValidator:
    """Validate uploaded document bytes against ``DOCUMENT_TYPE_CONFIG``."""

    @staticmethod
    def validate(
        data: bytes,
        filename: str,
        mime_type: str,
        doc_type: str,
        custom_checks: Iterable[CustomCheck] = (),
    ) -> FileValidationResult:
        result = FileValidationResult(
            is_valid=False,
            file_info={
                "size": len(data),
                "extension": get_file_extension(filename),
                "mime_type": mime_type,
                "sha256": hashlib.sha256(data).hexdigest(),
            },
        )

        config = DOCUMENT_TYPE_CONFIG.get(doc_type)
        if config is None:
            result.errors.append(f"Unknown document type '{doc_type}'")

        DocumentValidator._check_size(data, config, result)
        DocumentValidator._check_type(data, filename, mime_type, config, result)
        DocumentValidator._check_malicious_content(data, filename, result)

        if mime_type == PDF:
            DocumentValidator._check_pdf_structure(data, result)
        elif mime_type in (JPEG, JPG, PNG):
            DocumentValidator._check_image_structure(data, mime_type, result)

        for check in custom_checks:
            try:
                error = check(data, filename)
            except Exception as e:
                result.warnings.append(f"Custom validation failed: {e}")
                continue
            if error:
                result.errors.append(error)

        result.is_valid = not result.errors
        if not result.is_valid:
            logger.info(f"Rejected {filename} as {doc_type}: {result.errors}")
        return result

    @staticmethod
    def validate_metadata(filename: str, mime_type: str, doc_type: str) -> List[str]:
        """Allow-list checks that need no file content, used before issuing an upload URL."""
        config = DOCUMENT_TYPE_CONFIG.get(doc_type)
        if config is None:
            return [f"Unknown document type '{doc_type}'"]
        result = FileValidationResult(is_valid=False)
        DocumentValidator._check_allow_lists(filename, mime_type, config, result)
        for pattern in DANGEROUS_FILENAMES:
            if pattern.search(filename):
                result.errors.append("Filename contains suspicious patterns")
                break
        return result.errors

    @staticmethod
    def _check_size(data: bytes, config: Optional[dict], result: FileValidationResult) -> None:
        max_size = (config or {}).get("max_size", DEFAULT_MAX_SIZE)
        size = len(data)

        if size > max_size:
            result.errors.append(
                f"File size ({size / MB:.1f}MB) exceeds maximum allowed size of {max_size / MB:.1f}MB"
            )
        if size < MIN_FILE_SIZE:
            result.errors.append("File is too small or appears to be empty")
        if size > LARGE_FILE_WARNING_SIZE:
            result.warnings.append("Large file detected - upload may take longer")

    @staticmethod
    def _check_allow_lists(filename: str, mime_type: str, config: dict, result: FileValidationResult) -> None:
        extension = get_file_extension(filename)
        allowed_extensions = config["allowed_extensions"]
        allowed_mime_types = config["allowed_mime_types"]

        if extension not in allowed_extensions:
            result.errors.append(
                f"File extension '{extension or 'none'}' not allowed. Allowed: {', '.join(allowed_extensions)}"
            )
        if mime_type not in allowed_mime_types:
            result.errors.append(
                f"File type '{mime_type}' not allowed. Allowed: {', '.join(allowed_mime_types)}"
            )

    @staticmethod
    def _check_type(data: bytes, filename: str, mime_type: str, config: Optional[dict], result: FileValidationResult) -> None:
        if config is not None:
            DocumentValidator._check_allow_lists(filename, mime_type, config, result)

        detected = detect_mime_type(data)
        if detected and not _mime_matches(mime_type, detected):
            result.warnings.append(
                f"File content doesn't match declared type. Detected: {detected}, Declared: {mime_type}"
            )

    @staticmethod
    def _check_malicious_content(data: bytes, filename: str, result: FileValidationResult) -> None:
        if get_file_extension(filename) in BINARY_DOCUMENT_EXTENSIONS:
            # Only the filename is checked for PDFs and images
            for pattern in DANGEROUS_FILENAMES:
                if pattern.search(filename):
                    result.errors.append("Filename contains suspicious patterns")
                    break
            return

        content = data.decode("utf-8", errors="ignore")
        for pattern in SUSPICIOUS_PATTERNS:
            if pattern.search(content):
                result.errors.append("File contains potentially malicious content")
                break

        for pattern in SUSPICIOUS_FILENAMES:
            if pattern.search(filename):
                result.errors.append("Filename contains suspicious patterns")
                break

    @staticmethod
    def _check_pdf_structure(data: bytes, result: FileValidationResult) -> None:
        if not data.startswith(MAGIC_NUMBERS[PDF]):
            result.errors.append("Invalid PDF file structure")
            return

        if b"%%EOF" not in data[-10:]:
            result.warnings.append("PDF file may be corrupted - missing EOF marker")

        match = re.match(rb"%PDF-(\d+\.\d+)", data[:20])
        if match:
            version = float(match.group(1))
            if version > 2.0:
                result.warnings.append(f"PDF version {version} may not be compatible with all viewers")

    @staticmethod
    def _check_image_structure(data: bytes, mime_type: str, result: FileValidationResult) -> None:
        if mime_type in (JPEG, JPG):
            if not data.startswith(MAGIC_NUMBERS[JPEG]):
                result.errors.append("Invalid JPEG file structure")
            if not data.endswith(b"\xff\xd9"):
                result.warnings.append("JPEG file may be corrupted - missing end marker")
        elif mime_type == PNG:
            if not data.startswith(MAGIC_NUMBERS[PNG]):
                result.errors.append("Invalid PNG file structure")


def get_document_categories() -> List[str]:
    return sorted({config["category"] for config in DOCUMENT_TYPE_CONFIG.values()})


def get_documents_by_category(category: str) -> Dict[str, dict]:
    return {
        doc_type: config
        for doc_type, config in DOCUMENT_TYPE_CONFIG.items()
        if config["category"] == category
    }


def generate_file_key(application_id: str, filename: str) -> str:
    """Server-generated object key; the client only contributes the extension."""
    return f"applications/{application_id}/{uuid4().hex}{get_file_extension(filename)}"


def generate_document_key(application_id: str, doc_type: str, filename: str) -> str:
    """Key for a finalized document. No upload URL is ever issued under this prefix."""
    return f"documents/{application_id}/{doc_type}/{uuid4().hex}{get_file_extension(filename)}"
