"""File validation utilities for debit sheet uploads."""

import os
import re
from typing import Optional, Tuple

from .models import DocumentKind

PDF_MIME_TYPE = "application/pdf"
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUPPORTED_MIME_TYPES = {
    PDF_MIME_TYPE: DocumentKind.PDF,
    XLSX_MIME_TYPE: DocumentKind.SPREADSHEET,
    "application/vnd.ms-excel.sheet.macroEnabled.12": DocumentKind.SPREADSHEET,
}

# Browsers and scanners often send these for any binary upload
GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

EXTENSION_MIME_TYPES = {
    ".pdf": PDF_MIME_TYPE,
    ".xlsx": XLSX_MIME_TYPE,
    ".xlsm": "application/vnd.ms-excel.sheet.macroEnabled.12",
}


def resolve_mime_type(declared: Optional[str], filename: str) -> Optional[str]:
    """Pick the MIME type to trust for an upload.

    The declared type wins when it is supported; generic types fall back to
    the file extension.

    Example:
        >>> resolve_mime_type('application/octet-stream', 'fiche.pdf')
        'application/pdf'
        >>> resolve_mime_type('application/msword', 'fiche.doc') is None
        True
    """
    declared = (declared or "").split(";")[0].strip().lower()
    if declared in SUPPORTED_MIME_TYPES:
        return declared
    if declared in GENERIC_MIME_TYPES:
        extension = os.path.splitext(filename or "")[1].lower()
        return EXTENSION_MIME_TYPES.get(extension)
    return None


def document_kind(mime_type: str) -> Optional[DocumentKind]:
    return SUPPORTED_MIME_TYPES.get(mime_type)


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: str) -> Tuple[bool, Optional[str]]:
    """Validate an uploaded filename.

    Rules: not empty, at most 255 characters, no control characters.
    Directory components are stripped by sanitize_filename, not rejected.
    """
    if not filename or not filename.strip():
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Keep the basename and replace characters unsafe for storage.

    Example:
        >>> sanitize_filename('C:\\\\scans\\\\ARC 4512.pdf')
        'ARC_4512.pdf'
    """
    filename = os.path.basename(filename.replace("\\", "/"))
    filename = re.sub(r"[^\w\s.°-]", "_", filename)
    filename = re.sub(r"[\s_]+", "_", filename)
    return filename[:255]
