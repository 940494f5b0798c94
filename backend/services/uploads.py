"""
Validation of uploaded question papers and answer sheets.
"""
import fitz  # PyMuPDF

from backend.config import SUPPORTED_UPLOAD_TYPES

INVALID_PDF_MESSAGE = "Please upload a valid PDF file."


def is_pdf_upload(filename: str, mimetype: str) -> bool:
    """Accept by declared type, or by extension when the browser sends a generic type."""
    if mimetype in SUPPORTED_UPLOAD_TYPES:
        return True
    return (filename or "").lower().endswith(".pdf") and mimetype in ("", None, "application/octet-stream")


def validate_pdf(data: bytes, filename: str = "", mimetype: str = "application/pdf") -> int:
    """
    Check an upload is a readable PDF and return its page count.

    Raises ValueError with a user-facing message otherwise.
    """
    if not data or not is_pdf_upload(filename, mimetype):
        raise ValueError(INVALID_PDF_MESSAGE)
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise ValueError(INVALID_PDF_MESSAGE) from e
    try:
        page_count = doc.page_count
    finally:
        doc.close()
    if page_count == 0:
        raise ValueError(INVALID_PDF_MESSAGE)
    return page_count
