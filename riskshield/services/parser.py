"""
Certificate of Currency PDF text extraction.

Uses **pdfplumber** to dump page text for the AI extraction layer.
Certificates are usually generated PDFs. Scans carry no text layer; their
pages are rendered to PNG with **PyMuPDF** for the vision model instead.
"""


import io
import logging
import re

import pdfplumber

logger = logging.getLogger(__name__)

__all__ = ["extract_raw_text", "has_text_layer", "render_pdf_pages"]

_MIN_TEXT_CHARS = 40


def _clean(val: str | None) -> str:
    """Collapse runs of blank space inside a line; return empty string for None."""
    if not val:
        return ""
    return re.sub(r"[ \t]+", " ", val).strip()


def extract_raw_text(pdf_bytes: bytes) -> str:
    """Extract the full raw text from a PDF for AI processing.

    Tables are appended after the page text with ``|`` separated cells so
    the limit/excess grid of a certificate survives the flattening.
    """
    pdf_file = io.BytesIO(pdf_bytes)
    pages: list[str] = []
    with pdfplumber.open(pdf_file) as pdf:
        for page in pdf.pages:
            text = _clean(page.extract_text())
            if text:
                pages.append(text)
            for table in page.extract_tables() or []:
                rows = [" | ".join(_clean(cell) for cell in row) for row in table if any(row)]
                if rows:
                    pages.append("\n".join(rows))
    logger.debug("Extracted %d text blocks from PDF", len(pages))
    return "\n".join(pages)


def has_text_layer(raw_text: str) -> bool:
    return len(raw_text.strip()) >= _MIN_TEXT_CHARS


def render_pdf_pages(pdf_bytes: bytes, max_pages: int, dpi: int) -> list[bytes]:
    """Render the first *max_pages* pages as PNG bytes for the vision model.

    Raises ``ValueError`` for unreadable or password-protected PDFs.
    """
    import fitz  # PyMuPDF; only scanned certificates need it

    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as exc:
        raise ValueError(f"Unable to open PDF: {exc}") from exc

    if doc.is_encrypted:
        doc.close()
        raise ValueError("Password-protected PDFs are not supported. Please upload an unprotected document.")

    zoom = dpi / 72  # PyMuPDF renders at 72 DPI by default
    images: list[bytes] = []
    try:
        for page_num in range(min(len(doc), max_pages)):
            pix = doc[page_num].get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            images.append(pix.tobytes("png"))
    finally:
        doc.close()

    if not images:
        raise ValueError("PDF contains no renderable pages.")
    logger.info("Rendered %d PDF page(s) at %d DPI for vision extraction", len(images), dpi)
    return images
