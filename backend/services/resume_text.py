# backend/services/resume_text.py
"""
Plain-text extraction for uploaded resume files (PDF, DOCX).
"""

import io
import logging
import re

import docx
import fitz

from services.errors import ParseError

logger = logging.getLogger(__name__)

MIN_RESUME_CHARS = 20


def extract_pdf_text(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n".join(p.get_text() for p in doc)


def extract_docx_text(data: bytes) -> str:
    d = docx.Document(io.BytesIO(data))
    return "\n".join(p.text for p in d.paragraphs)


def clean_text(t: str) -> str:
    t = t.replace("\x00", " ")
    t = re.sub(r"[ \t]+", " ", t)
    t = re.sub(r"\n{2,}", "\n", t)
    return t.strip()


def extract_resume_text(data: bytes, filename: str) -> str:
    """
    Pick an extractor from the file extension, falling back to trying both.

    Raises:
        ParseError: unsupported file, or too little text came out of it
    """
    name = (filename or "").lower()

    if name.endswith(".pdf"):
        text = extract_pdf_text(data)
    elif name.endswith(".docx"):
        text = extract_docx_text(data)
    else:
        try:
            text = extract_pdf_text(data)
        except Exception:
            try:
                text = extract_docx_text(data)
            except Exception:
                raise ParseError("Unsupported file. Please upload a PDF or DOCX.")

    text = clean_text(text)

    if len(text) < MIN_RESUME_CHARS:
        raise ParseError("Could not read text from file (image-only PDF?). Try a text-based PDF/DOCX.")

    logger.info(f"Extracted {len(text)} chars from {filename or 'upload'}")
    return text
