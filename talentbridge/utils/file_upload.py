"""
Upload handling for resumes and recorded voice answers.

Resumes: PDF (PyPDF2), DOCX (python-docx) or plain text, up to
settings.max_upload_mb. Voice answers: any audio/* upload or a known audio
extension, up to settings.max_audio_mb, stored untouched.
"""

import io
import logging
from typing import Callable, Dict, Iterator, Tuple

from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from docx import Document

from talentbridge.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {'.webm', '.ogg', '.mp3', '.m4a', '.wav'}
TEXT_ENCODINGS = ('utf-8', 'latin-1', 'cp1252')
MB = 1024 * 1024


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def _enforce_limit(content: bytes, limit_mb: int) -> None:
    if len(content) > limit_mb * MB:
        raise HTTPException(status_code=413, detail=f"File too large. Maximum size: {limit_mb}MB")


def _pdf_lines(content: bytes) -> Iterator[str]:
    for page in PdfReader(io.BytesIO(content)).pages:
        yield page.extract_text() or ''


def _docx_lines(content: bytes) -> Iterator[str]:
    document = Document(io.BytesIO(content))
    yield from (p.text for p in document.paragraphs if p.text.strip())
    # Skills and experience are often laid out in tables
    for table in document.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                yield ' | '.join(cells)


def decode_text(content: bytes) -> str:
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode text file")


def _binary_reader(label: str, lines: Callable[[bytes], Iterator[str]]) -> Callable[[bytes], str]:
    def read(content: bytes) -> str:
        try:
            return '\n'.join(line for line in lines(content) if line)
        except Exception as e:
            logger.warning("%s extraction failed: %s", label, e)
            raise HTTPException(status_code=400, detail=f"Error reading {label}: {e}")
    return read


RESUME_READERS: Dict[str, Callable[[bytes], str]] = {
    '.pdf': _binary_reader('PDF', _pdf_lines),
    '.docx': _binary_reader('DOCX', _docx_lines),
    '.txt': decode_text,
}


async def extract_text_from_file(file: UploadFile) -> Tuple[str, str, bytes]:
    """
    Read a resume upload and pull out its text.

    Returns:
        (text, filename, raw_bytes)
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    reader = RESUME_READERS.get(get_file_extension(file.filename))
    if reader is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{get_file_extension(file.filename)}'. Allowed: PDF, DOCX, TXT"
        )

    content = await file.read()
    _enforce_limit(content, settings.max_upload_mb)

    text = reader(content)
    if not text.strip():
        raise HTTPException(status_code=400, detail="Could not extract text from resume. File may be empty or scanned.")
    return text, file.filename, content


async def read_audio_upload(file: UploadFile) -> Tuple[bytes, str, str]:
    """Returns (audio_bytes, filename, content_type); unknown types default to audio/webm."""
    content_type = file.content_type or ""
    ext = get_file_extension(file.filename or "")
    if not content_type.startswith("audio/") and ext not in AUDIO_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Audio file required")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Audio file is empty")
    _enforce_limit(content, settings.max_audio_mb)

    if not content_type.startswith("audio/"):
        content_type = "audio/webm"
    return content, file.filename or f"answer{ext or '.webm'}", content_type
