"""
Tests for upload validation and text extraction.
"""

import asyncio
import io

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from talentbridge.utils import file_upload


def upload(content: bytes, filename: str, content_type: str = "application/octet-stream") -> UploadFile:
    return UploadFile(io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


class TestGetFileExtension:

    def test_lowercase(self):
        assert file_upload.get_file_extension("Resume.Final.PDF") == ".pdf"

    def test_none(self):
        assert file_upload.get_file_extension("resume") == ""


class TestExtractFromTxt:

    def test_utf8(self):
        assert file_upload.decode_text("Zoë".encode("utf-8")) == "Zoë"

    def test_latin1_fallback(self):
        assert file_upload.decode_text("Zoë".encode("latin-1")) == "Zoë"


class TestExtractTextFromFile:
    """Tests for resume upload validation."""

    def test_txt(self):
        text, filename, raw = asyncio.run(file_upload.extract_text_from_file(upload(b"Python dev", "cv.txt")))
        assert (text, filename, raw) == ("Python dev", "cv.txt", b"Python dev")

    def test_unsupported_extension(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(file_upload.extract_text_from_file(upload(b"x", "cv.png")))
        assert exc.value.status_code == 400

    def test_blank_text(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(file_upload.extract_text_from_file(upload(b"   \n", "cv.txt")))
        assert "Could not extract text from resume" in exc.value.detail

    def test_too_large(self, monkeypatch):
        monkeypatch.setattr(file_upload.settings, "max_upload_mb", 0)
        with pytest.raises(HTTPException) as exc:
            asyncio.run(file_upload.extract_text_from_file(upload(b"Python dev", "cv.txt")))
        assert exc.value.status_code == 413


class TestReadAudioUpload:
    """Tests for voice answer uploads."""

    def test_audio_content_type(self):
        content, filename, content_type = asyncio.run(
            file_upload.read_audio_upload(upload(b"OggS", "answer.ogg", "audio/ogg"))
        )
        assert (content, filename, content_type) == (b"OggS", "answer.ogg", "audio/ogg")

    def test_extension_without_audio_type(self):
        _, _, content_type = asyncio.run(file_upload.read_audio_upload(upload(b"data", "answer.webm")))
        assert content_type == "audio/webm"

    def test_not_audio(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(file_upload.read_audio_upload(upload(b"data", "notes.txt", "text/plain")))
        assert exc.value.detail == "Audio file required"

    def test_empty(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(file_upload.read_audio_upload(upload(b"", "answer.webm", "audio/webm")))
        assert exc.value.detail == "Audio file is empty"
