"""Shared fixtures for intake tests."""

import io
import time
import zipfile
from pathlib import Path

import pytest

from src.intake.config import IntakeConfig


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.05) -> bool:
    """Poll predicate until it is true or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def pdf_bytes(text: str = "Jane Doe - Resume") -> bytes:
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def docx_bytes(text: str = "Jane Doe - Resume") -> bytes:
    from docx import Document

    document = Document()
    document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def zip_bytes(entries) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name in entries:
            archive.writestr(name, "<xml/>")
    return buffer.getvalue()


@pytest.fixture
def fast_config() -> IntakeConfig:
    """Config with short stability windows so watcher tests finish quickly."""
    return IntakeConfig(
        stability_threshold_ms=200,
        poll_interval_ms=20,
        observer_timeout_s=0.1,
        use_polling=True,
        validation_timeout_seconds=10.0,
    )


@pytest.fixture
def make_pdf():
    def _make(path: Path, text: str = "Jane Doe - Resume") -> Path:
        path.write_bytes(pdf_bytes(text))
        return path
    return _make


@pytest.fixture
def make_docx():
    def _make(path: Path, text: str = "Jane Doe - Resume") -> Path:
        path.write_bytes(docx_bytes(text))
        return path
    return _make
