"""
PDF validator using PyMuPDF.
"""

import logging
from pathlib import Path
from typing import List

from ..exceptions import ValidationError
from .base import BaseValidator

logger = logging.getLogger(__name__)


class PDFValidator(BaseValidator):
    """Accepts byte streams PyMuPDF can open as a PDF with at least one page."""

    def supported_extensions(self) -> List[str]:
        return [".pdf"]

    def check(self, file_path: Path, data: bytes) -> None:
        import fitz  # pymupdf

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ValidationError(str(e) or f"Failed to open PDF {file_path.name}") from e

        try:
            if doc.page_count < 1:
                raise ValidationError("Invalid PDF: document has no pages")
        finally:
            doc.close()
