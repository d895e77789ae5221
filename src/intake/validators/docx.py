"""
Structural .docx validator.

Only checks that the zip container holds the parts Word needs; the XML
inside is not parsed.
"""

import io
import zipfile
from pathlib import Path
from typing import List, Optional

from ..config import DOCX_REQUIRED_ENTRIES
from ..exceptions import ValidationError
from .base import BaseValidator


class DocxValidator(BaseValidator):
    """Validator for Office Open XML word documents."""

    def __init__(self, required_entries: Optional[List[str]] = None):
        self.required_entries = list(required_entries or DOCX_REQUIRED_ENTRIES)

    def supported_extensions(self) -> List[str]:
        return [".docx"]

    def check(self, file_path: Path, data: bytes) -> None:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = set(archive.namelist())
        except zipfile.BadZipFile:
            raise ValidationError("Invalid DOCX: not a zip archive")

        for entry in self.required_entries:
            if entry not in names:
                raise ValidationError(f"Invalid DOCX: missing {entry}")
