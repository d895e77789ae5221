"""
Structural format validators for the intake package.
"""

from typing import Callable, List, Optional

from ..config import MAX_FILE_SIZE
from .base import BaseValidator, ValidatorRegistry, TOO_LARGE
from .doc import DocValidator, EMPTY_DOC, extract_doc_text
from .docx import DocxValidator
from .pdf import PDFValidator

__all__ = [
    "BaseValidator",
    "ValidatorRegistry",
    "DocValidator",
    "DocxValidator",
    "PDFValidator",
    "extract_doc_text",
    "create_default_registry",
    "TOO_LARGE",
    "EMPTY_DOC",
]


def create_default_registry(
    max_file_size: int = MAX_FILE_SIZE,
    docx_required_entries: Optional[List[str]] = None,
    doc_extractor: Optional[Callable[[bytes], str]] = None,
) -> ValidatorRegistry:
    """Create a registry with the PDF, DOCX and DOC validators."""
    registry = ValidatorRegistry(max_file_size=max_file_size)
    registry.register(PDFValidator())
    registry.register(DocxValidator(docx_required_entries))
    registry.register(DocValidator(doc_extractor))
    return registry
