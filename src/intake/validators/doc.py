"""
Legacy Word (.doc) validator.

A .doc file passes when the text extractor (antiword or catdoc) yields some text.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..exceptions import ExtractorUnavailableError, ValidationError
from .base import BaseValidator

logger = logging.getLogger(__name__)

EMPTY_DOC = "Empty DOC"

DEFAULT_EXTRACTORS = ("antiword", "catdoc")


def extract_doc_text(data: bytes, commands: Sequence[str] = DEFAULT_EXTRACTORS, timeout: float = 30) -> str:
    """
    Extract raw text from .doc bytes with antiword, falling back to catdoc.

    Args:
        data: Raw .doc contents
        commands: Extractor executables to try, in order
        timeout: Seconds allowed for each extractor

    Returns:
        Extracted text (possibly empty)

    Raises:
        ExtractorUnavailableError: If none of the extractors is installed
        ValidationError: If the installed extractors could not read the file
    """
    fd, tmp_name = tempfile.mkstemp(suffix=".doc")
    errors = []
    missing = []
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        for command in commands:
            try:
                result = subprocess.run(
                    [command, tmp_name],
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except FileNotFoundError:
                missing.append(command)
                continue
            except subprocess.TimeoutExpired:
                errors.append(f"{command} timed out")
                continue

            if result.returncode == 0:
                return result.stdout
            errors.append(f"{command}: {result.stderr.strip() or f'exit code {result.returncode}'}")
    finally:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass

    if not errors:
        raise ExtractorUnavailableError(f"No DOC text extractor installed (tried {', '.join(missing)})")
    raise ValidationError(f"Cannot read DOC: {'; '.join(errors)}")


class DocValidator(BaseValidator):
    """Validator for legacy binary Word documents."""

    def __init__(self, extractor: Optional[Callable[[bytes], str]] = None):
        self.extractor = extractor or extract_doc_text

    def supported_extensions(self) -> List[str]:
        return [".doc"]

    def check(self, file_path: Path, data: bytes) -> None:
        try:
            text = self.extractor(data)
        except (ValidationError, ExtractorUnavailableError):
            raise
        except Exception as e:
            raise ValidationError(str(e) or f"Cannot read DOC {file_path.name}") from e

        if not text or not text.strip():
            raise ValidationError(EMPTY_DOC)
