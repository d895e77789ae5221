"""
Base validator class and registry.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from ..config import MAX_FILE_SIZE
from ..exceptions import ValidationError
from ..models import ValidationOutcome

logger = logging.getLogger(__name__)

TOO_LARGE = "Too large"


class BaseValidator(ABC):
    """Abstract base class for structural format validators."""

    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions (with dot, e.g., '.pdf')."""
        pass

    @abstractmethod
    def check(self, file_path: Path, data: bytes) -> None:
        """
        Check that data is a structurally valid document.

        Args:
            file_path: Path the bytes were read from (used for messages only)
            data: Raw file contents

        Raises:
            ValidationError: If the contents are not a valid document
        """
        pass

    def can_validate(self, file_path: Path) -> bool:
        if isinstance(file_path, str):
            file_path = Path(file_path)
        return file_path.suffix.lower() in self.supported_extensions()


class ValidatorRegistry:
    """Registry that maps extensions to validators and folds failures into outcomes."""

    def __init__(self, max_file_size: int = MAX_FILE_SIZE):
        self.max_file_size = max_file_size
        self._validators: List[BaseValidator] = []
        self._extension_map: Dict[str, BaseValidator] = {}

    def register(self, validator: BaseValidator) -> None:
        """
        Register a validator.

        Args:
            validator: Validator instance to register
        """
        self._validators.append(validator)
        for ext in validator.supported_extensions():
            self._extension_map[ext.lower()] = validator

    def get_validator(self, extension: str) -> Optional[BaseValidator]:
        return self._extension_map.get(extension.lower())

    def validate(self, file_path: Path, extension: str, data: bytes) -> ValidationOutcome:
        """
        Validate raw file contents.

        The size check runs first and does not depend on the extension.
        Content failures become ``REJECTED``; anything else a validator
        raises becomes ``INTERNAL_ERROR``. Never raises.

        Args:
            file_path: Path of the file (for messages)
            extension: File extension with dot
            data: Raw file contents

        Returns:
            The validation outcome
        """
        if len(data) > self.max_file_size:
            return ValidationOutcome.rejected(TOO_LARGE)

        validator = self.get_validator(extension)
        if validator is None:
            return ValidationOutcome.rejected(f"Unsupported file type: {extension}")

        try:
            validator.check(Path(file_path), data)
        except ValidationError as e:
            logger.debug(f"{validator.__class__.__name__} rejected {file_path}: {e}")
            return ValidationOutcome.rejected(str(e))
        except Exception as e:
            logger.error(f"{validator.__class__.__name__} failed for {file_path}: {e}", exc_info=True)
            return ValidationOutcome.internal_error(f"Internal validator error: {e}")

        return ValidationOutcome.accepted()

    def validate_file(self, file_path: Path) -> ValidationOutcome:
        """
        Validate a file on disk.

        Oversize files are rejected from their stat size without reading
        them.

        Args:
            file_path: Path to the file

        Returns:
            The validation outcome
        """
        if isinstance(file_path, str):
            file_path = Path(file_path)

        try:
            if file_path.stat().st_size > self.max_file_size:
                return ValidationOutcome.rejected(TOO_LARGE)
            data = file_path.read_bytes()
        except OSError as e:
            logger.error(f"Could not read {file_path}: {e}")
            return ValidationOutcome.internal_error(f"Could not read file: {e}")

        return self.validate(file_path, file_path.suffix.lower(), data)

    def supported_extensions(self) -> List[str]:
        return list(self._extension_map.keys())

    def __len__(self) -> int:
        return len(self._validators)
