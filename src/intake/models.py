"""Data models for the intake package."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
import time


QUARANTINE_STATUS = "invalid-format"


class OutcomeKind(Enum):
    """Kinds of validation outcome."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    INTERNAL_ERROR = "internal_error"


class SyncState(Enum):
    """States a folder-sync request passes through."""
    VALIDATING_INPUT = "validating_input"
    EMPTY = "empty"
    WATCHING = "watching"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestEvent:
    """
    A file that appeared under a watched root and has stopped changing.

    Attributes:
        file_path: Full absolute path to the file
        root: The watched root the file belongs to
        extension: Lower-cased file extension, with dot
        size_bytes: File size at the moment it was considered stable
        detected_at: Unix timestamp when the file was first seen
    """
    file_path: Path
    root: Path
    extension: str
    size_bytes: int
    detected_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.file_path.is_absolute():
            raise ValueError(f"file_path must be absolute: {self.file_path}")
        if not self.root.is_absolute():
            raise ValueError(f"root must be absolute: {self.root}")

    @property
    def filename(self) -> str:
        return self.file_path.name

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "file_path": str(self.file_path),
            "root": str(self.root),
            "extension": self.extension,
            "size_bytes": self.size_bytes,
            "detected_at": self.detected_at,
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of validating one file.

    ``REJECTED`` means the content failed a format check. ``INTERNAL_ERROR``
    means the validator itself broke and says nothing about the content.
    """
    kind: OutcomeKind
    reason: Optional[str] = None

    @classmethod
    def accepted(cls) -> "ValidationOutcome":
        return cls(OutcomeKind.ACCEPTED)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationOutcome":
        return cls(OutcomeKind.REJECTED, reason)

    @classmethod
    def internal_error(cls, reason: str) -> "ValidationOutcome":
        return cls(OutcomeKind.INTERNAL_ERROR, reason)

    @property
    def is_accepted(self) -> bool:
        return self.kind == OutcomeKind.ACCEPTED

    @property
    def is_internal_error(self) -> bool:
        return self.kind == OutcomeKind.INTERNAL_ERROR


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class QuarantineRecord:
    """
    A file that was moved into the quarantine folder.

    Attributes:
        filename: Original base name of the file
        reason: Why the file was rejected
        quarantined_path: Where the file ended up
        status: Always "invalid-format"
        timestamp: ISO-8601 UTC time of the move
        internal_error: True when the validator failed rather than the content
    """
    filename: str
    reason: str
    quarantined_path: Optional[Path] = None
    status: str = QUARANTINE_STATUS
    timestamp: str = field(default_factory=_utc_now_iso)
    internal_error: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "filename": self.filename,
            "status": self.status,
            "reason": self.reason,
            "timestamp": self.timestamp,
            "quarantined_path": str(self.quarantined_path) if self.quarantined_path else None,
            "internal_error": self.internal_error,
        }


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a sync request for one folder."""
    state: SyncState
    message: str
    path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.state != SyncState.FAILED

    def to_dict(self) -> dict:
        return {"message": self.message}


# Observer messages

def folder_empty_message() -> Dict[str, Any]:
    return {"message": "Folder is empty"}


def watching_started_message(folder_path: str) -> Dict[str, Any]:
    return {"message": f"Started watching folder: {folder_path}"}


def file_queued_message(filename: str, queue_length: int) -> Dict[str, Any]:
    return {"message": f"File queued: {filename}", "queueLength": queue_length}
