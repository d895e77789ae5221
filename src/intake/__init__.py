"""
Folder Intake Package

Watches folders for new documents, checks that each one is a structurally
valid PDF, DOCX or DOC file, and admits it to an in-memory processing
queue while notifying connected observers. Invalid files are moved into
an ``invalid-format`` subfolder with a recorded reason.

Features:
- One live watcher per folder, replaced cleanly on re-sync
- Write-stability debounce so partial files are never validated
- Native or polling filesystem observers
- Shallow structural validation with bounded run time
- Quarantine with collision-free renames
- Fire-and-forget observer broadcasts
"""

from .models import (
    OutcomeKind,
    SyncState,
    IngestEvent,
    ValidationOutcome,
    QuarantineRecord,
    SyncResult,
    folder_empty_message,
    watching_started_message,
    file_queued_message,
)

from .config import IntakeConfig, APIConfig

from .exceptions import (
    IntakeError,
    InputError,
    WatchSetupError,
    QueueError,
    QueueFullError,
    QueueClosedError,
    ValidationError,
    ExtractorUnavailableError,
)

from .queue import AdmissionQueue
from .quarantine import QuarantineRouter, ResultsLog
from .broadcaster import Broadcaster, Observer, CallbackObserver
from .stabilizer import StabilityTracker
from .registry import WatchRegistry, normalize_path
from .fs_watcher import DirectoryWatcher, IntakeEventHandler
from .process import IntakeProcess


__all__ = [
    # Models
    "OutcomeKind",
    "SyncState",
    "IngestEvent",
    "ValidationOutcome",
    "QuarantineRecord",
    "SyncResult",
    "folder_empty_message",
    "watching_started_message",
    "file_queued_message",
    # Config
    "IntakeConfig",
    "APIConfig",
    # Exceptions
    "IntakeError",
    "InputError",
    "WatchSetupError",
    "QueueError",
    "QueueFullError",
    "QueueClosedError",
    "ValidationError",
    "ExtractorUnavailableError",
    # Components
    "AdmissionQueue",
    "QuarantineRouter",
    "ResultsLog",
    "Broadcaster",
    "Observer",
    "CallbackObserver",
    "StabilityTracker",
    "WatchRegistry",
    "normalize_path",
    "DirectoryWatcher",
    "IntakeEventHandler",
    # Main Process
    "IntakeProcess",
]

__version__ = "0.1.0"
