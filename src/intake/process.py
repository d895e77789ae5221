"""Folder sync orchestrator: watcher events to validation, queue and quarantine."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

from .broadcaster import Broadcaster
from .config import IntakeConfig
from .exceptions import InputError, QueueClosedError, QueueFullError
from .fs_watcher import DirectoryWatcher
from .models import (
    IngestEvent,
    SyncResult,
    SyncState,
    ValidationOutcome,
    file_queued_message,
    folder_empty_message,
    watching_started_message,
)
from .queue import AdmissionQueue
from .quarantine import QuarantineRouter, ResultsLog
from .registry import WatchRegistry, normalize_path
from .validators import ValidatorRegistry, create_default_registry

logger = logging.getLogger(__name__)


class IntakeProcess:
    """
    Owns all intake state for the lifetime of the process.

    Coordinates the watch registry, per-file validation, the admission
    queue, quarantine and observer notifications. Construct one, call
    sync_folder() for each folder, and close() on shutdown.
    """

    def __init__(
        self,
        config: Optional[IntakeConfig] = None,
        broadcaster: Optional[Broadcaster] = None,
        validators: Optional[ValidatorRegistry] = None,
        on_enqueued: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize the intake process.

        Args:
            config: Intake configuration
            broadcaster: Observer fan-out (a new one is created if omitted)
            validators: Format validators (defaults to pdf/docx/doc)
            on_enqueued: Downstream trigger called after each admission
        """
        self.config = config or IntakeConfig()
        self.broadcaster = broadcaster if broadcaster is not None else Broadcaster()
        self.validators = validators if validators is not None else create_default_registry(
            max_file_size=self.config.max_file_size,
            docx_required_entries=self.config.docx_required_entries,
        )
        self.queue = AdmissionQueue(self.config.queue_max_size, on_enqueued)
        self.results = ResultsLog(self.config.results_log_limit)
        self.quarantine = QuarantineRouter(self.results, self.config.quarantine_dir)

        self._registry = WatchRegistry()
        self._workers = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="IntakeWorker",
        )
        # Timed-out validations keep running; spare threads keep them from starving new files.
        self._validation_pool = ThreadPoolExecutor(
            max_workers=self.config.max_workers * 2,
            thread_name_prefix="IntakeValidate",
        )
        self._in_flight: Set[Path] = set()
        self._idle = threading.Condition()
        self._admission_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Sync requests
    # ------------------------------------------------------------------

    def sync_folder(self, folder_path: Optional[Union[str, Path]]) -> SyncResult:
        """
        Start (or restart) watching a folder.

        Args:
            folder_path: Folder to watch, as given by the caller

        Returns:
            SyncResult in state EMPTY, WATCHING or FAILED
        """
        try:
            folder = self._validate_input(folder_path)

            if not os.listdir(folder):
                logger.info(f"Folder is empty: {folder}")
                self.broadcaster.broadcast(folder_empty_message())
                return SyncResult(SyncState.EMPTY, "Folder is empty", folder)

            self._registry.register(folder, self._create_watcher)
        except InputError as e:
            logger.warning(f"Rejected sync request for {folder_path!r}: {e}")
            return SyncResult(SyncState.FAILED, f"Error: {e}")
        except Exception as e:
            logger.error(f"Sync failed for {folder_path!r}: {e}", exc_info=True)
            return SyncResult(SyncState.FAILED, f"Error: {e}")

        message = watching_started_message(str(folder_path))
        logger.info(message["message"])
        self.broadcaster.broadcast(message)
        return SyncResult(SyncState.WATCHING, message["message"], folder)

    def _validate_input(self, folder_path: Optional[Union[str, Path]]) -> Path:
        if self._closed:
            raise InputError("Intake process is closed")
        if folder_path is None or not str(folder_path).strip():
            raise InputError("Missing folderPath")

        folder = normalize_path(folder_path)
        if not folder.exists():
            raise InputError(f"Folder does not exist: {folder_path}")
        if not folder.is_dir():
            raise InputError(f"Not a directory: {folder_path}")
        return folder

    def _create_watcher(self, folder: Path) -> DirectoryWatcher:
        return DirectoryWatcher(folder, self._on_file_ready, self.config)

    def unwatch(self, folder_path: Union[str, Path]) -> bool:
        """
        Stop watching a folder.

        Returns:
            True if a watcher was closed
        """
        removed = self._registry.unregister(folder_path)
        if removed:
            logger.info(f"Stopped watching folder: {folder_path}")
        return removed

    def is_watching(self, folder_path: Union[str, Path]) -> bool:
        return self._registry.is_watching(folder_path)

    def watched_folders(self) -> List[Path]:
        return self._registry.get_watched_paths()

    def get_watcher(self, folder_path: Union[str, Path]) -> Optional[DirectoryWatcher]:
        return self._registry.get(folder_path)

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    def _on_file_ready(self, event: IngestEvent) -> None:
        """Watcher callback: hand the file to the worker pool unless it is already being handled."""
        if self._closed:
            return

        with self._idle:
            if event.file_path in self._in_flight:
                logger.debug(f"Already processing {event.file_path}; skipping")
                return
            self._in_flight.add(event.file_path)

        try:
            self._workers.submit(self._process_event, event)
        except RuntimeError as e:
            logger.warning(f"Could not schedule {event.file_path}: {e}")
            self._finish(event.file_path)

    def _process_event(self, event: IngestEvent) -> None:
        try:
            outcome = self._validate(event)
            if outcome is None:
                logger.warning(f"Validation of {event.file_path} never started; leaving file in place")
            elif outcome.is_accepted:
                self._admit(event)
            else:
                self.quarantine.quarantine(
                    event.file_path,
                    event.root,
                    outcome.reason or "Invalid file",
                    internal_error=outcome.is_internal_error,
                )
        except Exception as e:
            logger.error(f"Unexpected error handling {event.file_path}: {e}", exc_info=True)
        finally:
            self._finish(event.file_path)

    def _validate(self, event: IngestEvent) -> Optional[ValidationOutcome]:
        """
        Validate a file on the validation pool with a bounded run time.

        The timeout counts from the moment the validation starts running,
        not from submission, so files waiting behind a stuck validation
        are not charged for it.

        Returns:
            The outcome, or None if the process closed before the
            validation could start
        """
        timeout = self.config.validation_timeout_seconds
        started = threading.Event()

        def run() -> ValidationOutcome:
            started.set()
            return self.validators.validate_file(event.file_path)

        try:
            future = self._validation_pool.submit(run)
        except RuntimeError:
            return None

        while not started.wait(timeout=0.1):
            if self._closed or future.done():
                future.cancel()
                if not started.is_set():
                    return None
                break

        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            logger.error(f"Validation of {event.file_path} timed out after {timeout:g}s")
            return ValidationOutcome.rejected(f"Validation timed out after {timeout:g}s")
        except Exception as e:
            return ValidationOutcome.internal_error(f"Internal validator error: {e}")

    def _admit(self, event: IngestEvent) -> None:
        # Enqueue and broadcast together so queueLength values go out in queue order.
        with self._admission_lock:
            try:
                length = self.queue.enqueue(event.file_path)
            except QueueFullError as e:
                logger.warning(f"Not admitting {event.file_path}: {e}")
                return
            except QueueClosedError:
                logger.warning(f"Not admitting {event.file_path}: queue is closed")
                return

            logger.info(f"File queued: {event.filename} (queue length {length})")
            self.broadcaster.broadcast(file_queued_message(event.filename, length))

    def _finish(self, file_path: Path) -> None:
        with self._idle:
            self._in_flight.discard(file_path)
            if not self._in_flight:
                self._idle.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no file is being validated, queued or quarantined.

        Returns:
            True if idle, False on timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._in_flight, timeout=timeout)

    def in_flight_count(self) -> int:
        with self._idle:
            return len(self._in_flight)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close every watcher and stop the worker pools."""
        if self._closed:
            return
        self._closed = True

        count = self._registry.close_all()
        logger.info(f"Closed {count} watcher(s)")

        self._workers.shutdown(wait=True, cancel_futures=True)
        self._validation_pool.shutdown(wait=False, cancel_futures=True)
        self.queue.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
