"""Directory watcher using the watchdog library."""

import itertools
import logging
import os
import threading
from pathlib import Path
from typing import Callable, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserverVFS

from .config import IntakeConfig
from .exceptions import WatchSetupError
from .models import IngestEvent
from .stabilizer import PendingFile, StabilityTracker

logger = logging.getLogger(__name__)

_generation_counter = itertools.count(1)


class IntakeEventHandler(FileSystemEventHandler):
    """Forwards watchdog events for one root to its DirectoryWatcher."""

    def __init__(self, watcher: "DirectoryWatcher"):
        super().__init__()
        self.watcher = watcher

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            logger.error(f"Watcher error on {self.watcher.root} for {event.src_path}: {e}", exc_info=True)

    def _forward(self, raw_path, is_directory: bool) -> None:
        path = Path(os.path.abspath(os.fsdecode(raw_path)))
        if is_directory:
            self.watcher.scan(path)
        else:
            self.watcher.notice(path)

    def on_created(self, event):
        logger.debug(f"created: {event.src_path}")
        self._forward(event.src_path, event.is_directory)

    def on_modified(self, event):
        if not event.is_directory:
            self._forward(event.src_path, False)

    def on_moved(self, event):
        logger.debug(f"moved: {event.src_path} -> {event.dest_path}")
        self._forward(event.dest_path, event.is_directory)


class DirectoryWatcher:
    """
    Watches one folder subtree and reports each completed file once.

    Files already present when watching starts are reported too. A file is
    handed to ``on_file_ready`` only after its size has held still for the
    configured stability threshold. Every instance is its own watcher
    generation: the paths it has emitted are remembered and never emitted
    again by it.
    """

    def __init__(
        self,
        root: Path,
        on_file_ready: Callable[[IngestEvent], None],
        config: Optional[IntakeConfig] = None,
    ):
        """
        Initialize the watcher.

        Args:
            root: Folder to watch
            on_file_ready: Callback for every stabilized file
            config: Intake configuration
        """
        self.root = Path(root).expanduser().resolve()
        self.on_file_ready = on_file_ready
        self.config = config or IntakeConfig()
        self.generation = next(_generation_counter)

        self._tracker = StabilityTracker(self.config.stability_threshold_ms)
        self._seen: Set[Path] = set()
        self._observer: Optional[BaseObserver] = None
        self._flush_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._running = False

    def _accepts_dir(self, directory: Path) -> bool:
        return not (
            self.config.is_excluded(directory, self.root)
            or len(directory.relative_to(self.root).parts) > self.config.max_depth
        )

    def _listdir(self, path: str) -> List[os.DirEntry]:
        """Directory listing for the polling observer: skips excluded folders and unreadable ones."""
        directory = Path(path)
        if directory != self.root and not self._accepts_dir(directory):
            return []
        try:
            with os.scandir(path) as entries:
                return list(entries)
        except PermissionError as e:
            logger.warning(f"Permission denied while watching {path}: {e}")
            return []

    def _create_observer(self) -> BaseObserver:
        if self.config.use_polling:
            return PollingObserverVFS(
                os.stat,
                self._listdir,
                polling_interval=self.config.observer_timeout_s,
            )
        return Observer()

    def start(self) -> None:
        """
        Start watching and scan files that already exist.

        Raises:
            WatchSetupError: If the root is not a directory or the observer fails to start
        """
        with self._lock:
            if self._running:
                raise WatchSetupError(f"Watcher already running for {self.root}")

            if not self.root.is_dir():
                raise WatchSetupError(f"Not a directory: {self.root}")

            observer = self._create_observer()
            try:
                observer.schedule(IntakeEventHandler(self), str(self.root), recursive=True)
                observer.start()
            except Exception as e:
                raise WatchSetupError(f"Could not watch {self.root}: {e}") from e

            self._observer = observer
            self._stop_event.clear()
            self._flush_thread = threading.Thread(
                target=self._flush_loop,
                name=f"IntakeFlush-{self.generation}",
                daemon=True,
            )
            self._flush_thread.start()
            self._running = True

        logger.info(f"Watching {self.root} (generation {self.generation}, polling={self.config.use_polling})")
        self.scan(self.root)

    def close(self) -> None:
        """
        Stop watching and wait for the observer and flush threads to exit.

        No event is emitted by this watcher once close() returns. Safe to
        call more than once.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()
            observer = self._observer
            flush_thread = self._flush_thread
            self._observer = None
            self._flush_thread = None

        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
        if flush_thread is not None and flush_thread is not threading.current_thread():
            flush_thread.join(timeout=5.0)

        self._tracker.clear()
        logger.info(f"Stopped watching {self.root} (generation {self.generation})")

    @property
    def is_running(self) -> bool:
        return self._running

    def notice(self, path: Path) -> None:
        """
        Track a file that was created or changed.

        Excluded, too-deep and non-allow-listed paths are dropped here,
        before anything is tracked.
        """
        if self._stop_event.is_set():
            return
        if self.config.is_excluded(path, self.root):
            return
        if self.config.exceeds_depth(path, self.root):
            return
        if not self.config.is_allowed(path):
            return

        with self._lock:
            if path in self._seen:
                return

        self._tracker.observe(path)

    def scan(self, directory: Path) -> int:
        """
        Walk a directory and track every eligible file in it.

        Args:
            directory: Directory under the root

        Returns:
            Number of files handed to the tracker
        """
        directory = Path(directory)
        if directory != self.root and not self._accepts_dir(directory):
            return 0

        count = 0
        for dirpath, dirnames, filenames in os.walk(directory, onerror=self._on_walk_error):
            current = Path(dirpath)
            dirnames[:] = [d for d in dirnames if self._accepts_dir(current / d)]
            for name in filenames:
                self.notice(current / name)
                count += 1
        return count

    def _on_walk_error(self, error: OSError) -> None:
        if isinstance(error, PermissionError):
            logger.warning(f"Permission denied while scanning {error.filename}; skipping")
        else:
            logger.error(f"Error scanning {error.filename}: {error}")

    def _flush_loop(self) -> None:
        interval = self.config.poll_interval_ms / 1000.0
        logger.debug(f"Flush loop started for {self.root}, interval={interval}s")

        while not self._stop_event.is_set():
            try:
                for pending, size in self._tracker.check():
                    if self._stop_event.is_set():
                        break
                    self._emit(pending, size)
            except Exception as e:
                logger.error(f"Flush loop error for {self.root}: {e}", exc_info=True)

            self._stop_event.wait(timeout=interval)

    def _emit(self, pending: PendingFile, size: int) -> None:
        with self._lock:
            if pending.path in self._seen:
                return
            self._seen.add(pending.path)

        event = IngestEvent(
            file_path=pending.path,
            root=self.root,
            extension=pending.path.suffix.lower(),
            size_bytes=size,
            detected_at=pending.first_seen,
        )
        logger.debug(f"File ready: {event.file_path} ({size} bytes)")
        try:
            self.on_file_ready(event)
        except Exception as e:
            logger.error(f"Error handling {event.file_path}: {e}", exc_info=True)

    def seen_count(self) -> int:
        with self._lock:
            return len(self._seen)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
