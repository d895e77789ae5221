"""Write-completion detection for files under a watched root."""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class PendingFile:
    """A file seen by the watcher that has not been stable long enough yet."""
    path: Path
    first_seen: float = field(default_factory=time.time)
    stable_since: float = field(default_factory=time.time)
    size: Optional[int] = None
    mtime: Optional[float] = None


class StabilityTracker:
    """
    Holds files back until their size and mtime stop changing.

    A file becomes ready once two consecutive stat results match and the
    match has held for the stability threshold. Any change, or a new
    filesystem event for the path, restarts the quiet period.
    """

    def __init__(
        self,
        threshold_ms: int = 2000,
        stat: Optional[Callable[[Path], os.stat_result]] = None,
    ):
        """
        Initialize the tracker.

        Args:
            threshold_ms: Quiet period in milliseconds
            stat: Function used to stat files (defaults to os.stat)
        """
        self.threshold_ms = threshold_ms
        self._stat = stat or os.stat
        self._pending: Dict[Path, PendingFile] = {}
        self._lock = threading.Lock()

    def observe(self, path: Path, timestamp: Optional[float] = None) -> None:
        """
        Record activity on a path.

        Args:
            path: File that was created or modified
            timestamp: When the activity happened
        """
        now = timestamp if timestamp is not None else time.time()
        with self._lock:
            pending = self._pending.get(path)
            if pending is None:
                self._pending[path] = PendingFile(path=path, first_seen=now, stable_since=now)
            else:
                pending.stable_since = now

    def discard(self, path: Path) -> None:
        with self._lock:
            self._pending.pop(path, None)

    def check(self, current_time: Optional[float] = None) -> List[Tuple[PendingFile, int]]:
        """
        Stat every pending file and return the ones that are stable.

        Files that vanished are dropped without being reported.

        Args:
            current_time: Current timestamp

        Returns:
            List of (pending file, size in bytes) tuples ready to emit
        """
        now = current_time if current_time is not None else time.time()
        window_sec = self.threshold_ms / 1000.0
        ready = []

        with self._lock:
            to_remove = []

            for path, pending in self._pending.items():
                try:
                    st = self._stat(path)
                except FileNotFoundError:
                    logger.debug(f"Pending file disappeared: {path}")
                    to_remove.append(path)
                    continue
                except OSError as e:
                    logger.warning(f"Cannot stat pending file {path}: {e}")
                    to_remove.append(path)
                    continue

                if st.st_size != pending.size or st.st_mtime != pending.mtime:
                    pending.size = st.st_size
                    pending.mtime = st.st_mtime
                    pending.stable_since = now
                    continue

                if (now - pending.stable_since) >= window_sec:
                    ready.append((pending, st.st_size))
                    to_remove.append(path)

            for path in to_remove:
                del self._pending[path]

        return ready

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, path: Path) -> bool:
        with self._lock:
            return path in self._pending

    def clear(self) -> None:
        """Forget all pending files."""
        with self._lock:
            self._pending.clear()
