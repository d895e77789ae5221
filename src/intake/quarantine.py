"""Quarantine of rejected files and the in-memory results log."""

import logging
import os
import threading
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional

from .config import QUARANTINE_DIR
from .models import QuarantineRecord

logger = logging.getLogger(__name__)


class ResultsLog:
    """
    Thread-safe, optionally bounded log of quarantine records.

    When a limit is set the oldest records are dropped first.
    """

    def __init__(self, limit: Optional[int] = 1000):
        self.limit = limit
        self._records: Deque[QuarantineRecord] = deque(maxlen=limit)
        self._dropped = 0
        self._lock = threading.Lock()

    def append(self, record: QuarantineRecord) -> None:
        with self._lock:
            if self.limit is not None and len(self._records) == self.limit:
                self._dropped += 1
            self._records.append(record)

    def records(self) -> List[QuarantineRecord]:
        with self._lock:
            return list(self._records)

    def to_list(self) -> List[dict]:
        return [r.to_dict() for r in self.records()]

    @property
    def dropped(self) -> int:
        """Number of records evicted because of the limit."""
        with self._lock:
            return self._dropped

    def clear(self) -> int:
        with self._lock:
            count = len(self._records)
            self._records.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def _free_destination(folder: Path, filename: str) -> Path:
    """Pick ``name``, then ``name-1``, ``name-2``... until nothing exists there."""
    candidate = folder / filename
    if not candidate.exists():
        return candidate

    stem, suffix = os.path.splitext(filename)
    counter = 1
    while True:
        candidate = folder / f"{stem}-{counter}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


class QuarantineRouter:
    """Moves rejected files into ``<root>/invalid-format`` and records why."""

    def __init__(self, results: Optional[ResultsLog] = None, folder_name: str = QUARANTINE_DIR):
        self.results = results if results is not None else ResultsLog()
        self.folder_name = folder_name
        self._lock = threading.Lock()

    def quarantine(
        self,
        file_path: Path,
        root: Path,
        reason: str,
        internal_error: bool = False,
    ) -> Optional[QuarantineRecord]:
        """
        Move a file into the quarantine folder of its watched root.

        Never raises: failures are logged and reported as None.

        Args:
            file_path: The rejected file
            root: Watched root the file belongs to
            reason: Why the file was rejected
            internal_error: True if validation broke rather than failed

        Returns:
            The recorded QuarantineRecord, or None if the move failed
        """
        file_path = Path(file_path)
        folder = Path(root) / self.folder_name

        try:
            folder.mkdir(parents=True, exist_ok=True)
            # Destination choice and rename must not interleave between two files of the same name.
            with self._lock:
                destination = _free_destination(folder, file_path.name)
                os.replace(file_path, destination)
        except FileNotFoundError:
            logger.warning(f"Could not quarantine {file_path}: file no longer exists")
            return None
        except OSError as e:
            logger.error(f"Could not quarantine {file_path}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error quarantining {file_path}: {e}", exc_info=True)
            return None

        record = QuarantineRecord(
            filename=file_path.name,
            reason=reason,
            quarantined_path=destination,
            internal_error=internal_error,
        )
        self.results.append(record)

        if internal_error:
            logger.error(f"Quarantined {file_path.name} after internal error: {reason}")
        else:
            logger.warning(f"Quarantined {file_path.name}: {reason}")
        return record
