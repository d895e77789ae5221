"""In-memory admission queue for accepted files."""

import logging
import threading
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Optional, Union

from .exceptions import QueueClosedError, QueueFullError

logger = logging.getLogger(__name__)


def process_queue(queue_length: int) -> None:
    """Default downstream trigger: signal that new work is available."""
    logger.info(f"Processing queue ({queue_length} pending)")


class AdmissionQueue:
    """
    Thread-safe FIFO of accepted file paths.

    Features:
    - Arrival-order admission, no content dedup
    - Optional capacity with QueueFullError as backpressure signal
    - Downstream trigger after every successful enqueue
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        on_enqueued: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize the queue.

        Args:
            max_size: Maximum number of pending paths (None = unbounded)
            on_enqueued: Trigger invoked with the new length after each enqueue
        """
        self.max_size = max_size
        self.on_enqueued = on_enqueued if on_enqueued is not None else process_queue
        self._items: Deque[str] = deque()
        self._lock = threading.Lock()
        self._closed = False

    def enqueue(self, file_path: Union[str, Path]) -> int:
        """
        Append a path to the queue.

        Args:
            file_path: Accepted file

        Returns:
            The queue length after the append

        Raises:
            QueueFullError: If the queue is at capacity
            QueueClosedError: If the queue is closed
        """
        with self._lock:
            if self._closed:
                raise QueueClosedError("Queue is closed")
            if self.max_size is not None and len(self._items) >= self.max_size:
                raise QueueFullError(f"Queue is full ({self.max_size} items)")

            self._items.append(str(file_path))
            length = len(self._items)

        try:
            self.on_enqueued(length)
        except Exception as e:
            logger.error(f"Queue trigger failed: {e}", exc_info=True)

        return length

    def dequeue(self, batch_size: int = 1) -> List[str]:
        """
        Remove and return up to batch_size paths, oldest first.
        """
        with self._lock:
            if self._closed:
                raise QueueClosedError("Queue is closed")
            count = min(batch_size, len(self._items))
            return [self._items.popleft() for _ in range(count)]

    def peek(self, batch_size: int = 1) -> List[str]:
        with self._lock:
            return list(self._items)[:batch_size]

    def snapshot(self) -> List[str]:
        """Copy of all pending paths in queue order."""
        with self._lock:
            return list(self._items)

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> int:
        with self._lock:
            count = len(self._items)
            self._items.clear()
            return count

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self.size()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
