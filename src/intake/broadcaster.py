"""Fan-out of lifecycle and queue notifications to connected observers."""

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Observer(Protocol):
    """A connected listener. Only ``send`` and ``is_open`` are required."""

    def send(self, message: str) -> None: ...

    def is_open(self) -> bool: ...


class CallbackObserver:
    """Observer that hands each message to a callable, e.g. print or a list's append."""

    def __init__(self, callback: Callable[[str], Any]):
        self.callback = callback
        self._open = True

    def send(self, message: str) -> None:
        self.callback(message)

    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False


class Broadcaster:
    """
    Sends JSON messages to every open observer.

    Delivery is fire-and-forget: closed observers are skipped and a
    failing send is logged, never retried or raised.
    """

    def __init__(self):
        self._observers: List[Observer] = []
        self._lock = threading.Lock()

    def add(self, observer: Observer) -> None:
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def remove(self, observer: Observer) -> bool:
        with self._lock:
            try:
                self._observers.remove(observer)
                return True
            except ValueError:
                return False

    def broadcast(self, event: Dict[str, Any]) -> int:
        """
        Send an event to all open observers.

        Args:
            event: JSON-serializable message

        Returns:
            Number of observers the message was delivered to
        """
        message = json.dumps(event)
        with self._lock:
            observers = list(self._observers)

        delivered = 0
        for observer in observers:
            try:
                if not observer.is_open():
                    continue
                observer.send(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping message for observer {observer!r}: {e}")

        logger.debug(f"Broadcast to {delivered} observer(s): {message}")
        return delivered

    def prune(self) -> int:
        """
        Forget observers whose connection is closed.

        Returns:
            Number of observers removed
        """
        with self._lock:
            before = len(self._observers)
            self._observers = [o for o in self._observers if _is_open(o)]
            return before - len(self._observers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)


def _is_open(observer: Observer) -> bool:
    try:
        return bool(observer.is_open())
    except Exception:
        return False
