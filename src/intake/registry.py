"""Thread-safe registry of the live watcher for each watched folder."""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class WatcherHandle(Protocol):
    """What the registry needs from a watcher."""

    def start(self) -> None: ...

    def close(self) -> None: ...


WatcherFactory = Callable[[Path], WatcherHandle]


def normalize_path(path: Union[str, Path]) -> Path:
    """Resolve a folder path to the absolute form used as registry key."""
    return Path(path).expanduser().resolve()


class WatchRegistry:
    """
    Maps normalized folder paths to their single live watcher.

    Registering a path that already has a watcher closes the old one, and
    waits for it, before the new one is created.
    """

    def __init__(self):
        self._watchers: Dict[Path, WatcherHandle] = {}
        self._lock = threading.Lock()

    def register(self, path: Union[str, Path], factory: WatcherFactory) -> WatcherHandle:
        """
        Install a fresh watcher for a folder.

        Args:
            path: Folder path, in any form that resolves to the folder
            factory: Builds an unstarted watcher for the normalized path

        Returns:
            The started watcher handle

        Raises:
            Exception: Whatever the factory or start() raised; the new
                handle is closed first and nothing is stored
        """
        key = normalize_path(path)

        with self._lock:
            previous = self._watchers.pop(key, None)
            if previous is not None:
                logger.info(f"Replacing watcher for {key}")
                self._close_quietly(key, previous)

            handle = factory(key)
            try:
                handle.start()
            except Exception:
                self._close_quietly(key, handle)
                raise

            self._watchers[key] = handle
            return handle

    def unregister(self, path: Union[str, Path]) -> bool:
        """
        Close and forget the watcher for a folder.

        Args:
            path: Folder path

        Returns:
            True if a watcher was removed, False if none was registered
        """
        key = normalize_path(path)

        with self._lock:
            handle = self._watchers.pop(key, None)
            if handle is None:
                return False
            self._close_quietly(key, handle)
            return True

    def _close_quietly(self, key: Path, handle: WatcherHandle) -> None:
        try:
            handle.close()
        except Exception as e:
            logger.error(f"Error closing watcher for {key}: {e}", exc_info=True)

    def get(self, path: Union[str, Path]) -> Optional[WatcherHandle]:
        key = normalize_path(path)
        with self._lock:
            return self._watchers.get(key)

    def is_watching(self, path: Union[str, Path]) -> bool:
        return self.get(path) is not None

    def get_watched_paths(self) -> List[Path]:
        with self._lock:
            return list(self._watchers.keys())

    def close_all(self) -> int:
        """
        Close every watcher.

        Returns:
            Number of watchers closed
        """
        with self._lock:
            items = list(self._watchers.items())
            self._watchers.clear()

            for key, handle in items:
                self._close_quietly(key, handle)

            return len(items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._watchers)

    def __contains__(self, path: Union[str, Path]) -> bool:
        return self.is_watching(path)
