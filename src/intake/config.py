"""Configuration for the intake package."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


MAX_FILE_SIZE = 5 * 1024 * 1024

QUARANTINE_DIR = "invalid-format"
DUPLICATES_DIR = "duplicates"
FAILED_PROCESSING_DIR = "failed-processing"

DOCX_REQUIRED_ENTRIES = [
    "word/document.xml",
    "word/_rels/document.xml.rels",
    "[Content_Types].xml",
]


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    if value.strip().lower() == "none":
        return None
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass
class IntakeConfig:
    """
    Configuration options for folder intake.

    Attributes:
        max_file_size: Files larger than this many bytes are rejected
        allowed_extensions: Extensions (with dot) that reach validation
        reserved_dirs: Subfolders of a watched root that are never scanned
        quarantine_dir: Subfolder that receives rejected files
        stability_threshold_ms: Quiet period a file's size must hold before it is reported
        poll_interval_ms: Interval between stability checks
        use_polling: Use a polling observer instead of native OS events
        observer_timeout_s: Polling observer scan interval in seconds
        max_depth: Deepest directory level below the root that is watched
        validation_timeout_seconds: Upper bound on validating a single file
        max_workers: Size of the per-file worker pool
        queue_max_size: Admission queue capacity (None = unbounded)
        results_log_limit: Quarantine records kept in memory (None = unbounded)
        docx_required_entries: Zip entries a .docx must contain
    """
    max_file_size: int = MAX_FILE_SIZE
    allowed_extensions: List[str] = field(default_factory=lambda: [".pdf", ".docx", ".doc"])
    reserved_dirs: List[str] = field(default_factory=lambda: [
        QUARANTINE_DIR,
        DUPLICATES_DIR,
        FAILED_PROCESSING_DIR,
    ])
    quarantine_dir: str = QUARANTINE_DIR
    stability_threshold_ms: int = 2000
    poll_interval_ms: int = 100
    use_polling: bool = True
    observer_timeout_s: float = 1.0
    max_depth: int = 99
    validation_timeout_seconds: float = 30.0
    max_workers: int = 4
    queue_max_size: Optional[int] = None
    results_log_limit: Optional[int] = 1000
    docx_required_entries: List[str] = field(default_factory=lambda: list(DOCX_REQUIRED_ENTRIES))

    def __post_init__(self):
        self.allowed_extensions = [
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in self.allowed_extensions
        ]
        if self.quarantine_dir not in self.reserved_dirs:
            self.reserved_dirs = list(self.reserved_dirs) + [self.quarantine_dir]
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0: {self.max_depth}")
        if self.queue_max_size is not None and self.queue_max_size <= 0:
            raise ValueError(f"queue_max_size must be positive: {self.queue_max_size}")

    def is_allowed(self, path: Path) -> bool:
        """Check whether a file's extension is on the allow-list."""
        if isinstance(path, str):
            path = Path(path)
        return path.suffix.lower() in self.allowed_extensions

    def is_excluded(self, path: Path, root: Path) -> bool:
        """
        Check if a path under root must never be reported.

        Hidden components anywhere below the root and the reserved
        subfolders (by relative-path prefix) are excluded. Paths outside
        the root are excluded as well.

        Args:
            path: Absolute path to check
            root: Absolute watched root

        Returns:
            True if the path should be ignored
        """
        try:
            rel = Path(path).relative_to(root)
        except ValueError:
            return True

        parts = rel.parts
        if not parts:
            return False

        if any(part.startswith(".") for part in parts):
            return True

        rel_str = rel.as_posix()
        for reserved in self.reserved_dirs:
            if rel_str == reserved or rel_str.startswith(reserved + "/"):
                return True

        return False

    def exceeds_depth(self, path: Path, root: Path) -> bool:
        """Check if a file lies deeper than max_depth directories below root."""
        try:
            rel = Path(path).relative_to(root)
        except ValueError:
            return True
        return len(rel.parts) - 1 > self.max_depth

    @classmethod
    def from_env(cls, prefix: str = "INTAKE_") -> "IntakeConfig":
        """Build a configuration from environment variables, falling back to defaults."""
        defaults = cls()
        extensions = os.environ.get(f"{prefix}ALLOWED_EXTENSIONS")
        return cls(
            max_file_size=_env_int(f"{prefix}MAX_FILE_SIZE", defaults.max_file_size),
            allowed_extensions=(
                [e.strip() for e in extensions.split(",") if e.strip()]
                if extensions else defaults.allowed_extensions
            ),
            stability_threshold_ms=_env_int(f"{prefix}STABILITY_THRESHOLD_MS", defaults.stability_threshold_ms),
            poll_interval_ms=_env_int(f"{prefix}POLL_INTERVAL_MS", defaults.poll_interval_ms),
            use_polling=_env_bool(f"{prefix}USE_POLLING", defaults.use_polling),
            max_depth=_env_int(f"{prefix}MAX_DEPTH", defaults.max_depth),
            validation_timeout_seconds=_env_float(
                f"{prefix}VALIDATION_TIMEOUT_SECONDS", defaults.validation_timeout_seconds
            ),
            max_workers=_env_int(f"{prefix}MAX_WORKERS", defaults.max_workers),
            queue_max_size=_env_int(f"{prefix}QUEUE_MAX_SIZE", defaults.queue_max_size),
            results_log_limit=_env_int(f"{prefix}RESULTS_LOG_LIMIT", defaults.results_log_limit),
        )


@dataclass(frozen=True)
class APIConfig:
    """Settings for the HTTP/WebSocket server."""
    host: str = "127.0.0.1"
    port: int = 3000

    @classmethod
    def from_env(cls, prefix: str = "INTAKE_") -> "APIConfig":
        return cls(
            host=os.environ.get(f"{prefix}HOST", cls.host),
            port=int(os.environ.get(f"{prefix}PORT", cls.port)),
        )
