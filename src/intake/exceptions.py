"""Custom exceptions for the intake package."""


class IntakeError(Exception):
    """Base exception for all intake errors."""
    pass


class InputError(IntakeError):
    """The folder given to a sync request is missing or unusable."""
    pass


class WatchSetupError(IntakeError):
    """A directory watcher could not be created or started."""
    pass


class QueueError(IntakeError):
    """Error related to the admission queue."""
    pass


class QueueFullError(QueueError):
    """Admission queue has reached its configured capacity."""
    pass


class QueueClosedError(QueueError):
    """Admission queue has been closed."""
    pass


class ValidationError(IntakeError):
    """A format check rejected the file contents."""
    pass


class ExtractorUnavailableError(IntakeError):
    """No external tool needed to read a file format is installed."""
    pass
