"""
Exception hierarchy for bulkshot.

Only IngestionError, ConfigurationError, OutputDirectoryError and
LaunchError escape the public API. SessionLostError and CaptureCancelled
are raised and handled inside the batch orchestrator.
"""


class BulkshotError(Exception):
    """Base class for all bulkshot errors."""


class IngestionError(BulkshotError):
    """The URL list resource could not be opened or read."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class ConfigurationError(BulkshotError, ValueError):
    """Capture options are invalid (unsupported format, bad numbers, ...)."""


class OutputDirectoryError(BulkshotError):
    """The base output directory could not be created."""


class LaunchError(BulkshotError):
    """The browser engine could not be started."""


class SessionLostError(BulkshotError):
    """The browser process went away in the middle of a run."""


class CaptureCancelled(BulkshotError):
    """A cancellation token was observed between pipeline stages."""
