"""Error types shared by the core and the shell.

The shell raises these at its I/O boundaries; the orchestrator and the
polling engine decide whether a given error ends a cycle or is recorded
and skipped.
"""


class ShakeWatchError(Exception):
    """Base class for all ShakeWatch errors."""


class FeedUnavailable(ShakeWatchError):
    """The seismic feed could not be reached or returned a non-success status.

    Attributes:
        status_code: Upstream HTTP status, None for transport failures
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FeedParseError(ShakeWatchError):
    """The seismic feed returned a payload that is not a feature collection."""


class InvalidRegistration(ShakeWatchError):
    """A registration request failed validation.

    Attributes:
        errors: Human-readable description of every problem found
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors) if errors else "Invalid registration")
        self.errors = errors


class DispatchFailure(ShakeWatchError):
    """The push gateway rejected a batch or could not be reached.

    Attributes:
        status_code: Gateway HTTP status, None for transport failures
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermissionDenied(ShakeWatchError):
    """The user declined a device capability (location, notifications)."""


class Unsupported(ShakeWatchError):
    """The device cannot provide a capability at all."""
