"""Error taxonomy for workspace operations.

Everything a controller is expected to catch derives from WorkspaceError.
A failing user program is not an error here: it comes back as a RunResult
with a non-zero exit code.
"""


class WorkspaceError(Exception):
    """Base class for failures the UI reports instead of crashing on."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(WorkspaceError):
    """Rejected locally before any network call."""


class NotFoundError(WorkspaceError):
    """The id no longer resolves on the backend."""


class ConnectivityError(WorkspaceError):
    """The backend could not be reached or timed out."""


class ProviderUnavailable(WorkspaceError):
    """No text-generation provider is configured on the backend."""


class ApiError(WorkspaceError):
    """Any other non-2xx response."""

    def __init__(self, message: str = "", status: int = 0, code: str | None = None):
        super().__init__(message)
        self.status = status
        self.code = code


class MalformedResponse(WorkspaceError):
    """The backend answered with a payload that does not fit the schema."""
