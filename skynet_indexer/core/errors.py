"""
Error types shared by the correlation pipeline and the search service.
"""


class SkynetError(Exception):
    """Base class for indexer errors."""


class DecodeFailure(SkynetError):
    """A request body could not be parsed as structured data.

    Soft failure: the engine catches it and records it as a field-level error.
    """

    def __init__(self, message: str, body: str = None):
        super().__init__(message)
        self.body = body


class StoreUnavailable(SkynetError):
    """The persisted store could not be reached or queried."""

    def __init__(self, operation: str, cause: Exception = None):
        message = f"Store unavailable during {operation}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause
