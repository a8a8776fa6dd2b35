"""Error taxonomy for the karaoke service.

Services raise these; routers translate them into HTTP responses.
"""


class KaraokeError(Exception):
    """Base exception for karaoke service errors."""

    def __init__(self, message: str, error_type: str = "karaoke_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class ValidationError(KaraokeError):
    """Raised when a request parameter is malformed.

    Pagination parameters are resolved to defaults by the caller, so this
    normally stays inside the parameter-resolution helpers.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "validation_error")
        self.field = field


class PersistenceError(KaraokeError):
    """Raised when the database is unreachable or rejects a read or write."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message, "persistence_error")
        self.operation = operation


class NotFoundError(KaraokeError):
    """Raised when a requested record does not exist or is not visible."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} {resource_id} not found", "not_found")
        self.resource = resource
        self.resource_id = resource_id


class GenerationError(KaraokeError):
    """Raised when the LLM call fails or returns an unusable answer."""

    def __init__(self, message: str):
        super().__init__(message, "generation_error")


class ConfigurationError(KaraokeError):
    """Raised when a required setting (e.g. the LLM API key) is missing."""

    def __init__(self, message: str):
        super().__init__(message, "configuration_error")
