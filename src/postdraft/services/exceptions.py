"""Custom exceptions for Postdraft services."""


class PostdraftError(Exception):
    """Base class for all Postdraft errors."""


class AlreadyStreaming(PostdraftError):
    """Raised when a completion is started while another one is streaming."""

    def __init__(self, message: str = "A completion is already streaming for this document"):
        self.message = message
        super().__init__(message)


class CompletionError(PostdraftError):
    """Terminal failure of one completion session.

    Never fatal to the editor: the session ends as Failed and the partially
    inserted text is rolled back.

    Attributes:
        message: Human-readable error message (shown to the user)
        kind: Short machine-readable failure kind used in logs
    """

    kind = "completion_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RateLimited(CompletionError):
    """The generation endpoint refused the request with its rate-limit message."""

    kind = "rate_limited"


class NetworkError(CompletionError):
    """The generation endpoint could not be reached or the stream broke."""

    kind = "network_error"


class UpstreamError(CompletionError):
    """The generation endpoint answered with an error response."""

    kind = "upstream_error"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(PostdraftError):
    """Raised when the persistence backend rejects or fails a save.

    Attributes:
        post_id: Identifier of the post being saved
        message: Error reported by the backend
    """

    def __init__(self, post_id: str, message: str):
        self.post_id = post_id
        self.message = message
        super().__init__(f"{message} (post {post_id})")


class SlugRequired(PostdraftError):
    """Raised when a slug metadata update is attempted with an empty slug."""

    def __init__(self, message: str = "Slug required"):
        self.message = message
        super().__init__(message)


class ConfigFileError(PostdraftError):
    """Raised when the configuration file is not valid YAML or not a mapping.

    Attributes:
        path: Configuration file that failed to load
        message: What is wrong with it
    """

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Invalid configuration file {path}: {message}")


class MalformedSlidesData(PostdraftError):
    """Raised when persisted slides JSON is not a list of strings.

    Attributes:
        raw: The offending raw value (truncated for logs by callers)
    """

    def __init__(self, raw: str, message: str = "Slides data is not a JSON list of strings"):
        self.raw = raw
        self.message = message
        super().__init__(message)


class InvalidTransition(PostdraftError):
    """Raised when a completion session receives an event its status does not accept."""

    def __init__(self, status: str, event: str):
        self.status = status
        self.event = event
        super().__init__(f"Event {event!r} is not allowed in status {status!r}")
