"""Error taxonomy shared by services, repositories and handlers."""


class PromptPilotError(Exception):
    """Base class for all errors raised by the core."""


class ValidationError(PromptPilotError):
    """Caller-supplied input violates a precondition."""


class NotFoundError(PromptPilotError):
    """A referenced prompt, rating or object does not exist."""


class RemoteError(PromptPilotError):
    """A call to the remote data source or storage provider failed.

    Attributes:
        code: Optional provider error code (e.g. "not-found", "permission-denied")
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class MissingIndexError(RemoteError):
    """The query shape needs an index the remote data source does not have."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="failed-precondition")
