"""
Alert pipeline exceptions.

Errors are told apart by type, never by message text. Source errors are
handled inside the retrieval layer; authorization and lookup errors are
raised to whoever triggers a manual evaluation.
"""


class NewsAlertError(Exception):
    """Base exception for all alert pipeline errors."""

    pass


class SourceError(NewsAlertError):
    """An article source could not produce articles."""

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class TransportError(SourceError):
    """Network failure or timeout while talking to a source."""

    pass


class ProviderError(SourceError):
    """Source answered with a non-success status or an unusable body."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, source=source)
        self.status_code = status_code


class ParseError(SourceError):
    """Syndication feed body is not a parseable feed."""

    pass


class AuthorizationError(NewsAlertError):
    """Subscription accessed by someone other than its owner."""

    pass


class NotFoundError(NewsAlertError):
    """Requested subscription does not exist."""

    pass
