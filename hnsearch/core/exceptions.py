class SearchValidationError(ValueError):
    """Raised when a search request falls outside the accepted bounds."""


class RemoteSourceError(Exception):
    """Raised when the Hacker News API cannot be reached or answers with an error."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url
