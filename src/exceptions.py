"""Exception taxonomy for Random Raindrop Telegram Bot."""


class ConfigurationError(Exception):
    """Raised when a required configuration value is missing or invalid."""


class BookmarkSourceError(Exception):
    """Base class for failures while fetching a bookmark from Raindrop.io."""

    kind = "Bookmark source error"

    def describe(self) -> str:
        """Return a human-readable description suitable for a chat message."""
        return f"{self.kind}: {self}"


class EmptyCollectionError(BookmarkSourceError):
    """The collection exists but contains no bookmarks."""

    kind = "Empty collection"

    def __init__(self, collection_id: str):
        self.collection_id = collection_id
        super().__init__(f"collection {collection_id} has no bookmarks")


class UpstreamError(BookmarkSourceError):
    """The bookmark service answered with a non-2xx status."""

    kind = "Bookmark service error"

    def __init__(self, status_code: int, status_text: str = ""):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"HTTP {status_code} {status_text}".rstrip())

    def describe(self) -> str:
        return f"{self.kind}: the bookmark service answered {self}."


class AuthError(UpstreamError):
    """401/403 from the bookmark service."""

    kind = "Authorization failed"

    def describe(self) -> str:
        return (
            f"{self.kind}: the bookmark service rejected the access token ({self})."
        )


class NotFoundError(UpstreamError):
    """404 from the bookmark service."""

    kind = "Collection not found"

    def describe(self) -> str:
        return f"{self.kind}: the bookmark service does not know this collection ({self})."


class RateLimitedError(UpstreamError):
    """429 from the bookmark service."""

    kind = "Rate limited"

    def describe(self) -> str:
        return f"{self.kind}: too many requests to the bookmark service ({self})."


class ServerError(UpstreamError):
    """5xx from the bookmark service."""

    kind = "Bookmark service unavailable"

    def describe(self) -> str:
        return f"{self.kind}: the bookmark service had an internal error ({self})."


class ParseError(BookmarkSourceError):
    """The response body could not be interpreted as a bookmark collection."""

    kind = "Invalid response"


class NetworkError(BookmarkSourceError):
    """The request never produced an HTTP response (connection, timeout)."""

    kind = "Network error"


class DeliveryError(Exception):
    """Telegram did not accept a message."""

    def __init__(self, status_code: int | None, description: str = ""):
        self.status_code = status_code
        self.description = description
        if status_code is None:
            message = f"Telegram delivery failed: {description}"
        else:
            message = f"Telegram delivery failed with HTTP {status_code}"
            if description:
                message += f": {description}"
        super().__init__(message)


def error_for_status(status_code: int, status_text: str = "") -> UpstreamError:
    """Map a non-2xx HTTP status to the matching UpstreamError subclass."""
    if status_code in (401, 403):
        return AuthError(status_code, status_text)
    if status_code == 404:
        return NotFoundError(status_code, status_text)
    if status_code == 429:
        return RateLimitedError(status_code, status_text)
    if 500 <= status_code <= 599:
        return ServerError(status_code, status_text)
    return UpstreamError(status_code, status_text)
