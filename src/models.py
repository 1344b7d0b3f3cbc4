"""Data models for Random Raindrop Telegram Bot."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from .exceptions import ParseError

TELEGRAM_PARSE_MODE = "Markdown"


@dataclass(frozen=True)
class BookmarkItem:
    """A single bookmark (a "raindrop") from a collection."""

    identifier: int | str
    title: str
    excerpt: str
    link: str
    domain: str
    created: str

    @classmethod
    def from_payload(cls, raw: dict[str, Any]) -> "BookmarkItem":
        """Build a BookmarkItem from one element of the API ``items`` list.

        Raises:
            ParseError: If a required field is missing or the link is not a URL
        """
        if not isinstance(raw, dict):
            raise ParseError("bookmark entry is not an object")

        missing = [key for key in ("_id", "title", "link") if raw.get(key) is None]
        if missing:
            raise ParseError(f"bookmark entry is missing {', '.join(missing)}")

        link = str(raw["link"])
        try:
            parsed = urlparse(link)
            hostname = parsed.hostname
        except ValueError:
            raise ParseError(f"bookmark {raw['_id']} has an invalid link") from None
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ParseError(f"bookmark {raw['_id']} has an invalid link")

        return cls(
            identifier=raw["_id"],
            title=str(raw["title"]),
            excerpt=str(raw.get("excerpt") or ""),
            link=link,
            domain=str(raw.get("domain") or hostname or ""),
            created=str(raw.get("created") or ""),
        )


@dataclass(frozen=True)
class BookmarkCollectionResponse:
    """The items returned by one collection request (at most 30 upstream)."""

    items: tuple[BookmarkItem, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> "BookmarkCollectionResponse":
        if not isinstance(payload, dict):
            raise ParseError("response body is not a JSON object")

        items = payload.get("items")
        if not isinstance(items, list):
            raise ParseError("response body has no items list")

        return cls(items=tuple(BookmarkItem.from_payload(raw) for raw in items))

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class OutboundMessage:
    """A message ready to be posted to the Telegram Bot API."""

    chat_id: str
    text: str
    parse_mode: str = field(default=TELEGRAM_PARSE_MODE, init=False)

    def to_payload(self) -> dict[str, str]:
        return {"chat_id": self.chat_id, "text": self.text, "parse_mode": self.parse_mode}


class TerminalState(str, Enum):
    """The four ways an invocation can end."""

    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"
    NOTIFIED_OF_FAILURE = "notified_of_failure"
    DOUBLY_FAILED = "doubly_failed"


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of a single scheduled run. Never persisted."""

    state: TerminalState
    item: BookmarkItem | None = None
    error: str | None = None
    notified: bool = False

    @classmethod
    def delivered(cls, item: BookmarkItem) -> "InvocationResult":
        return cls(state=TerminalState.DELIVERED, item=item, notified=True)

    @classmethod
    def failed(
        cls,
        state: TerminalState,
        error: str,
        notified: bool,
        item: BookmarkItem | None = None,
    ) -> "InvocationResult":
        return cls(state=state, item=item, error=error, notified=notified)

    @property
    def succeeded(self) -> bool:
        """True when the chat received the message the run was meant to send."""
        return self.state in (TerminalState.DELIVERED, TerminalState.NOTIFIED_OF_FAILURE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "item_id": self.item.identifier if self.item else None,
            "item_title": self.item.title if self.item else None,
            "error": self.error,
            "notified": self.notified,
        }
