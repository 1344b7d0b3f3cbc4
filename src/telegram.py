"""Telegram Publisher for Random Raindrop Telegram Bot."""

from collections.abc import Callable
from datetime import UTC, datetime

import requests

from .config import TelegramConfig
from .exceptions import DeliveryError
from .logging_config import create_execution_logger
from .models import BookmarkItem, OutboundMessage

MAX_MESSAGE_LENGTH = 4096
ELLIPSIS = "…"
MARKDOWN_SPECIAL_CHARS = frozenset("\\_*[]()~`>#+-=|{}.!")

ARTICLE_TEMPLATE_HEAD = "📚 *{title}*\n\n"
ARTICLE_TEMPLATE_TAIL = "🌐 {domain}\n🔗 [Open link]({link})\n\n🕒 {timestamp}"
ERROR_TEMPLATE_HEAD = "⚠️ *Random bookmark delivery failed*\n\n"
ERROR_TEMPLATE_TAIL = "🕒 {timestamp}"
PARAGRAPH_BREAK = "\n\n"


def escape_markdown(text: str) -> str:
    """
    Escape markup-significant characters so Telegram renders them literally.

    Args:
        text: User-controlled text (title, excerpt, domain, error description)

    Returns:
        Text with every significant character prefixed by a backslash

    Messages go out with the legacy "Markdown" parse mode, which only honours
    backslash escapes before ``_ * ` [``. The other characters in the set are
    escaped as well, so they show up in the chat with a visible backslash
    (``example\\.com``). That is accepted in exchange for never sending a
    message Telegram fails to parse.
    """
    if not text:
        return ""
    return "".join(f"\\{char}" if char in MARKDOWN_SPECIAL_CHARS else char for char in text)


def escape_link(url: str) -> str:
    """Escape the characters that would close a Markdown link target early."""
    return url.replace("\\", "\\\\").replace(")", "\\)")


def truncate_escaped(text: str, limit: int) -> str:
    """
    Shorten already-escaped text to at most ``limit`` characters.

    The cut is followed by an ellipsis and never splits an escape sequence.
    """
    if len(text) <= limit:
        return text
    if limit <= len(ELLIPSIS):
        return ""

    cut = text[: limit - len(ELLIPSIS)]
    # An odd run of trailing backslashes ends in a dangling escape.
    trailing = len(cut) - len(cut.rstrip("\\"))
    if trailing % 2:
        cut = cut[:-1]
    return cut + ELLIPSIS


def _compose(head: str, body: str, tail: str) -> str:
    """Join head, an optional body paragraph and tail within the length limit."""
    budget = MAX_MESSAGE_LENGTH - len(head) - len(tail) - len(PARAGRAPH_BREAK)
    body = truncate_escaped(body, budget)
    if not body:
        return head + tail
    return head + body + PARAGRAPH_BREAK + tail


class TelegramPublisher:
    """Handles publishing messages to Telegram."""

    def __init__(
        self,
        config: TelegramConfig,
        session: requests.Session | None = None,
        clock: Callable[[], datetime] | None = None,
        execution_id: str | None = None,
    ):
        """Initialize Telegram publisher with configuration."""
        self.config = config
        self.logger = create_execution_logger("telegram_publisher", execution_id)
        self.base_url = f"{config.base_url}/bot{config.bot_token}"
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "Random-Raindrop-Bot/1.0"})
        self.clock = clock or (lambda: datetime.now(UTC))

        self.logger.info(
            "TelegramPublisher initialized",
            chat_id=config.chat_id,
            timeout=config.timeout,
        )

    def send_article(self, item: BookmarkItem) -> None:
        """
        Send a bookmark to the configured chat.

        Raises:
            DeliveryError: If Telegram does not accept the message
        """
        self.logger.info(
            "Preparing to send article",
            item_id=item.identifier,
            item_title=item.title,
        )
        message = OutboundMessage(chat_id=self.config.chat_id, text=self.format_article(item))
        self._deliver(message)
        self.logger.info(
            "Article sent successfully", item_id=item.identifier, item_title=item.title
        )

    def send_error(self, description: str) -> None:
        """
        Send an error banner to the configured chat.

        Raises:
            DeliveryError: If Telegram does not accept the message
        """
        self.logger.info("Preparing to send error notification")
        message = OutboundMessage(
            chat_id=self.config.chat_id, text=self.format_error(description)
        )
        self._deliver(message)
        self.logger.info("Error notification sent successfully")

    def format_article(self, item: BookmarkItem) -> str:
        """
        Format a bookmark for Telegram Markdown.

        Args:
            item: The bookmark to format

        Returns:
            Message text of at most MAX_MESSAGE_LENGTH characters unless the
            title and link alone are longer than that
        """
        head = ARTICLE_TEMPLATE_HEAD.format(title=escape_markdown(item.title))
        link = escape_link(item.link)
        timestamp = self._timestamp()

        # The domain gives way only when title and link leave no room for it.
        bare_tail = ARTICLE_TEMPLATE_TAIL.format(domain="", link=link, timestamp=timestamp)
        domain = truncate_escaped(
            escape_markdown(item.domain), MAX_MESSAGE_LENGTH - len(head) - len(bare_tail)
        )
        tail = ARTICLE_TEMPLATE_TAIL.format(domain=domain, link=link, timestamp=timestamp)
        text = _compose(head, escape_markdown(item.excerpt.strip()), tail)

        if len(text) > MAX_MESSAGE_LENGTH:
            self.logger.warning(
                "Article message exceeds Telegram limit without excerpt",
                item_id=item.identifier,
                message_length=len(text),
            )
        return text

    def format_error(self, description: str) -> str:
        """Format an error banner for Telegram Markdown."""
        tail = ERROR_TEMPLATE_TAIL.format(timestamp=self._timestamp())
        return _compose(ERROR_TEMPLATE_HEAD, escape_markdown(description.strip()), tail)

    def _timestamp(self) -> str:
        return self.clock().astimezone(UTC).strftime("%Y-%m-%d %H:%M UTC")

    def _deliver(self, message: OutboundMessage) -> None:
        """
        Post a message to the Bot API exactly once.

        Args:
            message: Message to send

        Raises:
            DeliveryError: On a non-2xx status, a transport failure, or a
                message longer than MAX_MESSAGE_LENGTH (not sent)
        """
        if len(message.text) > MAX_MESSAGE_LENGTH:
            self.logger.error(
                f"Message of {len(message.text)} characters exceeds Telegram limit",
                chat_id=message.chat_id,
                message_length=len(message.text),
            )
            raise DeliveryError(
                None, f"message exceeds {MAX_MESSAGE_LENGTH} characters"
            )

        url = f"{self.base_url}/sendMessage"
        self.logger.debug(
            "Sending message to Telegram API",
            chat_id=message.chat_id,
            message_length=len(message.text),
        )

        try:
            response = self.session.post(
                url, json=message.to_payload(), timeout=self.config.timeout
            )
        except requests.RequestException as e:
            # The request URL embeds the bot token, so only the type is kept.
            self.logger.error(
                f"Request to Telegram API failed: {type(e).__name__}",
                chat_id=message.chat_id,
            )
            raise DeliveryError(None, type(e).__name__) from None

        if not 200 <= response.status_code < 300:
            description = self._error_description(response)
            self.logger.error(
                f"Telegram API returned status {response.status_code}: {description}",
                chat_id=message.chat_id,
                status_code=response.status_code,
            )
            raise DeliveryError(response.status_code, description)

        self.logger.info(
            "Message accepted by Telegram",
            chat_id=message.chat_id,
            status_code=response.status_code,
        )

    def _error_description(self, response: requests.Response) -> str:
        """Extract the Bot API error description, falling back to the reason."""
        try:
            payload = response.json()
        except ValueError:
            return response.reason or ""
        if isinstance(payload, dict) and payload.get("description"):
            return str(payload["description"])
        return response.reason or ""
