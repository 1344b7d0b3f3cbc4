"""Fetch, select, format and deliver one random bookmark."""

from .exceptions import BookmarkSourceError, DeliveryError
from .logging_config import create_execution_logger
from .models import InvocationResult, TerminalState
from .raindrop import RaindropClient
from .telegram import TelegramPublisher


def run_invocation(
    source: RaindropClient,
    publisher: TelegramPublisher,
    collection_id: str,
    execution_id: str | None = None,
) -> InvocationResult:
    """
    Run the pipeline once and return its terminal state.

    Source failures are reported to the chat through ``publisher.send_error``.
    Delivery failures are only logged: a failed notification is never itself
    notified.

    Args:
        source: Client bound to the bookmark service token
        publisher: Publisher bound to the bot token and chat
        collection_id: Collection to sample
        execution_id: Execution ID for logging context

    Returns:
        InvocationResult in exactly one of the four terminal states
    """
    logger = create_execution_logger("orchestrator", execution_id)

    try:
        item = source.fetch_random_item(collection_id)
    except BookmarkSourceError as source_error:
        description = source_error.describe()
        logger.error(
            f"Failed to fetch bookmark: {description}",
            collection_id=collection_id,
            error_kind=type(source_error).__name__,
        )
        try:
            publisher.send_error(description)
        except DeliveryError as delivery_error:
            logger.error(
                f"Failed to send error notification: {delivery_error}",
                status_code=delivery_error.status_code,
            )
            return InvocationResult.failed(
                TerminalState.DOUBLY_FAILED, description, notified=False
            )
        return InvocationResult.failed(
            TerminalState.NOTIFIED_OF_FAILURE, description, notified=True
        )

    try:
        publisher.send_article(item)
    except DeliveryError as delivery_error:
        logger.error(
            f"Failed to deliver article: {delivery_error}",
            item_id=item.identifier,
            item_title=item.title,
            status_code=delivery_error.status_code,
        )
        return InvocationResult.failed(
            TerminalState.DELIVERY_FAILED, str(delivery_error), notified=False, item=item
        )

    return InvocationResult.delivered(item)
