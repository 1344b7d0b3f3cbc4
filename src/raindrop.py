"""Raindrop.io bookmark source for Random Raindrop Telegram Bot."""

import random

import requests

from .config import RaindropConfig
from .exceptions import EmptyCollectionError, NetworkError, ParseError, error_for_status
from .logging_config import create_execution_logger
from .models import BookmarkCollectionResponse, BookmarkItem


class RaindropClient:
    """Fetches a collection from Raindrop.io and picks one bookmark from it."""

    def __init__(
        self,
        config: RaindropConfig,
        rng: random.Random | None = None,
        session: requests.Session | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the client with a token-bound configuration.

        Args:
            config: Raindrop.io configuration, including the access token
            rng: Random source used for selection (injectable for tests)
            session: HTTP session (injectable for tests)
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.rng = rng or random.Random()
        self.logger = create_execution_logger("raindrop_client", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
                "User-Agent": "Random-Raindrop-Bot/1.0",
            }
        )

        self.logger.info(
            "RaindropClient initialized",
            base_url=config.base_url,
            timeout=config.timeout,
        )

    def fetch_collection(self, collection_id: str) -> BookmarkCollectionResponse:
        """Download and parse one page of a collection.

        Raises:
            UpstreamError: On a non-2xx status (or one of its subclasses)
            ParseError: If the body is not a valid collection payload
            NetworkError: If no HTTP response was received
        """
        url = f"{self.config.base_url}/raindrops/{collection_id}"
        self.logger.info("Fetching collection", collection_id=collection_id)

        try:
            response = self.session.get(url, timeout=self.config.timeout)
        except requests.RequestException as e:
            # Only the exception type: request errors can echo request details.
            self.logger.error(
                f"Request to bookmark service failed: {type(e).__name__}",
                collection_id=collection_id,
            )
            raise NetworkError(
                f"could not reach the bookmark service ({type(e).__name__})"
            ) from None

        if not 200 <= response.status_code < 300:
            error = error_for_status(response.status_code, response.reason or "")
            self.logger.error(
                f"Bookmark service returned status {response.status_code}",
                collection_id=collection_id,
                status_code=response.status_code,
            )
            raise error

        try:
            payload = response.json()
        except ValueError:
            self.logger.error(
                "Bookmark service returned a non-JSON body",
                collection_id=collection_id,
                status_code=response.status_code,
            )
            raise ParseError("response body is not valid JSON") from None

        collection = BookmarkCollectionResponse.from_payload(payload)
        self.logger.info(
            f"Collection fetched: {len(collection)} items",
            collection_id=collection_id,
            status_code=response.status_code,
            items_count=len(collection),
        )
        return collection

    def select_random(
        self, collection: BookmarkCollectionResponse, collection_id: str
    ) -> BookmarkItem:
        """Pick one item uniformly at random."""
        if not collection.items:
            raise EmptyCollectionError(collection_id)

        index = self.rng.randrange(len(collection.items))
        item = collection.items[index]
        self.logger.info(
            "Selected random bookmark",
            collection_id=collection_id,
            item_id=item.identifier,
            item_title=item.title,
            index=index,
            items_count=len(collection.items),
        )
        return item

    def fetch_random_item(self, collection_id: str | None = None) -> BookmarkItem:
        """Fetch a collection and return one of its bookmarks at random.

        Args:
            collection_id: Collection to sample; defaults to the configured one

        Returns:
            The selected BookmarkItem

        Raises:
            BookmarkSourceError: Any source-side failure, see ``src.exceptions``
        """
        collection_id = collection_id or self.config.collection_id
        collection = self.fetch_collection(collection_id)
        return self.select_random(collection, collection_id)
