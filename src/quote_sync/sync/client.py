"""HTTP client for the remote quote collection."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from quote_sync.core.quote import Quote, remote_id
from quote_sync.errors import NetworkError, ParseError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://jsonplaceholder.typicode.com/posts"
DEFAULT_REMOTE_CATEGORY = "Server"


class RemoteClient:
    """
    Adapter over the remote collection: fetch a batch, submit one quote.

    The remote side has no categories, no timestamps and no deletes.
    Pulled items are mapped to quotes with a deterministic ``srv-`` id
    and a fixed provenance category.

    Usage:
        async with RemoteClient("https://example.com/posts") as client:
            quotes = await client.pull(5)
            new_id = await client.push(quote)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 10.0,
        remote_category: str = DEFAULT_REMOTE_CATEGORY,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Collection endpoint (GET lists, POST creates)
            timeout: Total per-request timeout in seconds
            remote_category: Category given to every pulled quote
        """
        if not base_url.startswith(("http://", "https://")):
            raise ValueError("Invalid remote URL scheme: must start with http:// or https://")
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._remote_category = remote_category
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def remote_category(self) -> str:
        return self._remote_category

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> RemoteClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        *,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an HTTP request against the collection endpoint.

        Raises:
            NetworkError: On transport failure, timeout or HTTP error status
            ParseError: If the body is not JSON
        """
        if not self._session:
            await self.connect()

        assert self._session is not None

        try:
            async with self._session.request(
                method,
                self._base_url,
                json=json_data,
                params=params,
            ) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise NetworkError(
                        f"Remote returned {response.status}: {text[:200]}",
                        status_code=response.status,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ParseError(f"Remote returned invalid JSON: {e}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Connection error: {e}") from e
        except TimeoutError as e:
            raise NetworkError(f"Request to {self._base_url} timed out") from e

    async def pull(self, limit: int) -> list[Quote]:
        """Fetch up to ``limit`` remote items as quotes.

        Items without an id or without any text are skipped.

        Raises:
            NetworkError: If the request fails
            ParseError: If the payload is not an array
        """
        data = await self._request("GET", params={"_limit": limit})
        if not isinstance(data, list):
            raise ParseError(f"Expected a JSON array, got {type(data).__name__}")

        quotes: list[Quote] = []
        for item in data[:limit]:
            quote = self._quote_from_item(item)
            if quote is not None:
                quotes.append(quote)
        return quotes

    async def push(self, quote: Quote) -> str:
        """Submit one quote's content.

        Returns:
            The remote-assigned id, already in the ``srv-`` namespace

        Raises:
            NetworkError: If the request fails
            ParseError: If the response carries no id
        """
        data = await self._request(
            "POST",
            json_data={"title": quote.text, "body": quote.category},
        )
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            raise ParseError("Remote response has no assigned id")
        return remote_id(data["id"])

    def _quote_from_item(self, item: Any) -> Quote | None:
        if not isinstance(item, dict) or item.get("id") in (None, ""):
            logger.warning("Skipping remote item without id: %r", item)
            return None
        text = next(
            (v for v in (item.get("title"), item.get("body")) if isinstance(v, str) and v.strip()),
            None,
        )
        try:
            return Quote.from_remote(item["id"], text, self._remote_category)
        except ValidationError:
            logger.warning("Skipping remote item %s without text", item["id"])
            return None
