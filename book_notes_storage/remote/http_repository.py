"""
REST remote repository.

Talks to the book notes backend over HTTP using aiohttp.

Endpoints, relative to ``{base_url}/{collection}``:
    GET    /            -> JSON array of entities
    GET    /{id}        -> entity, 404 when unknown
    POST   /            -> {"id": "..."}
    POST   /batch       -> {"ids": [...]}, aligned with the request array
    PUT    /{id}        -> any 2xx
    DELETE /{id}        -> any 2xx, 404 means already deleted
"""

from __future__ import annotations

import logging
from typing import Any, Generic

import aiohttp

from ..exceptions import (
    AuthenticationError,
    RemoteRepositoryError,
    StorageConnectionError,
)
from ..id_utils import require_entity_id
from ..protocol import RemoteRepository, T

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds


class HttpRemoteRepository(RemoteRepository[T], Generic[T]):
    """HTTP client for one entity collection.

    The underlying ClientSession is created lazily on first use and shared by
    every call until ``close()``.

    Example:
        >>> repo = HttpRemoteRepository(Book, "https://api.example.com/v1", auth_token="...")
        >>> book_id = await repo.insert(Book(title="Dune"))
        >>> await repo.close()
    """

    def __init__(
        self,
        entity_type: type[T],
        base_url: str,
        auth_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            entity_type: Entity class served by this collection
            base_url: API root, without the collection segment
            auth_token: Optional bearer token
            timeout: Total request timeout in seconds
            session: Optional externally owned ClientSession
        """
        self.entity_type = entity_type
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/{self.entity_type.collection}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this repository created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        payload: Any = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send a request and decode the JSON body.

        Returns:
            Decoded JSON body, None for empty bodies or an allowed 404

        Raises:
            AuthenticationError: On 401 or 403
            RemoteRepositoryError: On other error statuses or a body that is not JSON
            StorageConnectionError: If the server cannot be reached in time
        """
        session = self._get_session()
        try:
            async with session.request(method, url, json=payload) as response:
                if response.status == 404 and allow_not_found:
                    return None
                if response.status in (401, 403):
                    raise AuthenticationError(url, f"HTTP {response.status}")
                if response.status >= 400:
                    body = await response.text()
                    logger.debug(f"{operation} failed with HTTP {response.status}: {body[:200]}")
                    raise RemoteRepositoryError(operation, status=response.status)
                if response.status == 204 or response.content_length == 0:
                    return None
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise RemoteRepositoryError(operation, status=response.status, cause=e) from e
        except aiohttp.ClientResponseError as e:
            raise RemoteRepositoryError(operation, status=e.status, cause=e) from e
        except aiohttp.ClientError as e:
            raise StorageConnectionError(url, e) from e
        except TimeoutError as e:
            raise StorageConnectionError(url, e) from e

    async def get_all(self) -> list[T]:
        body = await self._request("get_all", "GET", self.collection_url)
        if not isinstance(body, list):
            raise RemoteRepositoryError("get_all", cause=ValueError("expected a JSON array"))
        return [self.entity_type.from_dict(item) for item in body]

    async def get(self, entity_id: str) -> T | None:
        body = await self._request(
            "get", "GET", f"{self.collection_url}/{entity_id}", allow_not_found=True
        )
        if body is None:
            return None
        return self.entity_type.from_dict(body)

    async def insert(self, entity: T) -> str:
        payload = entity.to_dict()
        payload.pop("id", None)
        body = await self._request("insert", "POST", self.collection_url, payload)
        if not isinstance(body, dict) or not body.get("id"):
            raise RemoteRepositoryError("insert", cause=ValueError("response carries no id"))
        return str(body["id"])

    async def insert_many(self, entities: list[T]) -> list[str]:
        payload = []
        for entity in entities:
            item = entity.to_dict()
            item.pop("id", None)
            payload.append(item)
        body = await self._request("insert_many", "POST", f"{self.collection_url}/batch", payload)
        if not isinstance(body, dict) or not isinstance(body.get("ids"), list):
            raise RemoteRepositoryError("insert_many", cause=ValueError("response carries no ids"))
        return [str(entity_id) for entity_id in body["ids"]]

    async def update(self, entity: T) -> None:
        entity_id = require_entity_id(entity, "update")
        await self._request("update", "PUT", f"{self.collection_url}/{entity_id}", entity.to_dict())

    async def delete(self, entity: T) -> None:
        entity_id = require_entity_id(entity, "delete")
        await self._request(
            "delete", "DELETE", f"{self.collection_url}/{entity_id}", allow_not_found=True
        )
