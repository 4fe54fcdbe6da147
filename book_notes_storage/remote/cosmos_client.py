"""
Cosmos DB client wrapper.

Provides a clean interface to Azure Cosmos DB with:
- Connection management
- Container access (one container per entity collection)
- Owner isolation via the /owner_id partition key
- Retry logic for transient failures
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

from ..exceptions import (
    AuthenticationError,
    RemoteRepositoryError,
    StorageConnectionError,
)

logger = logging.getLogger(__name__)

PARTITION_KEY_PATH = "/owner_id"

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Use account key (not recommended for production)
    DEFAULT_CREDENTIAL: Use Azure DefaultAzureCredential (recommended)
    MANAGED_IDENTITY: Use Azure Managed Identity explicitly
    SERVICE_PRINCIPAL: Use Service Principal with client_id/client_secret
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"
    MANAGED_IDENTITY = "managed_identity"
    SERVICE_PRINCIPAL = "service_principal"


@dataclass
class CosmosConfig:
    """Configuration for Cosmos DB connection.

    Attributes:
        endpoint: Cosmos DB account endpoint URL
        database_name: Name of the database to use
        auth_method: How to authenticate
        key: Account key (KEY auth only)
        tenant_id: Azure tenant ID (SERVICE_PRINCIPAL)
        client_id: Azure client ID (SERVICE_PRINCIPAL, user-assigned MANAGED_IDENTITY)
        client_secret: Azure client secret (SERVICE_PRINCIPAL)
        max_retries: Maximum attempts for transient failures
        retry_delay: Base delay between retries (seconds)
    """

    endpoint: str
    database_name: str = "book-notes"
    auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    key: str | None = None
    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY


def get_credential(config: CosmosConfig) -> Any:
    """Get the appropriate credential based on auth method.

    Raises:
        AuthenticationError: If the credential cannot be created
    """
    auth_method = config.auth_method

    if auth_method == CosmosAuthMethod.KEY:
        if not config.key:
            raise AuthenticationError(config.endpoint, "key required for KEY authentication")
        return config.key

    if auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL:
        from azure.identity.aio import DefaultAzureCredential

        return DefaultAzureCredential()

    if auth_method == CosmosAuthMethod.MANAGED_IDENTITY:
        from azure.identity.aio import ManagedIdentityCredential

        # If client_id is provided, use user-assigned managed identity
        if config.client_id:
            return ManagedIdentityCredential(client_id=config.client_id)
        return ManagedIdentityCredential()

    if auth_method == CosmosAuthMethod.SERVICE_PRINCIPAL:
        if not all([config.tenant_id, config.client_id, config.client_secret]):
            raise AuthenticationError(
                config.endpoint,
                "tenant_id, client_id, and client_secret required for SERVICE_PRINCIPAL",
            )
        from azure.identity.aio import ClientSecretCredential

        return ClientSecretCredential(
            tenant_id=config.tenant_id,
            client_id=config.client_id,
            client_secret=config.client_secret,
        )

    raise AuthenticationError(config.endpoint, f"Unsupported auth method: {auth_method}")


class CosmosClientWrapper:
    """Wrapper for Azure Cosmos DB async client.

    Manages connection lifecycle, creates containers on demand,
    and handles retry logic for transient failures. Several repositories
    (books, book notes) may share one wrapper.
    """

    def __init__(self, config: CosmosConfig):
        self.config = config
        self._client: CosmosClient | None = None
        self._credential: Any = None
        self._database: DatabaseProxy | None = None
        self._containers: dict[str, ContainerProxy] = {}
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._database is not None

    async def initialize(self) -> None:
        """Open the client and ensure the database exists."""
        async with self._init_lock:
            if self._database is not None:
                return

            self._credential = get_credential(self.config)
            try:
                client = CosmosClient(self.config.endpoint, credential=self._credential)
                self._client = client
                self._database = await client.create_database_if_not_exists(
                    id=self.config.database_name
                )
            except CosmosHttpResponseError as e:
                await self.close()
                if e.status_code in (401, 403):
                    raise AuthenticationError(self.config.endpoint, str(e)) from e
                raise StorageConnectionError(self.config.endpoint, e) from e
            except Exception as e:
                await self.close()
                raise StorageConnectionError(self.config.endpoint, e) from e

            logger.info(f"Connected to Cosmos DB database {self.config.database_name}")

    async def container(self, name: str) -> ContainerProxy:
        """Get a container proxy, creating the container if necessary."""
        if name in self._containers:
            return self._containers[name]

        await self.initialize()
        assert self._database is not None
        container = await self._with_retry(
            f"ensure_container:{name}",
            lambda: self._database.create_container_if_not_exists(  # type: ignore[union-attr]
                id=name,
                partition_key=PartitionKey(path=PARTITION_KEY_PATH),
            ),
        )
        self._containers[name] = container
        return container

    async def close(self) -> None:
        """Close the Cosmos DB connection."""
        if self._client:
            await self._client.close()
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()
        self._client = None
        self._credential = None
        self._database = None
        self._containers = {}

    async def __aenter__(self) -> CosmosClientWrapper:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # =========================================================================
    # CRUD Operations with Retry
    # =========================================================================

    async def create_item(self, container_name: str, item: dict[str, Any]) -> dict[str, Any]:
        container = await self.container(container_name)
        return await self._with_retry("create_item", lambda: container.create_item(body=item))

    async def upsert_item(self, container_name: str, item: dict[str, Any]) -> dict[str, Any]:
        container = await self.container(container_name)
        return await self._with_retry("upsert_item", lambda: container.upsert_item(body=item))

    async def read_item(
        self,
        container_name: str,
        item_id: str,
        partition_key: str,
    ) -> dict[str, Any] | None:
        """Read an item, returning None if it does not exist."""
        container = await self.container(container_name)
        try:
            return await self._with_retry(
                "read_item",
                lambda: container.read_item(item=item_id, partition_key=partition_key),
            )
        except CosmosResourceNotFoundError:
            return None

    async def delete_item(self, container_name: str, item_id: str, partition_key: str) -> bool:
        """Delete an item.

        Returns:
            True if deleted, False if not found
        """
        container = await self.container(container_name)
        try:
            await self._with_retry(
                "delete_item",
                lambda: container.delete_item(item=item_id, partition_key=partition_key),
            )
            return True
        except CosmosResourceNotFoundError:
            return False

    async def query_items(
        self,
        container_name: str,
        query: str,
        parameters: list[dict[str, Any]] | None = None,
        partition_key: str | None = None,
    ) -> list[dict[str, Any]]:
        """Query items from a container.

        All queries should be scoped to one owner via ``partition_key``.
        """
        container = await self.container(container_name)

        query_options: dict[str, Any] = {}
        if partition_key:
            query_options["partition_key"] = partition_key

        results: list[dict[str, Any]] = []
        try:
            async for item in container.query_items(
                query=query,
                parameters=parameters or [],
                **query_options,
            ):
                results.append(item)
        except CosmosHttpResponseError as e:
            raise RemoteRepositoryError("query_items", status=e.status_code, cause=e) from e
        return results

    async def _with_retry(self, operation_name: str, operation: Any) -> Any:
        """Execute an operation with retry logic for transient failures.

        Retries 429 and 5xx responses with exponential backoff. Not-found
        errors are re-raised untouched for the caller to interpret; other
        failures are wrapped in RemoteRepositoryError.
        """
        last_error: CosmosHttpResponseError | None = None

        for attempt in range(self.config.max_retries):
            try:
                return await operation()
            except CosmosResourceNotFoundError:
                raise
            except CosmosHttpResponseError as e:
                if e.status_code in (401, 403):
                    raise AuthenticationError(self.config.endpoint, str(e)) from e
                # Don't retry other client errors (4xx) except rate limiting
                if e.status_code != 429 and 400 <= e.status_code < 500:
                    raise RemoteRepositoryError(operation_name, status=e.status_code, cause=e) from e

                last_error = e
                if attempt < self.config.max_retries - 1:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.debug(
                        f"{operation_name} got HTTP {e.status_code}, retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
            except Exception as e:
                raise RemoteRepositoryError(operation_name, cause=e) from e

        if last_error is not None:
            raise RemoteRepositoryError(
                operation_name, status=last_error.status_code, cause=last_error
            ) from last_error
        raise RemoteRepositoryError(operation_name, cause=RuntimeError("Unexpected retry failure"))
