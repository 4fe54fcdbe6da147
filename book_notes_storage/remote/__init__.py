"""
Remote repository implementations.

The remote side is the source of truth and assigns entity ids:
- InMemoryRemoteRepository: process-local, for tests and offline development
- HttpRemoteRepository: REST backend via aiohttp
- CosmosRemoteRepository: Azure Cosmos DB via azure-cosmos
"""

from .cosmos_client import CosmosAuthMethod, CosmosClientWrapper, CosmosConfig
from .cosmos_repository import CosmosRemoteRepository
from .http_repository import HttpRemoteRepository
from .memory_repository import InMemoryRemoteRepository

__all__ = [
    "InMemoryRemoteRepository",
    "HttpRemoteRepository",
    "CosmosRemoteRepository",
    "CosmosClientWrapper",
    "CosmosConfig",
    "CosmosAuthMethod",
]
