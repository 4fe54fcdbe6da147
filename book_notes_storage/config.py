"""
Storage configuration.

Selects and configures the local store and remote repository backends.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .remote.cosmos_client import CosmosAuthMethod, CosmosConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".book_notes" / "settings.yaml"
DEFAULT_LOCAL_PATH = Path.home() / ".book_notes" / "cache"


class LocalBackend(Enum):
    """Local store implementation."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    FILE = "file"


class RemoteBackend(Enum):
    """Remote repository implementation."""

    MEMORY = "memory"
    HTTP = "http"
    COSMOS = "cosmos"


def _env_number(name: str, field_name: str, cast: type, default: Any) -> Any:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(field_name, f"{name}={raw!r} is not a valid {cast.__name__}") from e


def _enum_or_default(enum_type: type[Enum], raw: Any, default: Enum) -> Any:
    if isinstance(raw, enum_type):
        return raw
    if raw is None:
        return default
    try:
        return enum_type(str(raw).lower())
    except ValueError:
        logger.warning(f"Unknown {enum_type.__name__} value {raw!r}, using {default.value}")
        return default


@dataclass
class StorageConfig:
    """Configuration for book notes storage.

    Configuration can be provided directly, via environment variables or via
    the ``storage`` section of a YAML settings file.

    Environment Variables:
        BOOK_NOTES_USER_ID: Owner of the stored entities
        BOOK_NOTES_LOCAL_BACKEND: memory | sqlite | file (default: sqlite)
        BOOK_NOTES_LOCAL_PATH: Directory for the on-device cache
        BOOK_NOTES_REMOTE_BACKEND: memory | http | cosmos (default: http)
        BOOK_NOTES_REMOTE_URL: REST API root (http backend)
        BOOK_NOTES_REMOTE_TOKEN: Bearer token (http backend)
        BOOK_NOTES_REQUEST_TIMEOUT: Request timeout in seconds (default: 30)
        BOOK_NOTES_MAX_RETRIES: Attempts for transient Cosmos failures (default: 3)
        BOOK_NOTES_RETRY_DELAY: Base backoff delay in seconds (default: 1)
        BOOK_NOTES_COSMOS_ENDPOINT: Cosmos DB endpoint URL
        BOOK_NOTES_COSMOS_KEY: Cosmos DB key (if using key auth)
        BOOK_NOTES_COSMOS_DATABASE: Database name (default: book-notes)
        BOOK_NOTES_COSMOS_AUTH_METHOD: Auth method (default: default_credential)
        AZURE_TENANT_ID: Azure tenant ID (for service principal)
        AZURE_CLIENT_ID: Azure client ID (for service principal/managed identity)
        AZURE_CLIENT_SECRET: Azure client secret (for service principal)

    Settings file example (~/.book_notes/settings.yaml):

    ```yaml
    storage:
      user_id: "reader-42"
      local_backend: sqlite
      remote_backend: http
      remote_url: "https://api.example.com/v1"
    ```
    """

    user_id: str = "local"

    # Local store settings
    local_backend: LocalBackend = LocalBackend.SQLITE
    local_path: str | None = None

    # Remote repository settings
    remote_backend: RemoteBackend = RemoteBackend.HTTP
    remote_url: str | None = None
    remote_token: str | None = None
    request_timeout: float = 30.0

    # Cosmos DB connection settings
    cosmos_endpoint: str | None = None
    cosmos_auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    cosmos_key: str | None = None  # Only used if auth_method is KEY
    cosmos_database: str = "book-notes"

    # Azure AD authentication settings (for SERVICE_PRINCIPAL)
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    # Transport-level retry for transient remote failures
    max_retries: int = 3
    retry_delay: float = 1.0

    # Additional options
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.local_backend = _enum_or_default(LocalBackend, self.local_backend, LocalBackend.SQLITE)
        self.remote_backend = _enum_or_default(
            RemoteBackend, self.remote_backend, RemoteBackend.HTTP
        )
        self.cosmos_auth_method = _enum_or_default(
            CosmosAuthMethod, self.cosmos_auth_method, CosmosAuthMethod.DEFAULT_CREDENTIAL
        )

    @property
    def local_directory(self) -> Path:
        """Directory holding the on-device cache."""
        return Path(self.local_path).expanduser() if self.local_path else DEFAULT_LOCAL_PATH

    @classmethod
    def from_environment(cls, user_id: str | None = None) -> StorageConfig:
        """Create configuration from environment variables.

        Args:
            user_id: Overrides BOOK_NOTES_USER_ID when given

        Returns:
            StorageConfig populated from environment variables

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        env = os.environ
        return cls(
            user_id=user_id or env.get("BOOK_NOTES_USER_ID", "local"),
            local_backend=env.get("BOOK_NOTES_LOCAL_BACKEND", "sqlite"),  # type: ignore[arg-type]
            local_path=env.get("BOOK_NOTES_LOCAL_PATH"),
            remote_backend=env.get("BOOK_NOTES_REMOTE_BACKEND", "http"),  # type: ignore[arg-type]
            remote_url=env.get("BOOK_NOTES_REMOTE_URL"),
            remote_token=env.get("BOOK_NOTES_REMOTE_TOKEN"),
            request_timeout=_env_number(
                "BOOK_NOTES_REQUEST_TIMEOUT", "request_timeout", float, 30.0
            ),
            cosmos_endpoint=env.get("BOOK_NOTES_COSMOS_ENDPOINT"),
            cosmos_auth_method=env.get(  # type: ignore[arg-type]
                "BOOK_NOTES_COSMOS_AUTH_METHOD", "default_credential"
            ),
            cosmos_key=env.get("BOOK_NOTES_COSMOS_KEY"),
            cosmos_database=env.get("BOOK_NOTES_COSMOS_DATABASE", "book-notes"),
            azure_tenant_id=env.get("AZURE_TENANT_ID"),
            azure_client_id=env.get("AZURE_CLIENT_ID"),
            azure_client_secret=env.get("AZURE_CLIENT_SECRET"),
            max_retries=_env_number("BOOK_NOTES_MAX_RETRIES", "max_retries", int, 3),
            retry_delay=_env_number("BOOK_NOTES_RETRY_DELAY", "retry_delay", float, 1.0),
        )

    @classmethod
    def from_file(cls, path: Path | None = None) -> StorageConfig:
        """Create configuration from the ``storage`` section of a YAML file.

        A missing file yields the defaults. Unknown keys are kept in ``options``.

        Raises:
            ConfigurationError: If the file exists but is not valid YAML
        """
        config_path = path or DEFAULT_CONFIG_PATH
        if not config_path.exists():
            logger.debug(f"No settings file at {config_path}, using defaults")
            return cls()

        try:
            content = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e

        section = content.get("storage") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("storage", "expected a mapping")

        known = {f.name for f in fields(cls)} - {"options"}
        kwargs = {k: v for k, v in section.items() if k in known}
        options = {k: v for k, v in section.items() if k not in known}
        return cls(**kwargs, options=options)

    def validate(self) -> StorageConfig:
        """Check that the selected backends have what they need.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: On the first problem found
        """
        if not self.user_id:
            raise ConfigurationError("user_id", "must not be empty")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout", "must be positive")
        if self.max_retries < 1:
            raise ConfigurationError("max_retries", "must be at least 1")
        if self.retry_delay < 0:
            raise ConfigurationError("retry_delay", "must not be negative")

        if self.remote_backend == RemoteBackend.HTTP and not self.remote_url:
            raise ConfigurationError("remote_url", "required for the http remote backend")

        if self.remote_backend == RemoteBackend.COSMOS:
            if not self.cosmos_endpoint:
                raise ConfigurationError("cosmos_endpoint", "required for the cosmos remote backend")
            if self.cosmos_auth_method == CosmosAuthMethod.KEY and not self.cosmos_key:
                raise ConfigurationError("cosmos_key", "required for KEY authentication")

        return self

    def to_cosmos_config(self) -> CosmosConfig:
        """Build the Cosmos DB client configuration."""
        if not self.cosmos_endpoint:
            raise ConfigurationError("cosmos_endpoint", "required for the cosmos remote backend")
        return CosmosConfig(
            endpoint=self.cosmos_endpoint,
            database_name=self.cosmos_database,
            auth_method=self.cosmos_auth_method,
            key=self.cosmos_key,
            tenant_id=self.azure_tenant_id,
            client_id=self.azure_client_id,
            client_secret=self.azure_client_secret,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )
