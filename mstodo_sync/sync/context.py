"""Per-invocation wiring of the remote client, cache store and vault."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..core.exceptions import ConfigurationError
from ..core.models import SyncConfig
from ..obsidian.vault import VaultDocuments
from ..remote.auth import default_token_provider
from ..remote.graph import GraphClient, RetryPolicy
from ..remote.todo_api import TodoApi
from .cache import DeltaCacheStore


@dataclass
class SyncContext:
    """Everything one sync invocation needs, built once and passed down."""

    config: SyncConfig
    api: TodoApi
    store: DeltaCacheStore
    vault: Optional[VaultDocuments] = None
    client: Optional[GraphClient] = None

    @classmethod
    def from_config(cls, config: SyncConfig, api: Optional[TodoApi] = None,
                    http_client: Optional[httpx.Client] = None,
                    sleep: Optional[Callable[[float], None]] = None,
                    logger: Optional[logging.Logger] = None) -> "SyncContext":
        logger = logger or logging.getLogger(__name__)
        client = None
        if api is None:
            policy = RetryPolicy(
                max_attempts=config.max_attempts,
                base_delay=config.backoff_base,
                max_delay=config.backoff_max,
            )
            if sleep is not None:
                policy.sleep = sleep
            client = GraphClient(
                default_token_provider(config.token_path),
                base_url=config.graph_base_url,
                timeout=config.request_timeout,
                retry_policy=policy,
                http_client=http_client,
            )
            api = TodoApi(client)

        vault = VaultDocuments(config.vault_path) if config.vault_path else None
        store = DeltaCacheStore(config.cache_path, lock_timeout=config.lock_timeout)
        logger.debug("Sync context: cache=%s vault=%s", config.cache_path, config.vault_path)
        return cls(config=config, api=api, store=store, vault=vault, client=client)

    def require_vault(self) -> VaultDocuments:
        if self.vault is None:
            raise ConfigurationError("No vault configured; set vault.path in the config file")
        self.vault.validate()
        return self.vault

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
