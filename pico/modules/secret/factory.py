"""
Secret Store Factory following Black Box Design principles.

This factory:
- Selects the secret store implementation from configuration
- Hides which backend is in use from the rest of the agent
"""

import logging
from typing import Tuple

from ...config.provider import Config
from .interfaces import SecretStore
from .memory import MemorySecrets
from .vault import VaultSecrets

logger = logging.getLogger(__name__)


def split_vault_path(path: str) -> Tuple[str, str]:
    """
    Split a configured Vault path into KV engine mount and base path.

    ``/secret`` is the ``secret`` engine with no base path;
    ``secret/teams/web`` is the ``secret`` engine with base path ``teams/web``.
    """
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts:
        return "secret", ""
    return parts[0], "/".join(parts[1:])


class SecretStoreFactory:
    """Factory for building the secret store."""

    @staticmethod
    def build(config: Config) -> SecretStore:
        """
        Build the secret store for the given configuration.

        Args:
            config: Agent configuration

        Returns:
            A Vault store when an address is configured, else an empty memory store
        """
        if config.uses_vault:
            engine, base_path = split_vault_path(config.vault_path)
            logger.debug(
                f"Connecting to vault at {config.vault_address} "
                f"(engine={engine}, path={base_path or '/'}, renewal={config.vault_renewal})"
            )
            return VaultSecrets(
                address=config.vault_address,
                base_path=base_path,
                token=config.vault_token,
                renewal=config.vault_renewal,
                engine=engine,
            )

        logger.info("No secret backend configured, using in-memory secrets")
        return MemorySecrets()
