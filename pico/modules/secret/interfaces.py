"""Secret store interfaces following Black Box Design principles."""
from typing import Dict, Protocol


class SecretStore(Protocol):
    """Protocol for secret stores - allows swappable implementations."""

    async def get_secrets_for_target(self, path: str) -> Dict[str, str]:
        """
        Read the secret set stored under a path.

        Args:
            path: Lookup path, relative to the store's base path

        Returns:
            Mapping of secret name to value (empty if nothing is stored)

        Raises:
            SecretStoreError: If this path cannot be read
            SecretBackendUnavailable: If the backend cannot be reached at all
        """
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...


class RenewableSecretStore(SecretStore, Protocol):
    """Protocol for stores that hold a credential needing periodic renewal."""

    renewable: bool

    async def renew(self) -> None:
        """Renew the store's own credential once."""
        ...


def supports_renewal(store: SecretStore) -> bool:
    """Check the store's capability tag for background renewal."""
    return bool(getattr(store, "renewable", False))
