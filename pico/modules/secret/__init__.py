"""
Secret Module - Black Box Interface

Purpose: Resolve secret sets by path and keep backend credentials alive
Interface: SecretStore.get_secrets_for_target(), supports_renewal(), RenewalJob
Hidden: Backend protocol, token lease handling, retry policy

Can be replaced with any key/value secret service (Vault, cloud secret
managers, a plain in-memory map in tests).
"""

from .factory import SecretStoreFactory
from .interfaces import RenewableSecretStore, SecretStore, supports_renewal
from .memory import MemorySecrets
from .renewal import RenewalJob, retry_constant
from .vault import Lease, VaultSecrets

__all__ = [
    "Lease",
    "MemorySecrets",
    "RenewableSecretStore",
    "RenewalJob",
    "SecretStore",
    "SecretStoreFactory",
    "VaultSecrets",
    "retry_constant",
    "supports_renewal",
]
