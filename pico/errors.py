"""
Error taxonomy shared by all modules.

Fatal errors end the process through the orchestrator. Recoverable errors
are logged with the identity of the entry or task they concern and
processing continues.
"""


class PicoError(Exception):
    """Base class for all agent errors."""


# Fatal


class ConfigurationError(PicoError):
    """The target manifest cannot be read or enumerated at all."""


class WatcherError(PicoError):
    """The repository cannot be synced (auth, network, corrupt work tree)."""


class AuthMethodError(PicoError):
    """No usable git authentication method could be built at startup."""


class SecretBackendUnavailable(PicoError):
    """The secret backend stayed unreachable after all retries."""


class RenewalError(PicoError):
    """The secret backend credential could not be renewed in time."""


class ActorCrashed(PicoError):
    """A supervised actor stopped; the message names the subsystem."""


# Recoverable


class EntryError(PicoError):
    """A single target entry is malformed."""

    def __init__(self, message: str, name: str = None):
        super().__init__(message)
        self.name = name


class SecretStoreError(PicoError):
    """Secrets for one path could not be read."""
