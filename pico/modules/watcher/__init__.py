"""
Watcher Module - Black Box Interface

Purpose: Detect new revisions of the target repository
Interface: GitWatcher.start(), wait_for_change(), snapshot(), get_auth_method()
Hidden: git invocation, credential plumbing, polling loop

Can be replaced with a webhook-driven or API-polling watcher that offers
the same change notification.
"""

from .auth import AuthMethod, BasicAuth, NoAuth, SSHAgentAuth, get_auth_method
from .git import GitClient
from .watcher import GitWatcher, WatcherState

__all__ = [
    "AuthMethod",
    "BasicAuth",
    "GitClient",
    "GitWatcher",
    "NoAuth",
    "SSHAgentAuth",
    "WatcherState",
    "get_auth_method",
]
