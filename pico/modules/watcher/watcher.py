"""
Repository watcher.

Polls the target repository on a fixed interval and publishes a
"revision changed" notification whenever the synced revision differs from
the last one seen. The watcher is the only writer of `WatcherState`.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncIterator, Optional

from ...errors import WatcherError
from .auth import AuthMethod, NoAuth
from .git import GitClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatcherState:
    """Last seen revision and where it is checked out."""
    directory: str
    revision: Optional[str] = None


class GitWatcher:
    """Watches one git repository for new revisions."""

    def __init__(
        self,
        url: str,
        directory: str,
        interval: timedelta,
        auth: Optional[AuthMethod] = None,
        git: Optional[GitClient] = None,
    ):
        """
        Initialize watcher.

        Args:
            url: Target repository URL
            directory: Local working directory for the checkout
            interval: Time between polls
            auth: How to authenticate against the remote
            git: Git client (injected in tests)
        """
        self.url = url
        self.interval = interval
        self.auth = auth or NoAuth()
        self.git = git or GitClient()

        self._state = WatcherState(directory=os.path.abspath(directory))
        self._changed = asyncio.Event()
        # Held while git rewrites the work tree and while it is being read
        self._lock = asyncio.Lock()

    @property
    def state(self) -> WatcherState:
        return self._state

    async def start(self) -> None:
        """
        Poll until cancelled.

        Raises:
            WatcherError: On the first failed sync
        """
        logger.info(f"Watching {self.url} every {self.interval} ({self.auth.name} auth)")
        while True:
            await self.poll()
            await asyncio.sleep(self.interval.total_seconds())

    async def poll(self) -> bool:
        """
        Sync once and publish a notification if the revision changed.

        Returns:
            True if a new revision was observed
        """
        async with self._lock:
            try:
                revision = await self.git.sync(self.url, self._state.directory, self.auth)
            except OSError as e:
                raise WatcherError(f"cannot sync {self.url}: {e}") from e

        previous = self._state.revision
        if revision == previous:
            logger.debug(f"No change in {self.url} (at {revision[:12]})")
            return False

        self._state = WatcherState(directory=self._state.directory, revision=revision)
        logger.info(
            f"Observed new revision of {self.url}: "
            f"{previous[:12] if previous else 'none'} -> {revision[:12]}"
        )
        self._changed.set()
        return True

    async def wait_for_change(self) -> WatcherState:
        """
        Block until a revision newer than the last notification is observed.

        Several revisions observed before the caller gets here are
        collapsed into one notification for the latest of them.
        """
        await self._changed.wait()
        self._changed.clear()
        return self._state

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[WatcherState]:
        """Hold the work tree still while the caller reads it."""
        async with self._lock:
            yield self._state
