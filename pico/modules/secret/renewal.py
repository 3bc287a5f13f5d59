"""
Background credential renewal for remote secret stores.

The renewal job is the only writer of the store's lease. Each renewal is
retried a fixed number of times with a constant backoff; when the attempts are
spent the job fails and takes the process down with it, since no task can
run once the credential has expired.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from ...errors import RenewalError
from .interfaces import RenewableSecretStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF = 0.1
LEASE_FRACTION = 2 / 3


async def retry_constant(
    operation: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    backoff: float = DEFAULT_BACKOFF,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """
    Run an async operation, retrying with a constant backoff.

    Args:
        operation: Zero-argument coroutine factory
        attempts: Total number of attempts (at least 1)
        backoff: Seconds to wait between attempts
        retry_on: Exception types that trigger another attempt
        description: Name used in log lines

    Returns:
        The operation's result

    Raises:
        The last exception once all attempts have failed
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt == attempts:
                raise
            logger.warning(f"{description} failed (attempt {attempt}/{attempts}): {e}")
            await asyncio.sleep(backoff)
    raise AssertionError("unreachable")


class RenewalJob:
    """Renews a store's credential on a fixed interval."""

    def __init__(
        self,
        store: RenewableSecretStore,
        interval: timedelta,
        attempts: int = DEFAULT_ATTEMPTS,
        backoff: float = DEFAULT_BACKOFF,
    ):
        self.store = store
        self.interval = interval
        self.attempts = attempts
        self.backoff = backoff

    async def run(self) -> None:
        """
        Renew forever; returns immediately when renewal is disabled.

        Raises:
            RenewalError: When a renewal fails on every attempt
        """
        seconds = self.interval.total_seconds()
        if seconds <= 0:
            logger.info("Secret backend token renewal disabled")
            return

        logger.info(f"Renewing secret backend token every {self.interval}")
        while True:
            await asyncio.sleep(self.next_delay())
            await self.renew_once()

    def next_delay(self) -> float:
        """
        Seconds until the next renewal.

        The configured interval, shortened to a fraction of the remaining
        lease when the backend reported one that runs out sooner.
        """
        delay = self.interval.total_seconds()
        lease = getattr(self.store, "lease", None)
        expires_at = getattr(lease, "expires_at", None)
        if expires_at is not None:
            remaining = max(expires_at - time.time(), 0.0)
            delay = min(delay, remaining * LEASE_FRACTION)
        return delay

    async def renew_once(self) -> None:
        """Renew with a bounded number of attempts."""
        try:
            await retry_constant(
                self.store.renew,
                attempts=self.attempts,
                backoff=self.backoff,
                description="token renewal",
            )
        except Exception as e:
            raise RenewalError(
                f"token renewal failed after {self.attempts} attempts: {e}"
            ) from e
        logger.debug("Secret backend token renewed")
