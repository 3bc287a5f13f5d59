"""
Vault-backed secret store.

Reads KV version 2 secrets over the Vault HTTP API and renews its own
token through ``auth/token/renew-self``.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

import httpx

from ...errors import SecretBackendUnavailable, SecretStoreError
from .renewal import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF, retry_constant

logger = logging.getLogger(__name__)


class _TransientVaultError(Exception):
    """A server-side failure worth retrying."""


@dataclass(frozen=True)
class Lease:
    """The token used to authenticate against Vault."""
    token: str = field(repr=False)
    lease_duration: timedelta = timedelta(0)
    renewable: bool = True
    renewed_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> Optional[float]:
        """Epoch seconds at which the token expires, None if it never does."""
        if self.lease_duration <= timedelta(0):
            return None
        return self.renewed_at + self.lease_duration.total_seconds()


class VaultSecrets:
    """
    Secret store backed by a Vault server.

    The lease is replaced as a whole on every renewal, so a concurrent
    fetch always sees either the previous or the new token, never a mix.
    """

    renewable = True

    def __init__(
        self,
        address: str,
        base_path: str,
        token: str,
        renewal: timedelta,
        engine: str = "secret",
        client: Optional[httpx.AsyncClient] = None,
        attempts: int = DEFAULT_ATTEMPTS,
        backoff: float = DEFAULT_BACKOFF,
        timeout: float = 10.0,
    ):
        """
        Initialize Vault store.

        Args:
            address: Vault server URL
            base_path: Prefix inside the KV engine under which all paths live
            token: Initial client token
            renewal: Interval at which the renewal job renews the token
            engine: Mount point of the KV v2 engine
            client: Optional pre-built HTTP client (tests)
            attempts: Attempts per request before the backend counts as down
            backoff: Seconds between attempts
            timeout: Per-request timeout in seconds
        """
        if not address:
            raise ValueError("a Vault address is required")
        if not token:
            raise ValueError("a Vault token is required")

        self.address = address.rstrip("/")
        self.base_path = base_path.strip("/")
        self.engine = engine.strip("/")
        self.renewal = renewal
        self.attempts = attempts
        self.backoff = backoff
        self._lease = Lease(token=token)
        self._client = client or httpx.AsyncClient(base_url=self.address, timeout=timeout)

    @property
    def lease(self) -> Lease:
        return self._lease

    def _secret_url(self, path: str) -> str:
        parts = [self.engine, "data", self.base_path, path.strip("/")]
        return "/v1/" + "/".join(part for part in parts if part)

    async def get_secrets_for_target(self, path: str) -> Dict[str, str]:
        url = self._secret_url(path)

        async def fetch() -> Dict[str, Any]:
            response = await self._request("GET", url)
            if response.status_code == 404:
                return {}
            if not response.is_success:
                raise SecretStoreError(
                    f"vault refused to read {path!r}: HTTP {response.status_code}"
                )
            try:
                body = response.json()
            except ValueError as e:
                raise SecretStoreError(f"vault returned a malformed body for {path!r}") from e

            outer = body.get("data") if isinstance(body, dict) else None
            data = outer.get("data") if isinstance(outer, dict) else None
            if not isinstance(data, dict):
                raise SecretStoreError(f"vault returned no secret data for {path!r}")
            return data

        data = await self._with_retry(fetch, f"reading secrets at {path!r}")
        secrets = {str(key): "" if value is None else str(value) for key, value in data.items()}
        logger.debug(f"Read secrets at {path!r}: keys={sorted(secrets)}")
        return secrets

    async def renew(self) -> None:
        """Renew the current token once; raises on any failure."""
        lease = self._lease
        response = await self._client.post(
            "/v1/auth/token/renew-self",
            headers={"X-Vault-Token": lease.token},
            json={},
        )
        if response.status_code >= 400:
            raise SecretStoreError(f"token renewal rejected: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise SecretStoreError("token renewal returned a malformed body") from e
        auth = body.get("auth") if isinstance(body, dict) else None
        if not isinstance(auth, dict):
            raise SecretStoreError("token renewal returned no auth data")

        self._lease = Lease(
            token=auth.get("client_token") or lease.token,
            lease_duration=timedelta(seconds=auth.get("lease_duration") or 0),
            renewable=bool(auth.get("renewable", True)),
        )
        logger.info(f"Vault token renewed, lease duration {self._lease.lease_duration}")
        if not self._lease.renewable:
            logger.warning("Vault reports the token as no longer renewable, it will expire")

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str) -> httpx.Response:
        response = await self._client.request(
            method, url, headers={"X-Vault-Token": self._lease.token}
        )
        if response.status_code >= 500 or response.status_code == 429:
            raise _TransientVaultError(f"HTTP {response.status_code} from {url}")
        return response

    async def _with_retry(self, operation, description: str):
        try:
            return await retry_constant(
                operation,
                attempts=self.attempts,
                backoff=self.backoff,
                retry_on=(httpx.TransportError, _TransientVaultError),
                description=description,
            )
        except (httpx.TransportError, _TransientVaultError) as e:
            raise SecretBackendUnavailable(
                f"vault at {self.address} unavailable while {description}: {e}"
            ) from e
