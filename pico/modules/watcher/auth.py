"""
Git authentication methods.

Credentials are handed to git through its environment (``GIT_CONFIG_*`` and
``GIT_SSH_COMMAND``), so they never show up in process arguments, error
messages or the work tree's ``.git/config``.
"""

import base64
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Protocol

from ...config.provider import Config
from ...errors import AuthMethodError

logger = logging.getLogger(__name__)


class AuthMethod(Protocol):
    """Protocol for git authentication methods."""

    name: str

    def git_env(self) -> Dict[str, str]:
        """Environment variables that make git authenticate this way."""
        ...


@dataclass(frozen=True)
class NoAuth:
    """Anonymous access."""
    name: str = "anonymous"

    def git_env(self) -> Dict[str, str]:
        return {}


@dataclass(frozen=True)
class BasicAuth:
    """HTTP basic authentication."""
    username: str
    password: str = field(repr=False)
    name: str = "basic"

    def git_env(self) -> Dict[str, str]:
        credentials = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {credentials}",
        }


@dataclass(frozen=True)
class SSHAgentAuth:
    """SSH authentication through a running ssh-agent."""
    socket: str
    name: str = "ssh-agent"

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "SSHAgentAuth":
        """
        Build SSH auth from the agent socket in the environment.

        Raises:
            AuthMethodError: If no ssh-agent socket is available
        """
        environ = os.environ if environ is None else environ
        socket = environ.get("SSH_AUTH_SOCK")
        if not socket:
            raise AuthMethodError("SSH_AUTH_SOCK is not set, is an ssh-agent running?")
        return cls(socket=socket)

    def git_env(self) -> Dict[str, str]:
        return {
            "SSH_AUTH_SOCK": self.socket,
            "GIT_SSH_COMMAND": "ssh -o BatchMode=yes -o StrictHostKeyChecking=accept-new",
        }


def get_auth_method(
    config: Config,
    secret_config: Mapping[str, str],
    environ: Optional[Mapping[str, str]] = None,
) -> AuthMethod:
    """
    Resolve how to authenticate against the target repository.

    Priority:
    1. SSH agent, when SSH is requested
    2. Username/password given with the target repository
    3. GIT_USERNAME/GIT_PASSWORD from the agent's configuration secrets
    4. Anonymous

    Raises:
        AuthMethodError: If SSH is requested but no agent is available
    """
    if config.ssh:
        logger.info("Using ssh-agent authentication for the target repository")
        return SSHAgentAuth.from_environment(environ)

    if config.target.has_credentials:
        logger.info("Using basic authentication from the target repository settings")
        return BasicAuth(username=config.target.user, password=config.target.password)

    user = secret_config.get("GIT_USERNAME")
    password = secret_config.get("GIT_PASSWORD")
    if user is not None and password is not None:
        logger.info("Using basic authentication from configuration secrets")
        return BasicAuth(username=user, password=password)

    logger.info("Using anonymous access for the target repository")
    return NoAuth()
