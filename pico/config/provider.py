"""Configuration structures following Black Box Design principles."""
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional, Union


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """
    Parse a duration such as ``10s``, ``1m30s``, ``24h`` or ``250ms``.

    Bare numbers are read as seconds.

    Raises:
        ValueError: If the string is not a valid duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return _to_timedelta(value, value)

    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        return _to_timedelta(seconds, value)

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position != len(text):
        raise ValueError(f"invalid duration: {value!r}")

    return _to_timedelta(total, value)


def _to_timedelta(seconds: float, value) -> timedelta:
    """Build a timedelta, reporting infinite, NaN and out-of-range values as ValueError."""
    try:
        return timedelta(seconds=seconds)
    except (OverflowError, ValueError) as e:
        raise ValueError(f"invalid duration: {value!r}") from e


@dataclass(frozen=True)
class Repo:
    """The repository holding the target definitions."""
    url: str
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def has_credentials(self) -> bool:
        """Check if both halves of basic auth credentials are present."""
        return bool(self.user) and bool(self.password)


@dataclass(frozen=True)
class Config:
    """Static parameters supplied at startup, read-only afterwards."""
    target: Repo
    hostname: str
    directory: str = "./cache/"
    ssh: bool = False
    pass_environment: bool = False
    check_interval: timedelta = timedelta(minutes=1)
    vault_address: Optional[str] = None
    vault_token: Optional[str] = field(default=None, repr=False)
    vault_path: str = "/secret"
    vault_renewal: timedelta = timedelta(hours=24)
    vault_config: str = "pico"
    bus_capacity: int = 100
    global_prefix: str = "GLOBAL_"

    def __post_init__(self):
        if not self.target.url:
            raise ValueError("a target repository URL is required")
        if self.check_interval <= timedelta(0):
            raise ValueError("check interval must be positive")
        if self.vault_address and not self.vault_token:
            raise ValueError("a vault token is required when a vault address is set")
        if self.vault_renewal < timedelta(0):
            raise ValueError("vault renewal interval cannot be negative")
        if self.bus_capacity < 1:
            raise ValueError("bus capacity must be at least 1")

    @property
    def uses_vault(self) -> bool:
        """Check if a remote secret backend is configured."""
        return bool(self.vault_address)

