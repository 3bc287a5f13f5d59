"""
Pico shared data models.

These models define the structure of the data passed between the
reconfigurer, the task bus and the executor.
"""

import hashlib
import json
import os
import posixpath
import shlex
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Enums


class ExecutionStatus(str, Enum):
    """Status of a task's command execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    ERROR = "error"


# Helpers


def split_command(value: Union[str, List[str], None]) -> Optional[List[str]]:
    """Accept either an argv list or a shell-style command string."""
    if value is None:
        return None
    if isinstance(value, str):
        argv = shlex.split(value)
    elif not isinstance(value, (list, tuple)):
        raise ValueError("command must be a string or a list of arguments")
    else:
        argv = [str(arg) for arg in value]
    if not argv or not argv[0]:
        raise ValueError("command must not be empty")
    return argv


# Repository Models


class TargetEntry(BaseModel):
    """One item of the ``targets`` list in the repository manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        description="Unique target identifier",
        min_length=1,
        max_length=100,
        pattern=r"^[A-Za-z0-9][A-Za-z0-9._-]*$",
    )
    up: List[str] = Field(..., description="Command run when the target changes")
    down: Optional[List[str]] = Field(None, description="Command run when the target is removed")
    directory: str = Field(default=".", description="Working directory relative to the repository root")
    env: Dict[str, str] = Field(default_factory=dict, description="Plain environment variables")
    secrets: Optional[str] = Field(None, description="Secret path resolved at execution time")
    hosts: List[str] = Field(default_factory=list, description="Hosts this target applies to, empty for all")
    initial_run: bool = Field(default=True, description="Run when first seen after agent start")
    timeout: Optional[float] = Field(None, description="Command timeout in seconds", gt=0)

    @field_validator("up", "down", mode="before")
    @classmethod
    def validate_command(cls, v):
        """Normalise commands to argv lists."""
        return split_command(v)

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v):
        """Keep the working directory inside the repository."""
        normalised = posixpath.normpath(v.strip() or ".")
        if normalised.startswith("/") or normalised == ".." or normalised.startswith("../"):
            raise ValueError(f"directory must stay inside the repository: {v}")
        return normalised

    @field_validator("env", mode="before")
    @classmethod
    def validate_env(cls, v):
        """Environment values are strings; YAML scalars are stringified."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("env must be a mapping")
        return {str(key): "" if value is None else str(value) for key, value in v.items()}

    @field_validator("hosts", mode="before")
    @classmethod
    def validate_hosts(cls, v):
        """Allow a single hostname instead of a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    def applies_to(self, hostname: str) -> bool:
        """Check if this target is in scope for the given host."""
        return not self.hosts or hostname in self.hosts

    def definition_hash(self) -> str:
        """Hash of the canonical definition, independent of key order in YAML."""
        canonical = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(canonical.encode()).hexdigest()


# Bus Models


class ExecutionTask(BaseModel):
    """A unit of work handed from the reconfigurer to the executor."""

    model_config = ConfigDict(frozen=True)

    name: str
    command: List[str] = Field(..., min_length=1)
    working_dir: str
    revision: str = Field(..., description="Revision the task was derived from")
    env: Dict[str, str] = Field(default_factory=dict)
    secret_path: Optional[str] = None
    shutdown: bool = False
    timeout: Optional[float] = None

    @classmethod
    def from_entry(
        cls, entry: TargetEntry, root: str, revision: str, shutdown: bool = False
    ) -> "ExecutionTask":
        """Build the task for an entry; shutdown tasks run the entry's ``down`` command."""
        command = entry.down if shutdown else entry.up
        if not command:
            raise ValueError(f"target {entry.name} has no {'down' if shutdown else 'up'} command")
        return cls(
            name=entry.name,
            command=command,
            working_dir=os.path.join(root, entry.directory) if entry.directory != "." else root,
            revision=revision,
            env=dict(entry.env),
            secret_path=entry.secrets,
            shutdown=shutdown,
            timeout=entry.timeout,
        )


class ExecutionResult(BaseModel):
    """Outcome of running one task's command."""

    status: ExecutionStatus
    return_code: int
    output: str = ""
    error: Optional[str] = None
    execution_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS
