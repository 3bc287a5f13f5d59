"""
Shared pytest fixtures for Pico tests.

This module provides common fixtures including:
- FakeGit: a git client whose revisions are scripted by the test
- RecordingRunner: a command runner that records calls instead of spawning processes
- Manifest helpers writing pico.yaml into a temporary repository
"""

import asyncio
import os
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

import pytest
import yaml

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pico.config.provider import Config, Repo
from pico.errors import WatcherError
from pico.modules.task.models import ExecutionResult, ExecutionStatus


# =============================================================================
# Git Mocking Infrastructure
# =============================================================================

class FakeGit:
    """
    Git client double for watcher tests.

    The test sets `revision` (or queues several with `script`) and every
    sync reports it. Setting `error` makes the next sync fail.

    Usage:
        def test_change(fake_git):
            fake_git.revision = "a" * 40
            await watcher.poll()
            assert fake_git.sync_count == 1
    """

    def __init__(self, revision: str = "1" * 40):
        self.revision = revision
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []
        self._script: List[str] = []

    def script(self, *revisions: str) -> "FakeGit":
        """Queue revisions returned by successive syncs; the last one sticks."""
        self._script.extend(revisions)
        return self

    async def sync(self, url, directory, auth=None) -> str:
        self.calls.append({"url": url, "directory": directory, "auth": auth})
        if self.error is not None:
            raise self.error
        if self._script:
            self.revision = self._script.pop(0)
        return self.revision

    @property
    def sync_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def failing_git():
    git = FakeGit()
    git.error = WatcherError("git fetch failed with exit code 128: Authentication failed")
    return git


# =============================================================================
# Command Runner Mocking Infrastructure
# =============================================================================

@dataclass
class RunnerCall:
    """Record of a command run during testing."""
    command: List[str]
    env: Dict[str, str]
    cwd: str
    timeout: Optional[float] = None


@dataclass
class RecordingRunner:
    """
    Command runner double.

    Results are looked up by the first argument of the command; anything
    unregistered succeeds. When `gate` is set, every run waits for it.
    """
    results: Dict[str, ExecutionResult] = field(default_factory=dict)
    calls: List[RunnerCall] = field(default_factory=list)
    gate: Optional[asyncio.Event] = None
    started: Optional[asyncio.Event] = None
    finished: int = 0

    def register(self, program: str, status: ExecutionStatus, return_code: int = 1, output: str = ""):
        self.results[program] = ExecutionResult(status=status, return_code=return_code, output=output)
        return self

    async def run(self, command, env, cwd, timeout=None) -> ExecutionResult:
        self.calls.append(RunnerCall(command=list(command), env=dict(env), cwd=cwd, timeout=timeout))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        self.finished += 1
        return self.results.get(
            command[0], ExecutionResult(status=ExecutionStatus.SUCCESS, return_code=0, output="ok")
        )


@pytest.fixture
def runner():
    return RecordingRunner()


# =============================================================================
# Repository Helpers
# =============================================================================

def write_manifest(root, targets: List[Dict[str, Any]], filename: str = "pico.yaml") -> str:
    """Write a manifest with the given targets into a repository directory."""
    os.makedirs(root, exist_ok=True)
    path = os.path.join(root, filename)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump({"targets": targets}, f, sort_keys=False)
    return path


def write_file(root, relative: str, content: str) -> str:
    path = os.path.join(root, relative)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


@pytest.fixture
def repo_dir(tmp_path):
    """An empty repository working directory."""
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def make_config(tmp_path):
    """Factory for configurations pointing at a temporary working directory."""

    def factory(**overrides) -> Config:
        values = {
            "target": Repo(url="https://git.example.com/infra/targets.git"),
            "hostname": "web-1",
            "directory": str(tmp_path / "repo"),
            "check_interval": timedelta(seconds=10),
        }
        values.update(overrides)
        return Config(**values)

    return factory


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring the git binary"
    )
