"""
Command executor - the single consumer of the task bus.

Tasks are processed one at a time, in bus order. Each task gets an
environment assembled from (later layers win):

1. the host environment, if pass-through is enabled
2. agent-level secrets, prefixed (``GLOBAL_`` by default)
3. the target's plain ``env``
4. the secrets stored under the target's secret path

A failing task is logged and the executor moves on. Only an unreachable
secret backend stops it, since every following task would fail too.
"""

import asyncio
import logging
import os
from typing import Dict, Mapping, Optional

from ...errors import SecretStoreError
from ..bus.bus import TaskBus
from ..secret.interfaces import SecretStore
from ..task.models import ExecutionResult, ExecutionStatus, ExecutionTask
from .runner import CommandRunner, SubprocessRunner

logger = logging.getLogger(__name__)
task_logger = logging.getLogger("pico.task")


class CommandExecutor:
    """Runs execution tasks taken from the bus."""

    def __init__(
        self,
        secrets: SecretStore,
        pass_environment: bool = False,
        global_secret_path: Optional[str] = None,
        global_prefix: str = "GLOBAL_",
        runner: Optional[CommandRunner] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize executor.

        Args:
            secrets: Store resolving task and agent-level secrets
            pass_environment: Whether tasks inherit the host environment
            global_secret_path: Path of agent-level secrets, None to skip them
            global_prefix: Prefix for agent-level secret names
            runner: Command runner (injected in tests)
            environ: Host environment, also searched for programs (defaults to os.environ)
        """
        self.secrets = secrets
        self.pass_environment = pass_environment
        self.global_secret_path = global_secret_path
        self.global_prefix = global_prefix
        self.environ = environ if environ is not None else os.environ
        self.runner = runner or SubprocessRunner(search_path=self.environ.get("PATH"))

        self.succeeded = 0
        self.failed = 0

    async def subscribe(self, bus: TaskBus) -> None:
        """
        Consume tasks until cancelled.

        Raises:
            SecretBackendUnavailable: When secrets can no longer be resolved at all
        """
        logger.info("Command executor started")
        while True:
            task = await bus.pull()
            await self.execute(task)

    async def execute(self, task: ExecutionTask) -> ExecutionResult:
        """
        Run one task and report the outcome.

        A command already running when the executor is cancelled is allowed
        to finish before the cancellation propagates.
        """
        label = self._label(task)
        logger.info(f"Executing {label}: {' '.join(task.command)}")

        try:
            env = await self.prepare_environment(task)
        except SecretStoreError as e:
            result = ExecutionResult(
                status=ExecutionStatus.ERROR,
                return_code=-1,
                error=f"cannot resolve secrets at {task.secret_path!r}: {e}",
            )
            self._report(task, result)
            return result

        run = asyncio.ensure_future(
            self.runner.run(task.command, env, task.working_dir, task.timeout)
        )
        try:
            result = await asyncio.shield(run)
        except asyncio.CancelledError:
            logger.info(f"Shutdown requested, waiting for {label} to finish")
            result = await run
            self._report(task, result)
            raise

        self._report(task, result)
        return result

    async def prepare_environment(self, task: ExecutionTask) -> Dict[str, str]:
        """
        Build the environment for a task.

        Raises:
            SecretStoreError: If the task's own secrets cannot be read
            SecretBackendUnavailable: If the secret backend is unreachable
        """
        env: Dict[str, str] = {}
        if self.pass_environment:
            env.update(self.environ)

        for key, value in (await self._global_secrets()).items():
            env[f"{self.global_prefix}{key}"] = value

        env.update(task.env)

        if task.secret_path:
            secrets = await self.secrets.get_secrets_for_target(task.secret_path)
            logger.debug(f"Resolved secrets for {task.name}: keys={sorted(secrets)}")
            env.update(secrets)

        return env

    async def _global_secrets(self) -> Dict[str, str]:
        if not self.global_secret_path:
            return {}
        try:
            return await self.secrets.get_secrets_for_target(self.global_secret_path)
        except SecretStoreError as e:
            logger.info(f"No agent-level secrets at {self.global_secret_path!r}: {e}")
            return {}

    def _report(self, task: ExecutionTask, result: ExecutionResult) -> None:
        label = self._label(task)
        for line in result.output.splitlines():
            task_logger.info(f"[{task.name}] {line}")

        if result.success:
            self.succeeded += 1
            logger.info(f"{label} succeeded in {result.execution_time_ms}ms")
        else:
            self.failed += 1
            logger.error(
                f"{label} failed ({result.status.value}, exit code {result.return_code})"
                + (f": {result.error}" if result.error else "")
            )

    @staticmethod
    def _label(task: ExecutionTask) -> str:
        action = "shutdown of" if task.shutdown else "task"
        return f"{action} {task.name}@{task.revision[:12]}"
