"""
Command runner - the process boundary of the executor.

Runs one command with an explicit environment and working directory and
reports the outcome as an ExecutionResult. Runners never raise for command
failures; a missing binary, a non-zero exit or a timeout are all results.
"""

import asyncio
import logging
import os
import shutil
import time
from typing import Dict, List, Optional, Protocol

from ..task.models import ExecutionResult, ExecutionStatus

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Protocol for command runners."""

    async def run(
        self,
        command: List[str],
        env: Dict[str, str],
        cwd: str,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        ...


class SubprocessRunner:
    """Runs commands as local subprocesses."""

    def __init__(self, default_timeout: Optional[float] = None, search_path: Optional[str] = None):
        """
        Initialize runner.

        Args:
            default_timeout: Seconds before a command is killed when the task sets none
            search_path: PATH used to find programs, independent of the task's
                own environment (defaults to the agent's PATH)
        """
        self.default_timeout = default_timeout
        self.search_path = search_path

    def resolve(self, program: str) -> Optional[str]:
        """Locate a program on the search path; paths with a directory are left to the task's cwd."""
        if os.sep in program or (os.altsep and os.altsep in program):
            return program
        path = self.search_path if self.search_path is not None else os.environ.get("PATH", os.defpath)
        return shutil.which(program, path=path)

    async def run(
        self,
        command: List[str],
        env: Dict[str, str],
        cwd: str,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """
        Execute a command.

        Args:
            command: Program and arguments
            env: Complete environment for the process
            cwd: Working directory
            timeout: Seconds before the process is killed, None for no limit

        Returns:
            ExecutionResult with combined stdout/stderr output
        """
        timeout = timeout if timeout is not None else self.default_timeout
        start_time = time.monotonic()

        logger.debug(f"Running: {' '.join(command)} in {cwd}")

        program = self.resolve(command[0])
        if program is None:
            logger.error(f"Command not found: {command[0]}")
            return ExecutionResult(
                status=ExecutionStatus.ERROR,
                return_code=-1,
                error=f"command not found: {command[0]}",
                execution_time_ms=_elapsed_ms(start_time),
            )

        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *command[1:],
                cwd=cwd,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            logger.error(f"Command execution failed: {e}")
            return ExecutionResult(
                status=ExecutionStatus.ERROR,
                return_code=-1,
                error=str(e),
                execution_time_ms=_elapsed_ms(start_time),
            )

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error(f"Command timed out after {timeout}s")
            return ExecutionResult(
                status=ExecutionStatus.TIMEOUT,
                return_code=-1,
                error=f"Command timed out after {timeout}s",
                execution_time_ms=_elapsed_ms(start_time),
            )

        return ExecutionResult(
            status=ExecutionStatus.SUCCESS if process.returncode == 0 else ExecutionStatus.FAILURE,
            return_code=process.returncode,
            output=stdout.decode(errors="replace"),
            execution_time_ms=_elapsed_ms(start_time),
        )


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
