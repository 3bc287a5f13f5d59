"""
Git operations for the repository watcher.

`GitClient` shells out to the ``git`` binary with asyncio subprocesses.
Its single public operation, `sync`, brings a working directory to the
latest revision of the remote's default branch:

- no repository in the directory: ``git clone``
- otherwise: ``git fetch <url> HEAD`` then ``git reset --hard FETCH_HEAD``

Fetching the remote's ``HEAD`` and resetting onto it means a force-pushed
branch is followed like any other update; local modifications in the work
tree are discarded. Any failure raises `WatcherError`.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ...errors import WatcherError
from .auth import AuthMethod, NoAuth

logger = logging.getLogger(__name__)


class GitClient:
    def __init__(self, binary: str = "git", timeout: float = 300.0):
        self.binary = binary
        self.timeout = timeout

    async def sync(self, url: str, directory: str, auth: Optional[AuthMethod] = None) -> str:
        """
        Sync the working directory with the remote and return the revision.

        Raises:
            WatcherError: On authentication, network or work tree failures
        """
        auth = auth or NoAuth()
        path = Path(directory)

        if not (path / ".git").exists():
            try:
                if path.exists() and any(path.iterdir()):
                    raise WatcherError(
                        f"{path} is not a git repository and is not empty, refusing to clone into it"
                    )
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise WatcherError(f"cannot prepare working directory {path}: {e}") from e

            logger.info(f"Cloning {url} into {path}")
            await self._git(["clone", "--quiet", url, str(path)], cwd=path.parent, auth=auth)
        else:
            await self._git(["fetch", "--quiet", "--prune", url, "HEAD"], cwd=path, auth=auth)
            await self._git(["reset", "--quiet", "--hard", "FETCH_HEAD"], cwd=path)

        return (await self._git(["rev-parse", "HEAD"], cwd=path)).strip()

    def _environment(self, auth: Optional[AuthMethod]) -> Dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["LC_ALL"] = "C"
        if auth is not None:
            env.update(auth.git_env())
        return env

    async def _git(self, args: List[str], cwd: Path, auth: Optional[AuthMethod] = None) -> str:
        """Run one git command, returning stdout."""
        logger.debug(f"Running: git {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                cwd=str(cwd),
                env=self._environment(auth),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise WatcherError(f"cannot run {self.binary}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise WatcherError(f"git {args[0]} timed out after {self.timeout}s")
        except asyncio.CancelledError:
            # SIGTERM lets git remove its lock files before exiting
            if process.returncode is None:
                process.terminate()
                await process.wait()
            raise

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip() or stdout.decode(errors="replace").strip()
            raise WatcherError(f"git {args[0]} failed with exit code {process.returncode}: {message}")

        return stdout.decode(errors="replace")
