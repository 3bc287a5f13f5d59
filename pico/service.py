"""
Service - the root of the running agent.

`App.initialise` wires the modules together from a Config; `App.start`
runs each of them as an independent asyncio task and supervises them.
The first actor to fail takes the whole agent down: the remaining actors
are cancelled (a command that is already running is allowed to finish)
and the failure is raised with the name of the subsystem that caused it.
Failed actors are never restarted; that is left to whatever runs the agent.
"""

import asyncio
import logging
from typing import Awaitable, List, Mapping, Optional, Tuple

from .config.provider import Config
from .errors import ActorCrashed, SecretBackendUnavailable, SecretStoreError
from .modules.bus import TaskBus
from .modules.executor import CommandExecutor, CommandRunner
from .modules.reconfigurer import Reconfigurer
from .modules.secret import RenewalJob, SecretStore, SecretStoreFactory, supports_renewal
from .modules.watcher import AuthMethod, GitClient, GitWatcher, get_auth_method

logger = logging.getLogger(__name__)


class App:
    """Application state."""

    def __init__(
        self,
        config: Config,
        secrets: SecretStore,
        auth: AuthMethod,
        bus: TaskBus,
        watcher: GitWatcher,
        reconfigurer: Reconfigurer,
        executor: CommandExecutor,
        renewal: Optional[RenewalJob] = None,
    ):
        self.config = config
        self.secrets = secrets
        self.auth = auth
        self.bus = bus
        self.watcher = watcher
        self.reconfigurer = reconfigurer
        self.executor = executor
        self.renewal = renewal

    @classmethod
    async def initialise(
        cls,
        config: Config,
        secrets: Optional[SecretStore] = None,
        git: Optional[GitClient] = None,
        runner: Optional[CommandRunner] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "App":
        """
        Prepare an instance of the app to run.

        Raises:
            AuthMethodError: If the requested git authentication is unavailable
        """
        secrets = secrets or SecretStoreFactory.build(config)

        try:
            secret_config = await secrets.get_secrets_for_target(config.vault_config)
        except (SecretStoreError, SecretBackendUnavailable) as e:
            logger.info(f"Could not read additional config from secret store at {config.vault_config!r}: {e}")
            secret_config = {}
        logger.debug(f"Read configuration secrets from secret store: keys={sorted(secret_config)}")

        auth = get_auth_method(config, secret_config, environ)

        bus = TaskBus(capacity=config.bus_capacity)
        watcher = GitWatcher(
            url=config.target.url,
            directory=config.directory,
            interval=config.check_interval,
            auth=auth,
            git=git,
        )
        reconfigurer = Reconfigurer(hostname=config.hostname, bus=bus)
        executor = CommandExecutor(
            secrets,
            pass_environment=config.pass_environment,
            global_secret_path=config.vault_config,
            global_prefix=config.global_prefix,
            runner=runner,
            environ=environ,
        )

        renewal = None
        if supports_renewal(secrets) and config.vault_renewal.total_seconds() > 0:
            renewal = RenewalJob(secrets, config.vault_renewal)

        return cls(config, secrets, auth, bus, watcher, reconfigurer, executor, renewal)

    def _actors(self) -> List[Tuple[str, str, Awaitable[None]]]:
        """Name, failure message and coroutine of every actor to supervise."""
        actors = [
            ("watcher", "git watcher crashed", self.watcher.start()),
            ("reconfigurer", "reconfigure provider crashed", self.reconfigurer.configure(self.watcher)),
            ("executor", "command executor crashed", self.executor.subscribe(self.bus)),
        ]
        if self.renewal is not None:
            actors.append(("renewal", "vault token renewal job failed", self.renewal.run()))
        return actors

    async def start(self) -> None:
        """
        Launch the app and block until a fatal error or cancellation.

        Raises:
            ActorCrashed: Wrapping the first fatal error of any actor
            asyncio.CancelledError: When the caller cancels the app
        """
        tasks = {
            asyncio.create_task(coro, name=name): message
            for name, message, coro in self._actors()
        }
        logger.info(f"Started {len(tasks)} actors: {', '.join(t.get_name() for t in tasks)}")

        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    message = tasks[task]
                    if task.cancelled():
                        raise ActorCrashed(f"{message}: cancelled")
                    error = task.exception()
                    if error is not None:
                        raise ActorCrashed(f"{message}: {error}") from error
                    logger.info(f"{task.get_name()} finished")
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                logger.debug("All actors stopped")

    async def close(self) -> None:
        """Release resources held by the secret store."""
        await self.secrets.close()
