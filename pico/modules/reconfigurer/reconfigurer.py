"""
Reconfigurer - turns repository revisions into execution tasks.

For every revision the watcher reports, the manifest is loaded and diffed
against the targets applied so far:

- new target, or content hash changed: one task running ``up``
- target unchanged: nothing
- target gone (removed, or no longer scoped to this host) with a ``down``
  command: one shutdown task
- target present but invalid: left as applied, no task

The applied set only moves forward once every task of a revision has been
accepted by the bus. It is owned by the reconfigurer alone.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..bus.bus import TaskBus
from ..task.models import ExecutionTask, TargetEntry
from ..watcher.watcher import GitWatcher, WatcherState
from .loader import LoadResult, load_targets

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedTarget:
    """A target as it was last dispatched."""
    entry: TargetEntry
    content_hash: str
    revision: str


class Reconfigurer:
    """Diffs observed targets against applied targets and dispatches the difference."""

    def __init__(self, hostname: str, bus: TaskBus):
        self.hostname = hostname
        self.bus = bus
        self._applied: Dict[str, AppliedTarget] = {}
        self._applied_revision: Optional[str] = None

    @property
    def applied_revision(self) -> Optional[str]:
        """Revision whose tasks were last accepted by the bus."""
        return self._applied_revision

    @property
    def applied(self) -> Dict[str, AppliedTarget]:
        return dict(self._applied)

    async def configure(self, watcher: GitWatcher) -> None:
        """
        Reconcile on every change notification until cancelled.

        Raises:
            ConfigurationError: When the manifest cannot be enumerated at all
        """
        logger.info(f"Reconfigurer started for host {self.hostname}")
        while True:
            await watcher.wait_for_change()
            async with watcher.snapshot() as state:
                loaded = await asyncio.to_thread(load_targets, state.directory, self.hostname)
            await self.reconcile(loaded, state)

    async def reconcile(self, loaded: LoadResult, state: WatcherState) -> List[ExecutionTask]:
        """
        Dispatch the tasks needed to bring the applied set to this revision.

        Returns:
            The tasks pushed onto the bus, in dispatch order
        """
        tasks, applied = self.plan(loaded, state)

        for task in tasks:
            await self.bus.push(task)

        self._applied = applied
        self._applied_revision = state.revision

        if tasks:
            logger.info(
                f"Dispatched {len(tasks)} task(s) for revision {state.revision[:12]}: "
                + ", ".join(f"{t.name}{' (shutdown)' if t.shutdown else ''}" for t in tasks)
            )
        else:
            logger.info(f"Revision {state.revision[:12]} requires no changes")
        return tasks

    def plan(
        self, loaded: LoadResult, state: WatcherState
    ) -> Tuple[List[ExecutionTask], Dict[str, AppliedTarget]]:
        """Compute the tasks and the applied set that follows them, without side effects."""
        first_pass = self._applied_revision is None
        current = {item.name for item in loaded.entries}

        shutdowns: List[ExecutionTask] = []
        kept: Dict[str, AppliedTarget] = {}
        for name, previous in self._applied.items():
            if name in current:
                continue
            if name in loaded.invalid:
                logger.warning(f"Target {name} is invalid in {state.revision[:12]}, keeping it as applied")
                kept[name] = previous
                continue
            if previous.entry.down:
                shutdowns.append(self._shutdown_task(previous.entry, state))
                logger.info(f"Target {name} was removed, scheduling shutdown")
            else:
                logger.info(f"Target {name} was removed, no down command to run")

        updates: List[ExecutionTask] = []
        applied: Dict[str, AppliedTarget] = {}
        for item in loaded.entries:
            previous = self._applied.get(item.name)
            if previous is not None and previous.content_hash == item.content_hash:
                applied[item.name] = previous
                continue

            applied[item.name] = AppliedTarget(
                entry=item.entry, content_hash=item.content_hash, revision=state.revision
            )
            if previous is None and first_pass and not item.entry.initial_run:
                logger.info(f"Target {item.name} has initial_run disabled, recording without running")
                continue

            updates.append(ExecutionTask.from_entry(item.entry, state.directory, state.revision))
            logger.debug(f"Target {item.name} {'changed' if previous else 'is new'}")

        applied.update(kept)
        return shutdowns + updates, applied

    @staticmethod
    def _shutdown_task(entry: TargetEntry, state: WatcherState) -> ExecutionTask:
        task = ExecutionTask.from_entry(entry, state.directory, state.revision, shutdown=True)
        if not os.path.isdir(task.working_dir):
            # The directory usually goes away together with the target
            task = task.model_copy(update={"working_dir": state.directory})
        return task
