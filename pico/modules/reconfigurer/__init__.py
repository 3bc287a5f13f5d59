"""
Reconfigurer Module - Black Box Interface

Purpose: Turn repository revisions into execution tasks
Interface: Reconfigurer.configure(watcher), reconcile(), load_targets()
Hidden: Manifest format, content hashing, diff bookkeeping

Can be replaced with any source of target definitions that produces the
same ExecutionTask stream.
"""

from .loader import LoadResult, LoadedEntry, load_targets
from .reconfigurer import AppliedTarget, Reconfigurer

__all__ = ["AppliedTarget", "LoadResult", "LoadedEntry", "Reconfigurer", "load_targets"]
