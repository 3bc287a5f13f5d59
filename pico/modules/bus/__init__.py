"""
Bus Module - Black Box Interface

Purpose: Hand execution tasks from the reconfigurer to the executor
Interface: push(), pull(), depth
Hidden: Queue implementation, blocking logic

Bounded and ordered: producers wait when it is full, tasks come out in the
order they went in. Nothing is persisted; the next reconciliation after a
restart regenerates whatever was lost.
"""

from .bus import TaskBus

__all__ = ["TaskBus"]
