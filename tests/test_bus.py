import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pico.modules.bus import TaskBus
from pico.modules.task.models import ExecutionTask


def make_task(name: str, revision: str = "a" * 40) -> ExecutionTask:
    return ExecutionTask(name=name, command=["true"], working_dir="/tmp", revision=revision)


@pytest.mark.asyncio
async def test_tasks_delivered_in_order():
    """Test that tasks come off the bus in the order they went on"""
    bus = TaskBus(capacity=10)
    for name in ["first", "second", "third"]:
        await bus.push(make_task(name))

    pulled = [(await bus.pull()).name for _ in range(3)]

    assert pulled == ["first", "second", "third"]
    assert bus.accepted == 3
    assert bus.delivered == 3
    assert bus.depth == 0


@pytest.mark.asyncio
async def test_push_blocks_when_full():
    """Test that a full bus makes the producer wait instead of dropping"""
    bus = TaskBus(capacity=1)
    await bus.push(make_task("first"))

    blocked = asyncio.create_task(bus.push(make_task("second")))
    await asyncio.sleep(0.01)
    assert not blocked.done()
    assert bus.depth == 1

    assert (await bus.pull()).name == "first"
    await asyncio.wait_for(blocked, timeout=1)

    assert (await bus.pull()).name == "second"
    assert bus.accepted == 2


@pytest.mark.asyncio
async def test_pull_waits_for_task():
    """Test that the consumer blocks until a task arrives"""
    bus = TaskBus()

    waiting = asyncio.create_task(bus.pull())
    await asyncio.sleep(0.01)
    assert not waiting.done()

    await bus.push(make_task("late"))
    task = await asyncio.wait_for(waiting, timeout=1)

    assert task.name == "late"


def test_capacity_must_be_positive():
    """Test that a bus needs room for at least one task"""
    with pytest.raises(ValueError):
        TaskBus(capacity=0)
