"""
Executor Module - Black Box Interface

Purpose: Run the commands of execution tasks taken from the bus
Interface: CommandExecutor.subscribe(bus), execute(task)
Hidden: Environment assembly, secret resolution, process handling

Can be replaced with different execution mechanisms (containers, remote
runners) by supplying another CommandRunner.
"""

from .executor import CommandExecutor
from .runner import CommandRunner, SubprocessRunner

__all__ = ["CommandExecutor", "CommandRunner", "SubprocessRunner"]
