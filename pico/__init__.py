"""
Pico - GitOps Reconciliation Agent

Watches a git repository of target definitions and runs the commands
each target declares whenever its definition changes.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces (the task bus, the
  watcher's change notification, the secret store protocol)

Modules:
- secret: Secret resolution and credential renewal
- watcher: Repository polling and change detection
- reconfigurer: Turns repository changes into execution tasks
- bus: Bounded hand-off between producers and the executor
- executor: Command execution logic
- task: Shared data models
"""

__version__ = "1.0.0"
