"""
Task Module - Black Box Interface

Purpose: Data models shared across the reconciliation pipeline
Interface: TargetEntry, ExecutionTask, ExecutionResult, ExecutionStatus
Hidden: Command normalisation, definition hashing
"""

from .models import ExecutionResult, ExecutionStatus, ExecutionTask, TargetEntry

__all__ = ["ExecutionResult", "ExecutionStatus", "ExecutionTask", "TargetEntry"]
