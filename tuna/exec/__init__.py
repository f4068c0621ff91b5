"""
Plan execution engine.

- executor.py: PlanExecutor (task matrix, worker pool, summary)
- retry.py: RetryPolicy applied around each provider call
- progress.py: ProgressChannel (non-blocking progress fan-in)
- models.py: tasks, results, summary, options, progress events
"""

from tuna.exec.models import (
    ExecutionOptions,
    ExecutionSummary,
    ProgressCallback,
    ProgressEvent,
    ProgressEventType,
    Task,
    TaskResult,
)
from tuna.exec.retry import RetryPolicy, classify_error, is_retryable
from tuna.exec.progress import ProgressChannel
from tuna.exec.executor import PlanExecutor

__all__ = [
    "ExecutionOptions",
    "ExecutionSummary",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressEventType",
    "Task",
    "TaskResult",
    "RetryPolicy",
    "classify_error",
    "is_retryable",
    "ProgressChannel",
    "PlanExecutor",
]
