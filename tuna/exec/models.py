#!/usr/bin/env python3
"""
Data models for plan execution.

Defines tasks, per-task results, the run summary, execution options and
progress events.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional


class ProgressEventType(str, Enum):
    """Event types for the task lifecycle."""
    START = "start"        # Task picked up by a worker
    DONE = "done"          # Response written
    ERROR = "error"        # Task failed (after retries)
    SKIPPED = "skipped"    # Output already present and continue_run is set


@dataclass(frozen=True)
class ProgressEvent:
    """
    Event payload for task progress.

    Attributes:
        type: Type of event (from ProgressEventType)
        model: Model as listed in the plan
        query_id: Input file name
        prompt_tokens / output_tokens: Token usage (DONE only)
        duration: Provider call seconds for DONE, elapsed seconds for ERROR
        error: The failure (ERROR only)
        output_path: Response file (DONE and SKIPPED)
    """
    type: ProgressEventType
    model: str
    query_id: str
    prompt_tokens: int = 0
    output_tokens: int = 0
    duration: float = 0.0
    error: Optional[BaseException] = None
    output_path: Optional[Path] = None


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class ExecutionOptions:
    """
    Options for PlanExecutor.

    Attributes:
        parallel: Number of worker threads (minimum 1)
        continue_run: Skip tasks whose response file already exists
        dry_run: Informational; callers use PlanExecutor.dry_run() for the preview
        max_attempts: Attempts per task including the first (retryable errors only)
        retry_delay: Base delay in seconds between attempts (exponential, jittered)
        timeout: HTTP timeout in seconds per provider call
        on_progress: Called synchronously on the worker thread for every event;
            must be thread-safe when parallel > 1 (see ProgressChannel)
    """
    parallel: int = 1
    continue_run: bool = False
    dry_run: bool = False
    max_attempts: int = 3
    retry_delay: float = 2.0
    timeout: int = 120
    on_progress: Optional[ProgressCallback] = None

    def __post_init__(self):
        self.parallel = max(1, int(self.parallel))
        self.max_attempts = max(1, int(self.max_attempts))


@dataclass(frozen=True)
class Task:
    index: int
    model: str
    query_id: str


@dataclass(frozen=True)
class TaskResult:
    model: str                 # As requested in the plan (may be an alias)
    resolved_model: str        # As echoed by the provider
    query_id: str
    content: str
    output_path: Path
    prompt_tokens: int = 0
    output_tokens: int = 0
    duration: float = 0.0      # Provider call only, excluding rate-limit waits
    provider_url: str = ""


@dataclass
class ExecutionSummary:
    total_queries: int = 0
    total_models: int = 0
    total_tasks: int = 0
    total_prompt_tokens: int = 0
    total_output_tokens: int = 0
    results: List[TaskResult] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.total_prompt_tokens + self.total_output_tokens

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
