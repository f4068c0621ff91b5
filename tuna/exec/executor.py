#!/usr/bin/env python3
"""
Plan executor.

Runs every (model, query) task of a plan against a ChatClient, persists each
response with execution metadata, and returns an ExecutionSummary. Task
failures are recorded and never abort the run; only an empty plan or a
model hash collision stops execution before any provider is contacted.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

from tuna.errors import EmptyPlanError, QueryReadError, TaskCancelledError, TaskError
from tuna.llm.base import ChatClient
from tuna.llm.models import ChatRequest
from tuna.logger import RunLogger
from tuna.plan.prompt import INPUT_DIR
from tuna.plan.schemas import Plan
from tuna.response.hash import check_model_hashes, model_hash
from tuna.response.metadata import ResponseMetadata
from tuna.response.writer import OUTPUT_DIR, ResponseWriter, response_filename

from .models import (
    ExecutionOptions,
    ExecutionSummary,
    ProgressEvent,
    ProgressEventType,
    Task,
    TaskResult,
)
from .retry import RetryPolicy, classify_error


class PlanExecutor:
    def __init__(
        self,
        plan: Plan,
        assistant_dir: Path,
        client: Optional[ChatClient],
        options: Optional[ExecutionOptions] = None,
        logger: Optional[RunLogger] = None,
    ):
        self.plan = plan
        self.assistant_dir = Path(assistant_dir)
        self.client = client
        self.options = options or ExecutionOptions()
        self.logger = logger or RunLogger(plan.plan_id)
        self.retry_policy = RetryPolicy(
            max_attempts=self.options.max_attempts,
            base_delay=self.options.retry_delay,
        )

        self._lock = threading.Lock()
        self._results: Dict[int, TaskResult] = {}
        self._errors: Dict[int, TaskError] = {}
        self._skipped: Dict[int, Path] = {}

    def tasks(self) -> List[Task]:
        return [
            Task(index=i, model=model, query_id=query_id)
            for i, (model, query_id) in enumerate(self.plan.tasks())
        ]

    def dry_run(self) -> str:
        """Describe the execution matrix without contacting any provider."""
        plan = self.plan
        lines = [
            f"Plan ID:      {plan.plan_id}",
            f"Assistant ID: {plan.assistant_id}",
            "",
            "Execution matrix:",
        ]

        for model in plan.models:
            digest = model_hash(model)
            lines.append("")
            lines.append(f"  Model: {model} (hash: {digest})")
            for query_id in plan.query_ids:
                output_path = f"{OUTPUT_DIR}/{plan.plan_id}/{digest}/{response_filename(query_id)}"
                lines.append(f"    {query_id} -> {output_path}")

        llm = plan.assistant.llm
        lines.extend([
            "",
            "LLM Parameters:",
            f"  Temperature: {llm.temperature:.1f}",
            f"  Max tokens:  {llm.max_tokens}",
            "",
            f"Total requests: {len(plan.models) * len(plan.queries)} "
            f"({len(plan.models)} models x {len(plan.queries)} queries)",
        ])
        return "\n".join(lines) + "\n"

    def execute(self, cancel: Optional[threading.Event] = None) -> ExecutionSummary:
        """
        Run all tasks and return the summary.

        Args:
            cancel: Once set, waiting and pending tasks fail with
                TaskCancelledError (recorded per task, not raised)

        Raises:
            EmptyPlanError: Plan has no models or no queries
            ModelHashCollisionError: Two models would share an output directory
        """
        if not self.plan.models:
            raise EmptyPlanError("no models specified in plan")
        if not self.plan.queries:
            raise EmptyPlanError("no queries specified in plan")
        if self.client is None:
            raise ValueError("PlanExecutor.execute requires a client")

        check_model_hashes(self.plan.models)

        cancel = cancel or threading.Event()
        writer = ResponseWriter(self.assistant_dir, self.plan.plan_id)
        tasks = self.tasks()

        with self._lock:
            self._results.clear()
            self._errors.clear()
            self._skipped.clear()

        workers = min(self.options.parallel, len(tasks))
        self.logger.info(f"Executing {len(tasks)} tasks with {workers} workers",
                         tasks=len(tasks), workers=workers)
        start_time = time.time()

        if workers == 1:
            for task in tasks:
                self._run_task(task, writer, cancel)
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tuna-worker") as pool:
                list(pool.map(lambda task: self._run_task(task, writer, cancel), tasks))

        summary = self._build_summary()
        self.logger.info(
            f"Execution complete: {len(summary.results)} ok, "
            f"{len(summary.errors)} failed, {len(summary.skipped)} skipped",
            results=len(summary.results),
            errors=len(summary.errors),
            skipped=len(summary.skipped),
            tokens=summary.total_tokens,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return summary

    def _run_task(self, task: Task, writer: ResponseWriter, cancel: threading.Event):
        log = self.logger.task(task.model, task.query_id)
        self._emit(ProgressEvent(type=ProgressEventType.START, model=task.model, query_id=task.query_id))

        output_file = writer.response_path(task.model, task.query_id)
        if self.options.continue_run and output_file.exists():
            with self._lock:
                self._skipped[task.index] = output_file
            log.info("Skipping existing response", output_path=str(output_file))
            self._emit(ProgressEvent(
                type=ProgressEventType.SKIPPED,
                model=task.model,
                query_id=task.query_id,
                output_path=output_file,
            ))
            return

        start_time = time.perf_counter()
        try:
            result = self._process(task, writer, cancel)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            error = TaskError(task.model, task.query_id, e)
            with self._lock:
                self._errors[task.index] = error
            log.error(
                "Task failed",
                error=str(e),
                error_type=classify_error(e),
                duration_seconds=round(elapsed, 3),
            )
            self._emit(ProgressEvent(
                type=ProgressEventType.ERROR,
                model=task.model,
                query_id=task.query_id,
                duration=elapsed,
                error=e,
            ))
            return

        with self._lock:
            self._results[task.index] = result
        log.info(
            "Task complete",
            provider=result.provider_url,
            tokens=result.prompt_tokens + result.output_tokens,
            duration_seconds=round(result.duration, 3),
            output_path=str(result.output_path),
        )
        self._emit(ProgressEvent(
            type=ProgressEventType.DONE,
            model=task.model,
            query_id=task.query_id,
            prompt_tokens=result.prompt_tokens,
            output_tokens=result.output_tokens,
            duration=result.duration,
            output_path=result.output_path,
        ))

    def _process(self, task: Task, writer: ResponseWriter, cancel: threading.Event) -> TaskResult:
        if cancel.is_set():
            raise TaskCancelledError("execution cancelled before task started")

        user_message = self._read_query(task.query_id)

        llm = self.plan.assistant.llm
        request = ChatRequest(
            model=task.model,
            system_prompt=self.plan.assistant.system_prompt,
            user_message=user_message,
            temperature=llm.temperature,
            max_tokens=llm.max_tokens,
            timeout=self.options.timeout,
        )

        call_start = time.perf_counter()
        response = self.retry_policy.execute_with_retry(
            lambda: self.client.chat(request, cancel),
            model=task.model,
            cancel=cancel,
        )
        # Single-provider clients do not stamp the duration
        duration = response.duration or (time.perf_counter() - call_start)

        metadata = ResponseMetadata(
            provider=response.provider_url,
            model=response.model,
            duration=duration,
            input_tokens=response.prompt_tokens,
            output_tokens=response.output_tokens,
        )
        output_file = writer.write(task.model, task.query_id, response.content, metadata)

        return TaskResult(
            model=task.model,
            resolved_model=response.model,
            query_id=task.query_id,
            content=response.content,
            output_path=output_file,
            prompt_tokens=response.prompt_tokens,
            output_tokens=response.output_tokens,
            duration=duration,
            provider_url=response.provider_url,
        )

    def _read_query(self, query_id: str) -> str:
        query_path = self.assistant_dir / INPUT_DIR / query_id
        try:
            return query_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise QueryReadError(query_path, e) from e

    def _emit(self, event: ProgressEvent):
        """Deliver a progress event. A failing callback is logged and never fails the task."""
        if self.options.on_progress is None:
            return
        try:
            self.options.on_progress(event)
        except Exception as e:
            self.logger.task(event.model, event.query_id).error(
                "Progress callback failed",
                event=event.type.value,
                error=str(e),
                error_type=type(e).__name__,
            )

    def _build_summary(self) -> ExecutionSummary:
        with self._lock:
            results = [self._results[i] for i in sorted(self._results)]
            errors = [self._errors[i] for i in sorted(self._errors)]
            skipped = [self._skipped[i] for i in sorted(self._skipped)]

        return ExecutionSummary(
            total_queries=len(self.plan.queries),
            total_models=len(self.plan.models),
            total_tasks=len(self.plan.models) * len(self.plan.queries),
            total_prompt_tokens=sum(r.prompt_tokens for r in results),
            total_output_tokens=sum(r.output_tokens for r in results),
            results=results,
            errors=errors,
            skipped=skipped,
        )
