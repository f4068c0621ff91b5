"""
Tests for tuna/exec/executor.py

Runs real plans against the FakeChatClient from the root conftest, writing
into tmp_path. Key behaviors:
1. Partial failure: failed tasks are recorded, the rest complete
2. Fail-fast on empty plans and hash collisions, before any provider call
3. Results/errors ordered by the task matrix, also with parallel workers
4. continue_run skips existing responses
5. Retry of transient failures, cancellation as per-task errors
"""

import json
import threading
import time

import pytest
import requests

from tuna.errors import (
    EmptyPlanError,
    ModelHashCollisionError,
    QueryReadError,
    TaskCancelledError,
    TaskError,
)
from tuna.exec import ExecutionOptions, PlanExecutor, ProgressEventType
from tuna.logger import RunLogger
from tuna.plan import AssistantSpec, LLMParams, Plan, Query
from tuna.response import Rating, model_hash, parse_response
import tuna.response.hash as hash_module


def make_plan(models=("m1", "m2"), queries=("query_001.md", "query_002.md"), **llm):
    return Plan(
        plan_id="plan-1",
        assistant_id="helper",
        assistant=AssistantSpec(
            system_prompt="--- 01_role.md ---\nYou are a helpful assistant.\n",
            llm=LLMParams(models=list(models), **llm),
        ),
        queries=[Query(id=q) for q in queries],
    )


def fail_on(model, text):
    """fail_when predicate: RuntimeError for one (model, input text) pair."""
    def predicate(request):
        if request.model == model and text in request.user_message:
            return RuntimeError(f"provider exploded for {model}")
        return None
    return predicate


class TestExecute:
    """Test the happy path and partial failure."""

    def test_all_tasks_succeed(self, assistant_dir, fake_client):
        client = fake_client()
        summary = PlanExecutor(make_plan(), assistant_dir, client).execute()

        assert summary.total_models == 2
        assert summary.total_queries == 2
        assert summary.total_tasks == 4
        assert len(summary.results) == 4
        assert summary.errors == []
        assert summary.total_prompt_tokens == 40
        assert summary.total_output_tokens == 20
        assert len(client.requests) == 4

    def test_one_failure_out_of_four(self, assistant_dir, fake_client):
        """2 models x 2 queries, one provider failure: 3 results, 1 error."""
        client = fake_client(fail_when=fail_on("m2", "2+2"))
        summary = PlanExecutor(make_plan(), assistant_dir, client).execute()

        assert len(summary.results) == 3
        assert len(summary.errors) == 1
        assert summary.total_prompt_tokens == 30
        assert summary.total_output_tokens == 15
        assert summary.total_tokens == 45
        assert summary.has_errors

        error = summary.errors[0]
        assert isinstance(error, TaskError)
        assert error.model == "m2"
        assert error.query_id == "query_001.md"
        assert isinstance(error.cause, RuntimeError)
        assert str(error) == "model=m2 query=query_001.md: provider exploded for m2"

        missing = assistant_dir / "Output" / "plan-1" / model_hash("m2") / "query_001_response.md"
        assert not missing.exists()

    def test_results_follow_task_matrix(self, assistant_dir, fake_client):
        summary = PlanExecutor(make_plan(), assistant_dir, fake_client()).execute()
        assert [(r.model, r.query_id) for r in summary.results] == [
            ("m1", "query_001.md"),
            ("m1", "query_002.md"),
            ("m2", "query_001.md"),
            ("m2", "query_002.md"),
        ]

    def test_request_carries_plan_parameters(self, assistant_dir, fake_client):
        client = fake_client()
        plan = make_plan(models=["m1"], queries=["query_002.md"], temperature=0.7, max_tokens=512)
        PlanExecutor(plan, assistant_dir, client, ExecutionOptions(timeout=30)).execute()

        request = client.requests[0]
        assert request.model == "m1"
        assert request.system_prompt == plan.assistant.system_prompt
        assert request.user_message == "Name a prime number.\n"
        assert request.temperature == 0.7
        assert request.max_tokens == 512
        assert request.timeout == 30

    def test_response_file_has_execution_metadata(self, assistant_dir, fake_client):
        summary = PlanExecutor(make_plan(models=["m1"]), assistant_dir, fake_client()).execute()

        result = summary.results[0]
        assert result.output_path == (
            assistant_dir / "Output" / "plan-1" / model_hash("m1") / "query_001_response.md")
        assert result.resolved_model == "m1-2025"
        assert result.provider_url == "https://fake.test/v1"
        assert result.duration == 0.25

        metadata, content = parse_response(result.output_path)
        assert content == "m1 says: What is 2+2?"
        assert metadata.provider == "https://fake.test/v1"
        assert metadata.model == "m1-2025"
        assert metadata.duration == 0.25
        assert metadata.input_tokens == 10
        assert metadata.output_tokens == 5
        assert metadata.executed_at is not None
        assert metadata.rating == Rating.NONE

    def test_missing_input_fails_only_that_task(self, assistant_dir, fake_client):
        plan = make_plan(models=["m1"], queries=["query_001.md", "gone.md", "query_002.md"])
        client = fake_client()
        summary = PlanExecutor(plan, assistant_dir, client).execute()

        assert [r.query_id for r in summary.results] == ["query_001.md", "query_002.md"]
        assert len(summary.errors) == 1
        assert summary.errors[0].query_id == "gone.md"
        assert isinstance(summary.errors[0].cause, QueryReadError)
        assert len(client.requests) == 2


class TestFailFast:
    """Test errors raised before any provider call."""

    def test_no_models(self, assistant_dir, fake_client):
        client = fake_client()
        with pytest.raises(EmptyPlanError):
            PlanExecutor(make_plan(models=[]), assistant_dir, client).execute()
        assert client.requests == []

    def test_no_queries(self, assistant_dir, fake_client):
        client = fake_client()
        with pytest.raises(EmptyPlanError):
            PlanExecutor(make_plan(queries=[]), assistant_dir, client).execute()
        assert client.requests == []

    def test_hash_collision(self, assistant_dir, fake_client, monkeypatch):
        monkeypatch.setattr(hash_module, "model_hash", lambda model: "00000000")
        client = fake_client()
        with pytest.raises(ModelHashCollisionError):
            PlanExecutor(make_plan(), assistant_dir, client).execute()
        assert client.requests == []


class TestParallel:
    """Test the worker pool."""

    def test_parallel_workers_overlap(self, assistant_dir, fake_client):
        client = fake_client(delay=0.2)
        options = ExecutionOptions(parallel=4)

        start = time.monotonic()
        summary = PlanExecutor(make_plan(), assistant_dir, client, options).execute()
        elapsed = time.monotonic() - start

        assert len(summary.results) == 4
        assert elapsed < 0.6  # Sequential would take 0.8s
        assert len(client.threads) > 1

    def test_parallel_results_are_ordered(self, assistant_dir, fake_client):
        client = fake_client(delay=0.05, fail_when=fail_on("m1", "prime"))
        options = ExecutionOptions(parallel=3)
        summary = PlanExecutor(make_plan(), assistant_dir, client, options).execute()

        assert [(r.model, r.query_id) for r in summary.results] == [
            ("m1", "query_001.md"),
            ("m2", "query_001.md"),
            ("m2", "query_002.md"),
        ]
        assert [(e.model, e.query_id) for e in summary.errors] == [("m1", "query_002.md")]

    def test_parallel_is_at_least_one(self):
        assert ExecutionOptions(parallel=0).parallel == 1
        assert ExecutionOptions(parallel=-3).parallel == 1


class TestContinue:
    """Test skip-if-exists resumption."""

    def test_existing_outputs_are_skipped(self, assistant_dir, fake_client):
        first = PlanExecutor(make_plan(models=["m1"]), assistant_dir, fake_client()).execute()
        existing = first.results[0].output_path
        first.results[1].output_path.unlink()

        client = fake_client()
        options = ExecutionOptions(continue_run=True)
        summary = PlanExecutor(make_plan(models=["m1"]), assistant_dir, client, options).execute()

        assert summary.skipped == [existing]
        assert [r.query_id for r in summary.results] == ["query_002.md"]
        assert [r.user_message for r in client.requests] == ["Name a prime number.\n"]
        assert summary.total_prompt_tokens == 10

    def test_without_continue_everything_reruns(self, assistant_dir, fake_client):
        PlanExecutor(make_plan(models=["m1"]), assistant_dir, fake_client()).execute()

        client = fake_client()
        summary = PlanExecutor(make_plan(models=["m1"]), assistant_dir, client).execute()

        assert summary.skipped == []
        assert len(client.requests) == 2


class TestRetry:
    """Test retries around the provider call."""

    def test_transient_error_is_retried(self, assistant_dir, fake_client):
        attempts = []

        def flaky(request):
            attempts.append(request.model)
            if len(attempts) == 1:
                return requests.exceptions.ConnectionError("connection reset")
            return None

        client = fake_client(fail_when=flaky)
        options = ExecutionOptions(max_attempts=2, retry_delay=0)
        plan = make_plan(models=["m1"], queries=["query_001.md"])
        summary = PlanExecutor(plan, assistant_dir, client, options).execute()

        assert len(summary.results) == 1
        assert summary.errors == []
        assert len(client.requests) == 2

    def test_retries_are_bounded(self, assistant_dir, fake_client):
        client = fake_client(fail_when=lambda r: requests.exceptions.Timeout("slow"))
        options = ExecutionOptions(max_attempts=3, retry_delay=0)
        plan = make_plan(models=["m1"], queries=["query_001.md"])
        summary = PlanExecutor(plan, assistant_dir, client, options).execute()

        assert len(client.requests) == 3
        assert isinstance(summary.errors[0].cause, requests.exceptions.Timeout)

    def test_non_transient_error_is_not_retried(self, assistant_dir, fake_client):
        client = fake_client(fail_when=lambda r: ValueError("bad request"))
        options = ExecutionOptions(max_attempts=3, retry_delay=0)
        plan = make_plan(models=["m1"], queries=["query_001.md"])
        summary = PlanExecutor(plan, assistant_dir, client, options).execute()

        assert len(client.requests) == 1
        assert len(summary.errors) == 1


class TestCancellation:
    """Test that cancellation surfaces as per-task errors."""

    def test_cancelled_before_start(self, assistant_dir, fake_client):
        client = fake_client()
        cancel = threading.Event()
        cancel.set()

        summary = PlanExecutor(make_plan(), assistant_dir, client).execute(cancel)

        assert summary.results == []
        assert len(summary.errors) == 4
        assert all(isinstance(e.cause, TaskCancelledError) for e in summary.errors)
        assert client.requests == []

    def test_cancel_mid_run_fails_remaining_tasks(self, assistant_dir, fake_client):
        cancel = threading.Event()

        def cancel_after_first(request):
            cancel.set()
            return None

        client = fake_client(fail_when=cancel_after_first)
        summary = PlanExecutor(make_plan(), assistant_dir, client).execute(cancel)

        assert len(summary.results) == 1
        assert len(summary.errors) == 3
        assert len(client.requests) == 1


class TestProgressEvents:
    """Test the progress callback."""

    def test_start_then_done_or_error(self, assistant_dir, fake_client):
        events = []
        options = ExecutionOptions(on_progress=events.append)
        client = fake_client(fail_when=fail_on("m2", "prime"))
        PlanExecutor(make_plan(), assistant_dir, client, options).execute()

        assert [(e.type, e.model, e.query_id) for e in events] == [
            (ProgressEventType.START, "m1", "query_001.md"),
            (ProgressEventType.DONE, "m1", "query_001.md"),
            (ProgressEventType.START, "m1", "query_002.md"),
            (ProgressEventType.DONE, "m1", "query_002.md"),
            (ProgressEventType.START, "m2", "query_001.md"),
            (ProgressEventType.DONE, "m2", "query_001.md"),
            (ProgressEventType.START, "m2", "query_002.md"),
            (ProgressEventType.ERROR, "m2", "query_002.md"),
        ]

        done = events[1]
        assert done.prompt_tokens == 10
        assert done.output_tokens == 5
        assert done.duration == 0.25
        assert done.output_path is not None

        error = events[-1]
        assert isinstance(error.error, RuntimeError)
        assert error.duration >= 0

    def test_skipped_event(self, assistant_dir, fake_client):
        plan = make_plan(models=["m1"], queries=["query_001.md"])
        PlanExecutor(plan, assistant_dir, fake_client()).execute()

        events = []
        options = ExecutionOptions(continue_run=True, on_progress=events.append)
        PlanExecutor(plan, assistant_dir, fake_client(), options).execute()

        assert [e.type for e in events] == [ProgressEventType.START, ProgressEventType.SKIPPED]

    @pytest.mark.parametrize("parallel", [1, 3])
    def test_failing_callback_does_not_abort_run(self, assistant_dir, fake_client, tmp_path, parallel):
        seen = []
        lock = threading.Lock()

        def on_progress(event):
            with lock:
                seen.append(event)
                if len(seen) == 2:
                    raise ValueError("progress bar broke")

        log_dir = tmp_path / "logs"
        client = fake_client()
        options = ExecutionOptions(parallel=parallel, on_progress=on_progress)
        with RunLogger("plan-1", log_dir=log_dir) as logger:
            summary = PlanExecutor(make_plan(), assistant_dir, client, options, logger).execute()

        assert len(summary.results) == 4
        assert summary.errors == []
        assert len(client.requests) == 4
        assert len(seen) == 8

        entries = [json.loads(line) for line in (log_dir / "exec.jsonl").read_text().splitlines()]
        failures = [e for e in entries if e["message"] == "Progress callback failed"]
        assert len(failures) == 1
        assert failures[0]["error"] == "progress bar broke"
        assert failures[0]["error_type"] == "ValueError"
        assert failures[0]["event"] == seen[1].type.value
        assert failures[0]["model"] == seen[1].model


class TestRunLog:
    """Test the structured run log."""

    def test_writes_jsonl_entries(self, assistant_dir, fake_client, tmp_path):
        log_dir = tmp_path / "logs"
        client = fake_client(fail_when=fail_on("m2", "prime"))

        with RunLogger("plan-1", log_dir=log_dir) as logger:
            PlanExecutor(make_plan(), assistant_dir, client, logger=logger).execute()

        entries = [json.loads(line) for line in (log_dir / "exec.jsonl").read_text().splitlines()]
        completed = [e for e in entries if e["message"] == "Task complete"]
        failed = [e for e in entries if e["message"] == "Task failed"]

        assert len(completed) == 3
        assert len(failed) == 1
        assert failed[0]["model"] == "m2"
        assert failed[0]["query_id"] == "query_002.md"
        assert failed[0]["error_type"] == "unknown"
        assert completed[0]["tokens"] == 15
        assert all(e["plan_id"] == "plan-1" for e in entries)


class TestDryRun:
    """Test the execution preview."""

    def test_describes_matrix(self, assistant_dir):
        plan = make_plan(temperature=0.7, max_tokens=4096)
        text = PlanExecutor(plan, assistant_dir, None).dry_run()

        assert "Plan ID:      plan-1\n" in text
        assert "Assistant ID: helper\n" in text
        assert f"  Model: m1 (hash: {model_hash('m1')})\n" in text
        assert f"    query_002.md -> Output/plan-1/{model_hash('m2')}/query_002_response.md\n" in text
        assert "  Temperature: 0.7\n" in text
        assert "  Max tokens:  4096\n" in text
        assert text.endswith("Total requests: 4 (2 models x 2 queries)\n")

    def test_does_not_touch_disk(self, assistant_dir):
        PlanExecutor(make_plan(), assistant_dir, None).dry_run()
        assert not (assistant_dir / "Output").exists()
