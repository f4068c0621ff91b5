"""
tuna exec command - run a plan against the configured providers.
"""

import sys
import threading
from pathlib import Path
from typing import Dict, Optional

from tuna.config import build_registry, deprecation_warning, load_config
from tuna.exec import ExecutionOptions, ExecutionSummary, PlanExecutor, ProgressChannel
from tuna.llm import RateGate, Router
from tuna.logger import RunLogger
from tuna.plan import assistant_dir_for, load_plan
from tuna.response.writer import OUTPUT_DIR

from .progress import ExecProgressDisplay


def setup_parser(subparsers):
    exec_parser = subparsers.add_parser(
        'exec',
        help='Execute a plan'
    )
    exec_parser.add_argument(
        'plan_id',
        help='Plan ID (from tuna plan)'
    )
    exec_parser.add_argument(
        '-p', '--parallel',
        type=int,
        default=1,
        help='Number of parallel requests (default: 1)'
    )
    exec_parser.add_argument(
        '--continue',
        dest='continue_run',
        action='store_true',
        help='Skip tasks whose response file already exists'
    )
    exec_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be executed without making API calls'
    )
    exec_parser.add_argument(
        '--retries',
        type=int,
        default=2,
        help='Retries per task for transient provider errors (default: 2)'
    )
    exec_parser.add_argument(
        '--timeout',
        type=int,
        default=120,
        help='HTTP timeout per request in seconds (default: 120)'
    )
    exec_parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Print one line per task instead of a live progress bar'
    )
    exec_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Echo run log messages to stderr'
    )
    exec_parser.set_defaults(func=cmd_exec)


def cmd_exec(args) -> int:
    """Execute a plan. Returns 1 if any task failed."""
    plan, plan_path = load_plan(Path(args.base_dir), args.plan_id)
    assistant_dir = assistant_dir_for(plan_path)

    options = ExecutionOptions(
        parallel=args.parallel,
        continue_run=args.continue_run,
        dry_run=args.dry_run,
        max_attempts=args.retries + 1,
        timeout=args.timeout,
    )

    if args.dry_run:
        print(PlanExecutor(plan, assistant_dir, None, options).dry_run(), end="")
        return 0

    result = load_config(start_dir=args.base_dir)
    if result.deprecated:
        print(deprecation_warning(), file=sys.stderr)
    registry = build_registry(result.config)
    gate = RateGate.from_registry(registry)
    router = Router(registry, gate=gate)

    interactive = not args.no_progress and sys.stdout.isatty()
    log_dir = assistant_dir / OUTPUT_DIR / plan.plan_id / "logs"

    try:
        with RunLogger(plan.plan_id, log_dir=log_dir, console_output=args.verbose) as logger:
            display = ExecProgressDisplay(
                total=len(plan.models) * len(plan.queries),
                interactive=interactive,
            )
            with display, ProgressChannel(display.on_event) as channel:
                options.on_progress = channel.publish
                executor = PlanExecutor(plan, assistant_dir, router, options, logger=logger)
                summary = run_interruptible(executor)
    finally:
        router.close()

    print_summary(summary, assistant_dir / OUTPUT_DIR / plan.plan_id, gate.get_status())
    return 1 if summary.has_errors else 0


def run_interruptible(executor: PlanExecutor) -> ExecutionSummary:
    """Run execute() on a helper thread so Ctrl-C cancels instead of killing workers."""
    cancel = threading.Event()
    outcome = {}

    def run():
        try:
            outcome['summary'] = executor.execute(cancel)
        except Exception as e:
            outcome['error'] = e

    thread = threading.Thread(target=run, name="tuna-exec", daemon=True)
    thread.start()
    try:
        while thread.is_alive():
            thread.join(0.2)
    except KeyboardInterrupt:
        print("\n⚠️  Cancelling... (waiting for in-flight tasks)", file=sys.stderr)
        cancel.set()
        thread.join()

    if 'error' in outcome:
        raise outcome['error']
    return outcome['summary']


def print_summary(summary: ExecutionSummary, output_dir: Path, rate_status: Optional[Dict[str, Dict]] = None):
    print(f"\n📊 Execution summary")
    print(f"   Tasks:   {summary.total_tasks} ({summary.total_models} models x {summary.total_queries} queries)")
    print(f"   Done:    {len(summary.results)}")
    if summary.skipped:
        print(f"   Skipped: {len(summary.skipped)}")
    print(f"   Failed:  {len(summary.errors)}")
    print(f"   Tokens:  {summary.total_prompt_tokens:,} prompt + {summary.total_output_tokens:,} output"
          f" = {summary.total_tokens:,} total")
    print(f"   Output:  {output_dir}")

    if rate_status:
        print("\n⏱️  Rate limits:")
        for provider, status in sorted(rate_status.items()):
            print(f"   {provider} {status['rate_limit']}: {status['admitted']} admitted, "
                  f"waited {status['waited_sec']:.2f}s")

    if summary.errors:
        print("\n❌ Errors:")
        for error in summary.errors:
            print(f"   - {error}")
