"""
tuna plan command - create an execution plan for an assistant.
"""

from pathlib import Path

from tuna.errors import PlanError
from tuna.plan import generate_plan, parse_models

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def setup_parser(subparsers):
    plan_parser = subparsers.add_parser(
        'plan',
        help='Create an execution plan'
    )
    plan_parser.add_argument(
        'assistant_id',
        help='Assistant directory name'
    )
    plan_parser.add_argument(
        '-m', '--models',
        default=DEFAULT_MODEL,
        help='Comma-separated list of models or aliases'
    )
    plan_parser.add_argument(
        '--temperature',
        type=float,
        default=0.7,
        help='Sampling temperature (default: 0.7)'
    )
    plan_parser.add_argument(
        '--max-tokens',
        type=int,
        default=4096,
        help='Max tokens per response (default: 4096)'
    )
    plan_parser.set_defaults(func=cmd_plan)


def cmd_plan(args) -> int:
    """Compile the system prompt, list queries and write plan.yaml."""
    models = parse_models(args.models)
    if not models:
        raise PlanError("at least one model is required (--models)")

    result = generate_plan(
        Path(args.base_dir),
        args.assistant_id,
        models,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
    )

    print(f"✅ Plan created: {result.plan_path}")
    print(f"   Plan ID: {result.plan_id}")
    print(f"   Models:  {result.models_count}")
    print(f"   Queries: {result.queries_count}")

    if result.queries_count == 0:
        print("\n⚠️  No input queries found. Add .txt or .md files to the Input/ directory.")

    return 0
