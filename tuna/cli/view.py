"""
tuna view command - summarize the responses of a plan.

Prints one line per (query, model) with the response's rating and a short
preview, so a run can be reviewed from the terminal or piped into other tools.
"""

from pathlib import Path
from typing import List

from tuna.errors import PlanError
from tuna.plan import load_plan
from tuna.response import Rating
from tuna.response.loader import ModelResponse, ResponseGroup, load_responses

PREVIEW_LENGTH = 50

RATING_LABELS = {
    Rating.GOOD: "[Good]",
    Rating.BAD: "[Bad]",
    Rating.NONE: "(unrated)",
}


def setup_parser(subparsers):
    view_parser = subparsers.add_parser(
        'view',
        help='Summarize the responses of a plan'
    )
    view_parser.add_argument(
        'plan_id',
        help='Plan ID (from tuna plan)'
    )
    view_parser.set_defaults(func=cmd_view)


def cmd_view(args) -> int:
    _, plan_path = load_plan(Path(args.base_dir), args.plan_id)

    try:
        groups = load_responses(plan_path)
    except OSError as e:
        raise PlanError(f"failed to load responses: {e}") from e

    if not groups:
        raise PlanError(f"no responses found for plan {args.plan_id}")

    print_view_summary(args.plan_id, groups)
    return 0


def print_view_summary(plan_id: str, groups: List[ResponseGroup]):
    print(f"Plan: {plan_id}")
    print(f"Queries: {len(groups)}")
    print(f"Models: {len(groups[0].responses)}\n")

    for i, group in enumerate(groups, 1):
        print(f"Query {i}/{len(groups)}: {group.query_id}")
        for response in group.responses:
            label = RATING_LABELS[response.metadata.rating]
            print(f"  - {response.model} {label}: {preview(response)}")
        print()


def preview(response: ModelResponse) -> str:
    """First characters of the response on a single line."""
    content = response.content
    if not content:
        text = "(no response)"
    elif len(content) > PREVIEW_LENGTH:
        text = content[:PREVIEW_LENGTH] + "..."
    else:
        text = content
    return text.replace("\n", " ").replace("\r", " ")
