"""
Plan generation and loading.

Layout:
    {base_dir}/{assistant_id}/
        System prompt/*.md
        Input/*.md
        Output/{plan_id}/plan.yaml
        Output/{plan_id}/{model_hash}/{query}_response.md
"""

import glob
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import ValidationError

from tuna.errors import PlanError, PlanNotFoundError
from tuna.response.writer import OUTPUT_DIR
from .prompt import INPUT_DIR, compile_system_prompt, list_files
from .schemas import AssistantSpec, LLMParams, Plan, Query

PLAN_FILENAME = "plan.yaml"


@dataclass
class PlanResult:
    plan_path: Path
    plan_id: str
    models_count: int
    queries_count: int


def generate_plan(
    base_dir: Path,
    assistant_id: str,
    models: List[str],
    temperature: float = 0.0,
    max_tokens: int = 0,
    plan_id: Optional[str] = None,
) -> PlanResult:
    """
    Create a new plan for an assistant and write it to disk.

    The system prompt is compiled now, so later edits to the prompt
    fragments do not change what an existing plan sends.
    """
    assistant_dir = Path(base_dir) / assistant_id
    if not assistant_dir.is_dir():
        raise PlanError(f"assistant directory not found: {assistant_dir}")

    plan_id = plan_id or str(uuid.uuid4())
    system_prompt = compile_system_prompt(assistant_dir)

    try:
        query_files = list_files(assistant_dir / INPUT_DIR)
    except FileNotFoundError:
        query_files = []

    plan = Plan(
        plan_id=plan_id,
        assistant_id=assistant_id,
        assistant=AssistantSpec(
            system_prompt=system_prompt,
            llm=LLMParams(models=models, max_tokens=max_tokens, temperature=temperature),
        ),
        queries=[Query(id=name) for name in query_files],
    )

    output_dir = assistant_dir / OUTPUT_DIR / plan_id
    output_dir.mkdir(parents=True, exist_ok=True)
    plan_path = output_dir / PLAN_FILENAME
    save_plan(plan, plan_path)

    return PlanResult(
        plan_path=plan_path,
        plan_id=plan_id,
        models_count=len(models),
        queries_count=len(query_files),
    )


def save_plan(plan: Plan, path: Path):
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(plan.model_dump(), f, sort_keys=False, allow_unicode=True)


def load_plan_file(path: Path) -> Plan:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise PlanError(f"failed to read plan file: {e}") from e
    except yaml.YAMLError as e:
        raise PlanError(f"failed to parse {path}: {e}") from e

    try:
        return Plan.model_validate(data)
    except ValidationError as e:
        raise PlanError(f"invalid plan {path}:\n{e}") from e


def load_plan(base_dir: Path, plan_id: str) -> Tuple[Plan, Path]:
    """
    Find a plan by ID under */Output/{plan_id}/plan.yaml.

    Returns:
        Tuple of (plan, plan_path)
    """
    matches = sorted(Path(base_dir).glob(f"*/{OUTPUT_DIR}/{glob.escape(plan_id)}/{PLAN_FILENAME}"))

    if not matches:
        raise PlanNotFoundError(
            f"plan not found: {plan_id}\n"
            "Run 'tuna plan <AssistantID>' to create a plan first"
        )
    if len(matches) > 1:
        raise PlanError(f"multiple plans found with ID {plan_id}: {[str(m) for m in matches]}")

    plan_path = matches[0]
    plan = load_plan_file(plan_path)
    if plan.plan_id != plan_id:
        raise PlanError(f"plan_id mismatch: expected {plan_id}, got {plan.plan_id}")

    return plan, plan_path


def assistant_dir_for(plan_path: Path) -> Path:
    """{base}/{assistant}/Output/{plan_id}/plan.yaml -> {base}/{assistant}"""
    return Path(plan_path).parent.parent.parent


def parse_models(models: str) -> List[str]:
    """Split "a, b,,c" into ["a", "b", "c"]."""
    if not models:
        return []
    return [part.strip() for part in models.split(",") if part.strip()]
