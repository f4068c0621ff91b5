from tuna.plan.schemas import AssistantSpec, LLMParams, Plan, Query
from tuna.plan.prompt import (
    INPUT_DIR,
    SYSTEM_PROMPT_DIR,
    compile_system_prompt,
    list_files,
)
from tuna.plan.loader import (
    PLAN_FILENAME,
    PlanResult,
    assistant_dir_for,
    generate_plan,
    load_plan,
    load_plan_file,
    parse_models,
    save_plan,
)

__all__ = [
    "AssistantSpec",
    "LLMParams",
    "Plan",
    "Query",
    "INPUT_DIR",
    "SYSTEM_PROMPT_DIR",
    "compile_system_prompt",
    "list_files",
    "PLAN_FILENAME",
    "PlanResult",
    "assistant_dir_for",
    "generate_plan",
    "load_plan",
    "load_plan_file",
    "parse_models",
    "save_plan",
]
