"""
Loads every model's response for a plan, grouped by input query.

This is the read side used by viewers: execution metadata is reported
as-is, and a missing response file yields an empty ModelResponse rather
than an error (the task may simply not have run yet).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from tuna.plan import INPUT_DIR, assistant_dir_for, load_plan_file
from .hash import model_hash
from .metadata import ResponseMetadata, parse_response
from .writer import response_filename


@dataclass
class ModelResponse:
    model: str
    model_hash: str
    file_path: Path
    content: str = ""
    exists: bool = False
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)


@dataclass
class ResponseGroup:
    query_id: str
    input_path: Path
    input_text: str
    responses: List[ModelResponse] = field(default_factory=list)


def load_responses(plan_path: Path) -> List[ResponseGroup]:
    plan = load_plan_file(plan_path)
    assistant_dir = assistant_dir_for(plan_path)
    output_dir = Path(plan_path).parent

    groups = []
    for query_id in plan.query_ids:
        input_path = assistant_dir / INPUT_DIR / query_id
        group = ResponseGroup(
            query_id=query_id,
            input_path=input_path,
            input_text=input_path.read_text(encoding="utf-8"),
        )

        for model in plan.models:
            digest = model_hash(model)
            response = ModelResponse(
                model=model,
                model_hash=digest,
                file_path=output_dir / digest / response_filename(query_id),
            )
            if response.file_path.exists():
                response.metadata, response.content = parse_response(response.file_path)
                response.exists = True
            group.responses.append(response)

        groups.append(group)

    return groups
