"""
Plan schema.

A plan is an immutable record of which models run against which input
queries, with the shared system prompt and sampling parameters. Stored at:
{assistant_dir}/Output/{plan_id}/plan.yaml
"""

from typing import List, Tuple
from pydantic import BaseModel, Field


class Query(BaseModel):
    id: str = Field(..., description="Input file name under Input/")

    model_config = {"frozen": True}


class LLMParams(BaseModel):
    models: List[str] = Field(default_factory=list, description="Models or aliases, in execution order")
    max_tokens: int = Field(default=0, description="Max generated tokens (0 = provider default)")
    temperature: float = Field(default=0.0, description="Sampling temperature")

    model_config = {"frozen": True}


class AssistantSpec(BaseModel):
    system_prompt: str = Field(default="", description="Compiled system prompt")
    llm: LLMParams = Field(default_factory=LLMParams)

    model_config = {"frozen": True}


class Plan(BaseModel):
    plan_id: str
    assistant_id: str
    assistant: AssistantSpec = Field(default_factory=AssistantSpec)
    queries: List[Query] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def models(self) -> List[str]:
        return list(self.assistant.llm.models)

    @property
    def query_ids(self) -> List[str]:
        return [query.id for query in self.queries]

    def tasks(self) -> List[Tuple[str, str]]:
        """(model, query_id) pairs: models outer, queries inner."""
        return [(model, query_id) for model in self.models for query_id in self.query_ids]
