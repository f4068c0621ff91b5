"""
Configuration schemas for tuna.

Defines the structure of the `.tuna.yaml` configuration file. Structural
checks (types, required keys) live here; cross-provider validation happens
in ProviderRegistry.build so the same rules apply however the config was
produced.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
import os
import re


class ProviderConfig(BaseModel):
    """Configuration for one OpenAI-compatible provider."""
    name: str = Field(..., description="Unique provider name")
    base_url: str = Field(..., description="Base URL of the OpenAI-compatible API")
    api_token: Optional[str] = Field(None, description="Direct API token (can use ${ENV_VAR} syntax)")
    api_token_env: Optional[str] = Field(None, description="Environment variable holding the API token")
    rate_limit: Optional[str] = Field(None, description="Rate limit like 10rpm, 5rps or 100rph")
    models: List[str] = Field(default_factory=list, description="Models served by this provider")

    @field_validator('base_url')
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return v.strip()

    model_config = {
        "frozen": True,
    }


class TunaConfig(BaseModel):
    """
    Root configuration.

    Stored at: .tuna.yaml (project) or ~/.config/tuna.yaml (user)
    """
    default_provider: str = Field(
        default="",
        description="Provider used for models not listed by any provider"
    )
    aliases: Dict[str, str] = Field(
        default_factory=dict,
        description="Short name -> full model name"
    )
    providers: List[ProviderConfig] = Field(
        default_factory=list,
        description="Provider definitions"
    )

    @field_validator('aliases')
    @classmethod
    def validate_aliases(cls, v: Dict[str, str]) -> Dict[str, str]:
        for alias, model in v.items():
            if not alias:
                raise ValueError("alias key cannot be empty")
            if not model:
                raise ValueError(f"alias {alias!r}: model name cannot be empty")
        return v

    model_config = {
        "frozen": True,
    }


def resolve_env_vars(value: str) -> str:
    """
    Resolve ${ENV_VAR} references in a string.

    Examples:
        "${OPENAI_API_KEY}" -> actual value from environment
        "literal-value" -> "literal-value"
        "${MISSING_VAR}" -> "" (empty string if not set)
    """
    if not isinstance(value, str):
        return value

    pattern = r'\$\{([^}]+)\}'

    def replace(match):
        return os.environ.get(match.group(1), "")

    return re.sub(pattern, replace, value)
