#!/usr/bin/env python3
"""
Data models for chat completion requests.

ChatRequest/ChatResponse are the currency of every ChatClient. The router
rewrites `model` on the way in and stamps `provider_url`/`duration` on the
way out; everything else passes through untouched.
"""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class ChatRequest:
    model: str
    system_prompt: str
    user_message: str
    temperature: float = 0.0
    max_tokens: int = 0
    timeout: int = 120  # Seconds; bounds the HTTP call

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_message},
        ]


@dataclass(frozen=True)
class ChatResponse:
    """
    Container for a chat completion result.

    Attributes:
        content: Text of the first choice
        model: Model name as echoed by the provider (may differ from the request)
        prompt_tokens: Input tokens from the usage block
        output_tokens: Completion tokens from the usage block
        provider_url: Base URL of the provider that served it (set by Router)
        duration: Seconds spent in the provider call, excluding any
            rate-limit wait (set by Router)
    """
    content: str
    model: str
    prompt_tokens: int = 0
    output_tokens: int = 0
    provider_url: str = ""
    duration: float = 0.0
    usage: Dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.output_tokens
