"""
LLM subsystem for OpenAI-compatible providers.

Provides:
- ChatClient: The capability protocol (chat(request) -> response)
- LLMClient: Single-provider client (transport + response parsing)
- Router: Multi-provider client with alias resolution and rate limiting
- RateLimiter / RateGate: Per-provider token buckets
- Data models: ChatRequest / ChatResponse
"""

from tuna.llm.base import ChatClient
from tuna.llm.client import LLMClient
from tuna.llm.models import (
    ChatRequest,
    ChatResponse,
)
from tuna.llm.rate_limiter import RateGate, RateLimiter
from tuna.llm.response_parser import ResponseParser
from tuna.llm.router import Router
from tuna.llm.transport import OpenAITransport

__all__ = [
    "ChatClient",
    "LLMClient",
    "ChatRequest",
    "ChatResponse",
    "RateGate",
    "RateLimiter",
    "ResponseParser",
    "Router",
    "OpenAITransport",
]
