#!/usr/bin/env python3
"""
Routes chat requests to the provider that serves the requested model.

Router composes the ProviderRegistry (alias + provider resolution), the
RateGate (per-provider throttling) and one ChatClient per provider.
"""

import dataclasses
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from tuna.config.registry import Provider, ProviderRegistry
from .base import ChatClient
from .client import LLMClient
from .models import ChatRequest, ChatResponse
from .rate_limiter import RateGate

logger = logging.getLogger(__name__)


def default_client_factory(provider: Provider) -> ChatClient:
    return LLMClient(base_url=provider.base_url, api_token=provider.token)


class Router:
    """
    Multi-provider ChatClient.

    Thread Safety:
        Registry and client map are built in __init__ and only read after.
        The rate gate carries its own locking, so chat() can be called from
        any number of worker threads for the same or different providers.

    Example:
        >>> router = Router(registry)
        >>> response = router.chat(ChatRequest(model="sonnet", system_prompt="...", user_message="..."))
        >>> response.provider_url
        'https://openrouter.ai/api/v1'
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        gate: Optional[RateGate] = None,
        client_factory: Optional[Callable[[Provider], ChatClient]] = None,
    ):
        self.registry = registry
        self.gate = gate if gate is not None else RateGate.from_registry(registry)
        factory = client_factory or default_client_factory
        self._clients: Dict[str, ChatClient] = {
            provider.name: factory(provider) for provider in registry.providers()
        }

    def chat(self, request: ChatRequest, cancel: Optional[threading.Event] = None) -> ChatResponse:
        """
        Resolve, throttle, dispatch.

        The returned duration covers the provider call only; time spent
        waiting for a rate limit token is excluded.

        Raises:
            RateLimitCancelledError: `cancel` was set while waiting for a token
            Any client error, unchanged
        """
        model, provider_name = self.registry.resolve_model(request.model)
        provider = self.registry.provider(provider_name)
        client = self._clients[provider_name]

        waited = self.gate.admit(provider_name, cancel)
        if waited > 0:
            logger.debug(f"Rate limited: provider={provider_name}, waited={waited:.2f}s")

        if model != request.model:
            logger.debug(f"Resolved alias {request.model!r} -> {model!r}")
        request = dataclasses.replace(request, model=model)

        start = time.perf_counter()
        response = client.chat(request, cancel)
        duration = time.perf_counter() - start

        logger.debug(
            f"Chat completed: provider={provider_name}, model={model}, "
            f"duration={duration:.3f}s, tokens={response.prompt_tokens}+{response.output_tokens}"
        )

        return dataclasses.replace(response, provider_url=provider.base_url, duration=duration)

    def resolve_model(self, model: str) -> Tuple[str, str]:
        return self.registry.resolve_model(model)

    def close(self):
        """Release pooled connections of every provider client that holds any."""
        for client in self._clients.values():
            close = getattr(client, "close", None)
            if close is not None:
                close()

    def __repr__(self):
        return f"Router(providers={self.registry.provider_names()})"
