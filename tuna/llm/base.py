from __future__ import annotations

import threading
from typing import Optional, Protocol

from .models import ChatRequest, ChatResponse


class ChatClient(Protocol):
    """Anything that can answer a chat request: a single-provider client or the router."""

    def chat(self, request: ChatRequest, cancel: Optional[threading.Event] = None) -> ChatResponse:
        """Send one chat completion request and return the response."""
        ...
