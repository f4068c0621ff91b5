#!/usr/bin/env python3
"""
LLM client for a single OpenAI-compatible provider.

Composes transport and parsing layers:
- OpenAITransport: HTTP requests
- ResponseParser: Response extraction and malformed handling

No retries here: retry policy belongs to the executor so that rate limiting
and retrying stay independently testable.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Optional

import requests

from tuna.errors import TaskCancelledError
from .models import ChatRequest, ChatResponse
from .response_parser import ResponseParser
from .transport import OpenAITransport

CANCEL_POLL_SECONDS = 0.1


class LLMClient:
    """
    Sends chat requests to one provider.

    Satisfies the ChatClient protocol, as does Router.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str,
        session: Optional[requests.Session] = None,
        transport: Optional[OpenAITransport] = None,
    ):
        """
        Initialize LLM client.

        Args:
            base_url: Provider base URL (e.g., "https://api.openai.com/v1")
            api_token: Bearer token
            session: Optional requests session (thread-local sessions by default)
            transport: Optional prebuilt transport; overrides base_url/api_token/session
        """
        self.transport = transport or OpenAITransport(base_url, api_token, session=session)
        self.parser = ResponseParser()

    @property
    def base_url(self) -> str:
        return self.transport.base_url

    def chat(self, request: ChatRequest, cancel: Optional[threading.Event] = None) -> ChatResponse:
        """
        Make one chat completion call.

        Args:
            request: Chat request; `model` is sent as-is
            cancel: Optional event; when set, the call is abandoned and
                TaskCancelledError is raised. The HTTP request itself is
                bounded by request.timeout.

        Raises:
            requests.exceptions.RequestException: Network or HTTP errors
            EmptyChoicesError / MalformedResponseError: Unusable payload
            TaskCancelledError: `cancel` was set
        """
        payload = {
            "model": request.model,
            "messages": request.messages(),
            "temperature": request.temperature,
        }

        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens

        session = self.transport.session()

        def _make_call():
            result = self.transport.post(payload, request.timeout, session=session)
            return self.parser.parse_chat_completion(result, request.model)

        if cancel is None:
            return _make_call()

        if cancel.is_set():
            raise TaskCancelledError(f"cancelled before calling {self.base_url}")

        # Run the HTTP call on a helper thread so cancellation does not have
        # to wait for the socket to time out. The session stays the calling
        # worker's, so connections are reused across that worker's tasks.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tuna-http")
        try:
            future = executor.submit(_make_call)
            while True:
                try:
                    return future.result(timeout=CANCEL_POLL_SECONDS)
                except FutureTimeoutError:
                    if cancel.is_set():
                        future.cancel()
                        raise TaskCancelledError(
                            f"cancelled while waiting for {self.base_url}"
                        ) from None
        finally:
            executor.shutdown(wait=False)

    def close(self):
        """Close every pooled HTTP session."""
        self.transport.close()
