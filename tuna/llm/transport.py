#!/usr/bin/env python3
import logging
import requests
from typing import Dict, Any, Optional

from tuna.errors import MalformedResponseError
from .http_session import ThreadLocalSessionManager


class OpenAITransport:
    """POSTs chat completion payloads to one OpenAI-compatible endpoint."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = base_url.rstrip('/')
        self.endpoint = f"{self.base_url}/chat/completions"
        self.api_token = api_token
        self._session = session
        self._sessions = ThreadLocalSessionManager()

    def session(self) -> requests.Session:
        """The session for the calling thread (or the injected one)."""
        return self._session or self._sessions.get_session()

    def post(
        self,
        payload: Dict[str, Any],
        timeout: int = 120,
        session: Optional[requests.Session] = None,
    ) -> Dict[str, Any]:
        """
        Send one request.

        Args:
            session: Session to use; defaults to the calling thread's. Pass
                one explicitly when posting from a helper thread.

        Raises:
            requests.exceptions.RequestException: Network or HTTP errors
            MalformedResponseError: 2xx body is not JSON
        """
        model = payload.get('model', 'unknown')

        self.logger.debug(
            f"Chat completion request: endpoint={self.endpoint}, model={model}, "
            f"timeout={timeout}, num_messages={len(payload.get('messages', []))}"
        )

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

        session = session or self.session()
        response = session.post(
            self.endpoint,
            headers=headers,
            json=payload,
            timeout=timeout
        )

        self.logger.debug(
            f"Chat completion response: model={model}, "
            f"status_code={response.status_code}, ok={response.ok}"
        )

        response.raise_for_status()

        try:
            return response.json()
        except ValueError as e:
            self.logger.error(f"Non-JSON response body: model={model}, error={e}")
            raise MalformedResponseError(
                f"{self.endpoint} returned a non-JSON body (status {response.status_code})"
            ) from e

    def close(self):
        self._sessions.close_all()
