"""
Pytest configuration for project root.

Ensures project modules can be imported in tests.
Provides global fixtures for assistant directories and a fake chat client.
"""

import sys
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

import pytest

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from tuna.llm.models import ChatRequest, ChatResponse  # noqa: E402


# ============================================================================
# FAKE CLIENT - stands in for the router / a provider, no network
# ============================================================================

class FakeChatClient:
    """Answers every request with a canned response and records the calls.

    Args:
        fail_when: Returns an exception to raise for a request, or None
        delay: Seconds to sleep per call (to exercise concurrency)
        prompt_tokens / output_tokens: Usage reported per call
    """

    def __init__(
        self,
        fail_when: Optional[Callable[[ChatRequest], Optional[Exception]]] = None,
        delay: float = 0.0,
        prompt_tokens: int = 10,
        output_tokens: int = 5,
    ):
        self.fail_when = fail_when
        self.delay = delay
        self.prompt_tokens = prompt_tokens
        self.output_tokens = output_tokens

        self.requests: List[ChatRequest] = []
        self.threads = set()
        self.closed = False
        self._lock = threading.Lock()

    def chat(self, request: ChatRequest, cancel: Optional[threading.Event] = None) -> ChatResponse:
        with self._lock:
            self.requests.append(request)
            self.threads.add(threading.current_thread().name)

        if self.delay:
            time.sleep(self.delay)

        if self.fail_when is not None:
            error = self.fail_when(request)
            if error is not None:
                raise error

        return ChatResponse(
            content=f"{request.model} says: {request.user_message.strip()}",
            model=f"{request.model}-2025",
            prompt_tokens=self.prompt_tokens,
            output_tokens=self.output_tokens,
            provider_url="https://fake.test/v1",
            duration=0.25,
        )

    def close(self):
        self.closed = True


@pytest.fixture
def fake_client():
    """Factory for FakeChatClient instances."""
    return FakeChatClient


# ============================================================================
# ASSISTANT FIXTURES - real directories under tmp_path
# ============================================================================

@pytest.fixture
def base_dir(tmp_path):
    """Working directory holding assistant directories."""
    base = tmp_path / "work"
    base.mkdir()
    return base


@pytest.fixture
def assistant_dir(base_dir):
    """Assistant with two prompt fragments and two queries.

    Layout:
        work/helper/System prompt/01_role.md, 02_rules.txt
        work/helper/Input/query_001.md, query_002.md
    """
    assistant = base_dir / "helper"
    prompt_dir = assistant / "System prompt"
    input_dir = assistant / "Input"
    prompt_dir.mkdir(parents=True)
    input_dir.mkdir(parents=True)

    (prompt_dir / "01_role.md").write_text("You are a helpful assistant.")
    (prompt_dir / "02_rules.txt").write_text("Answer briefly.\n")
    (input_dir / "query_001.md").write_text("What is 2+2?\n")
    (input_dir / "query_002.md").write_text("Name a prime number.\n")
    return assistant
