"""
Tests for tuna/llm/client.py, transport.py and response_parser.py

A fake requests session captures the outgoing call; no network.
"""

import threading
import time

import pytest
import requests

from tuna.errors import EmptyChoicesError, MalformedResponseError, TaskCancelledError
from tuna.llm import ChatRequest, LLMClient, ResponseParser


def completion(content="Four.", model="gpt-4o-2024-08-06", prompt_tokens=12, completion_tokens=3):
    return {
        "id": "chatcmpl-1",
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.headers = {}

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, response, delay=0.0):
        self.response = response
        self.delay = delay
        self.calls = []
        self.closed = False

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.delay:
            time.sleep(self.delay)
        return self.response

    def close(self):
        self.closed = True


def make_request(**kwargs):
    defaults = dict(model="gpt-4o", system_prompt="Be brief.", user_message="2+2?")
    defaults.update(kwargs)
    return ChatRequest(**defaults)


class TestLLMClientWire:
    """Test the outgoing request."""

    def test_posts_openai_payload(self):
        session = FakeSession(FakeResponse(completion()))
        client = LLMClient("https://api.test/v1/", "sk-test", session=session)

        client.chat(make_request(temperature=0.3, max_tokens=256, timeout=30))

        call = session.calls[0]
        assert call["url"] == "https://api.test/v1/chat/completions"
        assert call["headers"]["Authorization"] == "Bearer sk-test"
        assert call["timeout"] == 30
        assert call["json"] == {
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "2+2?"},
            ],
            "temperature": 0.3,
            "max_tokens": 256,
        }

    def test_zero_max_tokens_is_omitted(self):
        session = FakeSession(FakeResponse(completion()))
        LLMClient("https://api.test/v1", "sk", session=session).chat(make_request())
        assert "max_tokens" not in session.calls[0]["json"]

    def test_parses_response(self):
        session = FakeSession(FakeResponse(completion()))
        response = LLMClient("https://api.test/v1", "sk", session=session).chat(make_request())

        assert response.content == "Four."
        assert response.model == "gpt-4o-2024-08-06"
        assert response.prompt_tokens == 12
        assert response.output_tokens == 3
        assert response.total_tokens == 15

    def test_http_error_raises(self):
        session = FakeSession(FakeResponse({"error": "nope"}, status_code=503))
        client = LLMClient("https://api.test/v1", "sk", session=session)
        with pytest.raises(requests.exceptions.HTTPError):
            client.chat(make_request())

    def test_non_json_body_is_malformed(self):
        body_error = requests.exceptions.JSONDecodeError("Expecting value", "<html>oops</html>", 0)
        session = FakeSession(FakeResponse(body_error))
        client = LLMClient("https://api.test/v1", "sk", session=session)
        with pytest.raises(MalformedResponseError, match="non-JSON"):
            client.chat(make_request())

    def test_base_url_property(self):
        assert LLMClient("https://api.test/v1/", "sk").base_url == "https://api.test/v1"


class TestLLMClientCancellation:
    """Test that a set cancel event abandons the call."""

    def test_cancel_before_call(self):
        session = FakeSession(FakeResponse(completion()))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(TaskCancelledError):
            LLMClient("https://api.test/v1", "sk", session=session).chat(make_request(), cancel)
        assert session.calls == []

    def test_cancel_during_call_returns_promptly(self):
        session = FakeSession(FakeResponse(completion()), delay=2.0)
        client = LLMClient("https://api.test/v1", "sk", session=session)
        cancel = threading.Event()
        threading.Timer(0.1, cancel.set).start()

        start = time.monotonic()
        with pytest.raises(TaskCancelledError):
            client.chat(make_request(), cancel)
        assert time.monotonic() - start < 1.0

    def test_unset_cancel_event_completes(self):
        session = FakeSession(FakeResponse(completion()), delay=0.05)
        client = LLMClient("https://api.test/v1", "sk", session=session)
        response = client.chat(make_request(), threading.Event())
        assert response.content == "Four."


class TestSessionPooling:
    """Test that HTTP sessions are reused per worker thread."""

    def make_client(self):
        client = LLMClient("https://api.test/v1", "sk")
        created = []

        def create_session():
            session = FakeSession(FakeResponse(completion()))
            created.append(session)
            return session

        client.transport._sessions._create_session = create_session
        return client, created

    def test_one_session_across_cancellable_calls(self):
        client, created = self.make_client()
        cancel = threading.Event()

        for _ in range(5):
            client.chat(make_request(), cancel)

        assert len(created) == 1
        assert len(created[0].calls) == 5
        assert client.transport._sessions.session_count == 1

    def test_one_session_per_worker_thread(self):
        client, created = self.make_client()

        def worker():
            for _ in range(3):
                client.chat(make_request(), threading.Event())

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 2
        assert sorted(len(s.calls) for s in created) == [3, 3]

    def test_close_closes_every_session(self):
        client, created = self.make_client()
        client.chat(make_request())
        client.chat(make_request(), threading.Event())

        client.close()

        assert [s.closed for s in created] == [True]
        assert client.transport._sessions.session_count == 0

        client.chat(make_request())
        assert len(created) == 2


class TestResponseParser:
    """Test payload validation."""

    def test_missing_choices(self):
        payload = completion()
        payload["choices"] = []
        with pytest.raises(EmptyChoicesError):
            ResponseParser().parse_chat_completion(payload, "m")

    def test_missing_usage(self):
        payload = completion()
        del payload["usage"]
        with pytest.raises(EmptyChoicesError, match="usage"):
            ResponseParser().parse_chat_completion(payload, "m")

    def test_missing_message(self):
        payload = completion()
        payload["choices"] = [{"index": 0}]
        with pytest.raises(MalformedResponseError):
            ResponseParser().parse_chat_completion(payload, "m")

    def test_not_an_object(self):
        with pytest.raises(MalformedResponseError):
            ResponseParser().parse_chat_completion(["not", "a", "dict"], "m")

    def test_empty_choices_is_malformed(self):
        """Retry classification relies on this hierarchy."""
        assert issubclass(EmptyChoicesError, MalformedResponseError)

    def test_model_falls_back_to_requested(self):
        payload = completion()
        del payload["model"]
        response = ResponseParser().parse_chat_completion(payload, "requested-model")
        assert response.model == "requested-model"

    def test_null_content_becomes_empty_string(self):
        response = ResponseParser().parse_chat_completion(completion(content=None), "m")
        assert response.content == ""
