"""
Pytest configuration for Ask REST Data tests.
Forces heuristic-only mode (no LLM) unless FORCE_LLM_TESTS=1 is set.
"""
import os
import json
import httpx
import pytest
from unittest.mock import patch

from pipeline.config import DataApiSettings
from pipeline.data_client import DataApiClient


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "llm: marks tests that require LLM API access")


@pytest.fixture(autouse=True, scope="session")
def disable_llm_for_tests():
    """Patch load_api_key to return None, forcing heuristic mode.
    Set FORCE_LLM_TESTS=1 to use the real API key."""
    if os.environ.get("FORCE_LLM_TESTS") == "1":
        yield
    else:
        with patch("pipeline.main.load_api_key", return_value=None):
            yield


TEST_SETTINGS = DataApiSettings(base_url="https://example.supabase.co", api_key="test-key", timeout=5.0)

SAMPLE_TODOS = [
    {"id": 1, "title": "Buy milk", "is_done": True},
    {"id": 2, "title": "Walk the dog", "is_done": False},
]


class RecordingHandler:
    """MockTransport handler that remembers requests and replies with a fixed response."""

    def __init__(self, status_code=200, body=None, headers=None, exc=None):
        self.status_code = status_code
        self.body = json.dumps(SAMPLE_TODOS) if body is None else body
        self.headers = headers or {"content-type": "application/json"}
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        content = self.body if isinstance(self.body, bytes) else self.body.encode("utf-8")
        return httpx.Response(self.status_code, content=content, headers=self.headers)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def make_client():
    """Build a DataApiClient on top of a MockTransport handler."""
    def _make(h):
        return DataApiClient(TEST_SETTINGS, transport=httpx.MockTransport(h))
    return _make


def make_fake_llm(reply=None, exc=None):
    """Async chat callable returning a canned reply (or raising), counting calls."""
    async def _llm(messages):
        _llm.calls.append(messages)
        if exc is not None:
            raise exc
        return reply
    _llm.calls = []
    return _llm


@pytest.fixture
def fake_llm():
    return make_fake_llm


@pytest.fixture
def make_handler():
    return RecordingHandler
