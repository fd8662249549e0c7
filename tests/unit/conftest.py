"""
Global fixtures for all unit tests.

Keeps tests away from any real Ollama server:
- Config isolation (a developer's .env must not leak in)
- Helpers for building clients on an in-memory httpx transport
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from jobtrack.common.config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_OLLAMA_BASE_URL,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
    Config,
    OllamaConfig,
)


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch):
    """Pin Config to its documented fallbacks so a local .env cannot leak in."""
    for name, value in {
        "OLLAMA_BASE_URL": DEFAULT_OLLAMA_BASE_URL,
        "OLLAMA_MODEL": DEFAULT_OLLAMA_MODEL,
        "OLLAMA_TIMEOUT_SECONDS": DEFAULT_TIMEOUT_SECONDS,
        "LLM_MAX_ATTEMPTS": DEFAULT_MAX_ATTEMPTS,
        "LLM_RETRY_DELAY_SECONDS": DEFAULT_RETRY_DELAY_SECONDS,
        "LLM_TEMPERATURE": DEFAULT_TEMPERATURE,
        "LOG_LEVEL": "INFO",
        "LOG_FORMAT": "simple",
    }.items():
        monkeypatch.setattr(Config, name, value)


@pytest.fixture
def restore_root_logging():
    """Undo setup_logging() changes to the root logger after a test."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def test_config() -> OllamaConfig:
    """Config with no retry delay so retrying tests run instantly."""
    return OllamaConfig(
        base_url="http://ollama.test:11434",
        model="llama3.2",
        timeout_seconds=5.0,
        max_attempts=2,
        retry_delay_seconds=0.0,
    )


@pytest.fixture
def ollama_transport() -> Callable[..., httpx.MockTransport]:
    """
    Build an httpx.MockTransport that replies with the given bodies in order.

    Each request body is recorded in transport.requests as parsed JSON.
    The last reply repeats once the list is exhausted.
    """

    def factory(*replies: Any, status_code: int = 200) -> httpx.MockTransport:
        requests: List[Dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            body = replies[min(len(requests), len(replies)) - 1]
            return httpx.Response(status_code, json=body)

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return factory


@pytest.fixture
def fake_ollama(test_config) -> Callable[..., MagicMock]:
    """
    Build a stand-in OllamaClient whose generate() returns the given texts.

    Exceptions in the list are raised instead of returned.
    """

    def factory(*outputs: Any, config: Optional[OllamaConfig] = None) -> MagicMock:
        client = MagicMock()
        client.config = config or test_config
        client.generate = AsyncMock(side_effect=list(outputs))
        return client

    return factory
