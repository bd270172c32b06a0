"""Shared test fixtures for langchain-nvidia-llama4 tests."""

import json

import pytest


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

TEST_API_KEY = "nvapi-test-key-123"

CHAT_URL = "https://integrate.api.nvidia.com/v1/chat/completions"
EMBEDDINGS_URL = "https://integrate.api.nvidia.com/v1/embeddings"

MOCK_COMPLETION_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1699000000,
    "model": "meta/llama-4-maverick-17b-128e-instruct",
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "The capital of France is Paris."
            },
            "finish_reason": "stop"
        }
    ],
    "usage": {
        "prompt_tokens": 10,
        "completion_tokens": 8,
        "total_tokens": 18
    }
}

MOCK_STREAMING_CHUNKS = [
    'data: {"id":"chatcmpl-123","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"role":"assistant","content":""},"finish_reason":null}]}',
    'data: {"id":"chatcmpl-123","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":"The"},"finish_reason":null}]}',
    'data: {"id":"chatcmpl-123","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":" capital"},"finish_reason":null}]}',
    'data: {"id":"chatcmpl-123","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":" is"},"finish_reason":null}]}',
    'data: {"id":"chatcmpl-123","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":" Paris."},"finish_reason":null}]}',
    'data: {"id":"chatcmpl-123","object":"chat.completion.chunk","choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}',
    'data: [DONE]',
]


def sse_body(lines: list[str] = MOCK_STREAMING_CHUNKS) -> bytes:
    """Join SSE lines into a response body."""
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


def sse_stream(content: str) -> str:
    """Build a single-delta SSE stream response."""
    delta = json.dumps({"choices": [{"delta": {"content": content}}]})
    return f"data: {delta}\n\ndata: [DONE]\n\n"


def embeddings_response(vectors: list[list[float]]) -> dict:
    """Build an embeddings response with indexed items."""
    return {
        "object": "list",
        "data": [
            {"object": "embedding", "index": i, "embedding": v}
            for i, v in enumerate(vectors)
        ],
        "model": "nvidia/nv-embedcode-7b-v1",
    }


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep tests independent of the developer's NVIDIA_* variables."""
    monkeypatch.delenv("NVIDIA_API_KEY", raising=False)
    monkeypatch.delenv("NVIDIA_TIMEOUT_SECONDS", raising=False)


@pytest.fixture
def no_backoff(monkeypatch):
    """Record retry waits instead of sleeping."""
    from langchain_nvidia_llama4 import retry

    waits: list[float] = []

    def fake_sleep(seconds):
        waits.append(seconds)

    async def fake_async_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr(retry, "_sleep", fake_sleep)
    monkeypatch.setattr(retry, "_async_sleep", fake_async_sleep)
    return waits
