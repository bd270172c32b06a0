"""Tests for ChatNvidiaLlama4 - payloads, responses, SSE streaming, errors."""

import json

import httpx
import pytest
import respx
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from langchain_nvidia_llama4 import (
    ChatNvidiaLlama4,
    NvidiaAPIError,
    NvidiaGenerationError,
    NvidiaStreamError,
)

from tests.conftest import (
    CHAT_URL,
    MOCK_COMPLETION_RESPONSE,
    TEST_API_KEY,
    sse_body,
    sse_stream,
)


@pytest.fixture
def chat():
    return ChatNvidiaLlama4(api_key=TEST_API_KEY)


def captured_json(route) -> dict:
    return json.loads(route.calls.last.request.content)


# ─────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────

class TestConfiguration:
    def test_defaults(self, chat):
        assert chat.base_url == CHAT_URL
        assert chat.model_name == "meta/llama-4-maverick-17b-128e-instruct"
        assert chat.streaming is False
        assert chat._llm_type == "nvidia-llama4"

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="NVIDIA API key required"):
            ChatNvidiaLlama4()

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("NVIDIA_API_KEY", "nvapi-from-env")
        chat = ChatNvidiaLlama4()
        assert chat.api_key.get_secret_value() == "nvapi-from-env"

    def test_model_alias(self):
        chat = ChatNvidiaLlama4(api_key=TEST_API_KEY, model="meta/llama-4-scout-17b-16e-instruct")
        assert chat.model_name == "meta/llama-4-scout-17b-16e-instruct"

    def test_api_key_is_not_leaked_in_repr(self, chat):
        assert TEST_API_KEY not in repr(chat)


# ─────────────────────────────────────────────────────────────────────
# Non-streaming
# ─────────────────────────────────────────────────────────────────────

class TestGenerate:
    @respx.mock
    def test_invoke_returns_ai_message(self, chat):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        result = chat.invoke([HumanMessage(content="Capital of France?")])

        assert isinstance(result, AIMessage)
        assert result.content == "The capital of France is Paris."
        assert result.additional_kwargs["finish_reason"] == "stop"

    @respx.mock
    def test_payload_shape(self):
        route = respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )
        chat = ChatNvidiaLlama4(api_key=TEST_API_KEY, temperature=0.2, max_tokens=64)

        chat.invoke(
            [SystemMessage(content="Be brief."), HumanMessage(content="Hi")],
            stop=["END"],
            topP=0.9,
        )

        assert captured_json(route) == {
            "model": "meta/llama-4-maverick-17b-128e-instruct",
            "temperature": 0.2,
            "max_tokens": 64,
            "top_p": 0.9,
            "stop": ["END"],
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Hi"},
            ],
            "stream": False,
        }

    @respx.mock
    def test_call_options_override_defaults(self):
        route = respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )
        chat = ChatNvidiaLlama4(api_key=TEST_API_KEY, temperature=0.2)

        chat.invoke("Hi", temperature=0.9, model="other/model")

        payload = captured_json(route)
        assert payload["temperature"] == 0.9
        assert payload["model"] == "meta/llama-4-maverick-17b-128e-instruct"

    @respx.mock
    def test_call_option_values_are_sent_as_given(self, chat):
        route = respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        chat.invoke("Hi", temperature="warm")

        assert captured_json(route)["temperature"] == "warm"

    @respx.mock
    def test_sends_json_headers(self, chat):
        route = respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        chat.invoke("Hi")

        headers = route.calls.last.request.headers
        assert headers["Authorization"] == f"Bearer {TEST_API_KEY}"
        assert headers["Content-Type"] == "application/json"
        assert headers["Accept"] == "application/json"

    @respx.mock
    def test_generation_info_and_llm_output(self, chat):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        result = chat._generate([HumanMessage(content="Hi")])

        generation = result.generations[0]
        assert generation.text == "The capital of France is Paris."
        assert generation.generation_info["finish_reason"] == "stop"
        assert result.llm_output["token_usage"]["total_tokens"] == 18
        assert result.llm_output["model_name"] == chat.model_name

    @respx.mock
    def test_missing_choices_yields_empty_message(self, chat):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json={}))

        result = chat.invoke("Hi")

        assert result.content == ""

    @pytest.mark.asyncio
    @respx.mock
    async def test_ainvoke(self, chat):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        result = await chat.ainvoke("Capital of France?")

        assert result.content == "The capital of France is Paris."


# ─────────────────────────────────────────────────────────────────────
# Streaming
# ─────────────────────────────────────────────────────────────────────

class TestStreaming:
    @respx.mock
    def test_stream_yields_deltas(self, chat):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, content=sse_body()))

        chunks = list(chat.stream("Capital of France?"))

        assert [c.content for c in chunks if c.content] == ["The", " capital", " is", " Paris."]

    @respx.mock
    def test_stream_payload_and_accept_header(self, chat):
        route = respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, content=sse_stream("ok"))
        )

        list(chat.stream("Hi"))

        request = route.calls.last.request
        assert request.headers["Accept"] == "text/event-stream"
        assert json.loads(request.content)["stream"] is True

    @respx.mock
    def test_streaming_flag_collects_stream(self):
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(200, content=sse_body()))
        chat = ChatNvidiaLlama4(api_key=TEST_API_KEY, streaming=True)

        result = chat.invoke("Capital of France?")

        assert result.content == "The capital is Paris."
        assert json.loads(route.calls.last.request.content)["stream"] is True

    @respx.mock
    def test_streaming_flag_with_empty_stream(self):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, content=b"data: [DONE]\n")
        )
        chat = ChatNvidiaLlama4(api_key=TEST_API_KEY, streaming=True)

        result = chat._generate([HumanMessage(content="Hi")])

        assert result.generations[0].text == ""

    @respx.mock
    def test_malformed_lines_are_skipped(self, chat):
        body = (
            b"data: not-json\n"
            b'data: {"choices":[{"delta":{"content":"fine"}}]}\n'
            b"data: [DONE]\n"
        )
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, content=body))

        chunks = list(chat.stream("Hi"))

        assert "".join(c.content for c in chunks) == "fine"

    @pytest.mark.asyncio
    @respx.mock
    async def test_astream_yields_deltas(self, chat):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, content=sse_body()))

        chunks = [chunk async for chunk in chat.astream("Capital of France?")]

        assert "".join(c.content for c in chunks) == "The capital is Paris."


# ─────────────────────────────────────────────────────────────────────
# _call
# ─────────────────────────────────────────────────────────────────────

class TestCall:
    @respx.mock
    def test_returns_text(self, chat):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )
        assert chat._call([HumanMessage(content="Hi")]) == "The capital of France is Paris."

    @respx.mock
    def test_empty_text_raises(self, chat):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json={"choices": []}))

        with pytest.raises(NvidiaGenerationError, match="Could not generate text"):
            chat._call([HumanMessage(content="Hi")])

    @respx.mock
    def test_streaming_concatenates(self):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, content=sse_body()))
        chat = ChatNvidiaLlama4(api_key=TEST_API_KEY, streaming=True)

        assert chat._call([HumanMessage(content="Hi")]) == "The capital is Paris."

    @pytest.mark.asyncio
    @respx.mock
    async def test_acall_empty_text_raises(self, chat):
        respx.post(CHAT_URL).mock(return_value=httpx.Response(200, json={}))

        with pytest.raises(NvidiaGenerationError):
            await chat._acall([HumanMessage(content="Hi")])


# ─────────────────────────────────────────────────────────────────────
# Error handling
# ─────────────────────────────────────────────────────────────────────

class TestErrorHandling:
    @respx.mock
    def test_http_error_is_wrapped(self, chat):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(429, json={"error": {"message": "Rate limit exceeded"}})
        )

        with pytest.raises(NvidiaAPIError, match="Error calling NVIDIA Llama4 API.*Rate limit exceeded") as exc_info:
            chat.invoke("Hi")

        assert exc_info.value.status_code == 429

    @respx.mock
    def test_connection_error_is_wrapped(self, chat):
        respx.post(CHAT_URL).mock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(NvidiaAPIError, match="Connection refused"):
            chat.invoke("Hi")

    @respx.mock
    def test_no_retry_on_failure(self, chat):
        route = respx.post(CHAT_URL).mock(return_value=httpx.Response(500, text="boom"))

        with pytest.raises(NvidiaAPIError):
            chat.invoke("Hi")

        assert route.call_count == 1

    @respx.mock
    def test_stream_http_error(self, chat):
        respx.post(CHAT_URL).mock(
            return_value=httpx.Response(401, json={"detail": "Authentication failed"})
        )

        with pytest.raises(NvidiaStreamError, match="Error processing NVIDIA Llama4 stream.*Authentication failed"):
            list(chat.stream("Hi"))

    @pytest.mark.asyncio
    @respx.mock
    async def test_astream_connection_error(self, chat):
        respx.post(CHAT_URL).mock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(NvidiaStreamError, match="Connection refused"):
            async for _ in chat.astream("Hi"):
                pass
