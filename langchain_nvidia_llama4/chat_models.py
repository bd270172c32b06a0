"""
ChatNvidiaLlama4 - LangChain chat model backed by NVIDIA's chat completion API.

Usage:
    chat = ChatNvidiaLlama4(api_key="nvapi-...", temperature=0.2)
    chat.invoke([SystemMessage("Be brief."), HumanMessage("Hi")])

    for chunk in chat.stream("Tell me a story"):
        print(chunk.content, end="")

Call-time options (``max_tokens``/``maxTokens``, ``images``, ...) are passed
as keyword arguments and override the instance defaults for that call.
"""

from typing import Any, AsyncIterator, Iterator, Optional

from langchain_core.callbacks import (
    AsyncCallbackManagerForLLMRun,
    CallbackManagerForLLMRun,
)
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    message_chunk_to_message,
)
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult

from langchain_nvidia_llama4.base import _NvidiaLlama4Base
from langchain_nvidia_llama4.converters import (
    convert_response_to_message,
    format_messages_for_nvidia,
    translate_response,
)
from langchain_nvidia_llama4.errors import NvidiaGenerationError
from langchain_nvidia_llama4.schema import StreamEvent
from langchain_nvidia_llama4.transport import (
    apost_json,
    astream_events,
    post_json,
    stream_events,
)


def _to_chunk(event: StreamEvent) -> ChatGenerationChunk:
    generation_info = {"finish_reason": event.finish_reason} if event.finish_reason else None
    return ChatGenerationChunk(
        message=AIMessageChunk(content=event.text_delta),
        generation_info=generation_info,
    )


def _result_from_chunk(chunk: Optional[ChatGenerationChunk]) -> ChatResult:
    """A stream that produced no deltas is an empty answer, not an error."""
    if chunk is None:
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=""))])
    return ChatResult(
        generations=[
            ChatGeneration(
                message=message_chunk_to_message(chunk.message),
                generation_info=chunk.generation_info,
            )
        ]
    )


class ChatNvidiaLlama4(_NvidiaLlama4Base, BaseChatModel):
    """
    NVIDIA Llama4 chat model.

    Non-streaming calls POST once and translate ``choices[0].message``.
    Streaming calls consume the SSE endpoint and yield one chunk per
    non-empty delta. No retries: failures raise NvidiaAPIError /
    NvidiaStreamError immediately.

    An empty provider response comes back from ``invoke`` / ``ainvoke`` as an
    empty AIMessage. Only ``_call`` / ``_acall`` treat empty text as a
    failure and raise NvidiaGenerationError.
    """

    @classmethod
    def lc_name(cls) -> str:
        return "ChatNvidiaLlama4"

    def _build_payload(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]],
        stream: bool,
        **kwargs: Any,
    ) -> dict[str, Any]:
        return {
            **self._request_options(stop, kwargs).to_params(),
            "messages": format_messages_for_nvidia(messages),
            "stream": stream,
        }

    def _create_chat_result(self, data: Any) -> ChatResult:
        result = translate_response(data)
        generation = ChatGeneration(
            message=convert_response_to_message(data),
            generation_info=result.generation_info() or None,
        )
        return ChatResult(
            generations=[generation],
            llm_output={"token_usage": result.token_usage or {}, "model_name": self.model_name},
        )

    # ─────────────────────────────────────────────────────────────────
    # SYNC
    # ─────────────────────────────────────────────────────────────────

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        if self.streaming:
            merged: Optional[ChatGenerationChunk] = None
            for chunk in self._stream(messages, stop=stop, run_manager=run_manager, **kwargs):
                merged = chunk if merged is None else merged + chunk
            return _result_from_chunk(merged)

        payload = self._build_payload(messages, stop, stream=False, **kwargs)
        data = post_json(
            self.base_url, payload, api_key=self._api_key_value(), timeout=self.timeout
        )
        return self._create_chat_result(data)

    def _stream(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> Iterator[ChatGenerationChunk]:
        payload = self._build_payload(messages, stop, stream=True, **kwargs)
        for event in stream_events(
            self.base_url, payload, api_key=self._api_key_value(), timeout=self.timeout
        ):
            chunk = _to_chunk(event)
            if run_manager:
                run_manager.on_llm_new_token(event.text_delta, chunk=chunk)
            yield chunk

    def _call(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> str:
        """
        Return only the generated text.

        Raises:
            NvidiaGenerationError: If a non-streaming response carried no text
        """
        if self.streaming:
            return "".join(
                chunk.text
                for chunk in self._stream(messages, stop=stop, run_manager=run_manager, **kwargs)
            )
        result = self._generate(messages, stop=stop, run_manager=run_manager, **kwargs)
        text = result.generations[0].text if result.generations else ""
        if not text:
            raise NvidiaGenerationError("Could not generate text with the chat model")
        return text

    # ─────────────────────────────────────────────────────────────────
    # ASYNC
    # ─────────────────────────────────────────────────────────────────

    async def _agenerate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        if self.streaming:
            merged: Optional[ChatGenerationChunk] = None
            async for chunk in self._astream(messages, stop=stop, run_manager=run_manager, **kwargs):
                merged = chunk if merged is None else merged + chunk
            return _result_from_chunk(merged)

        payload = self._build_payload(messages, stop, stream=False, **kwargs)
        data = await apost_json(
            self.base_url, payload, api_key=self._api_key_value(), timeout=self.timeout
        )
        return self._create_chat_result(data)

    async def _astream(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        payload = self._build_payload(messages, stop, stream=True, **kwargs)
        async for event in astream_events(
            self.base_url, payload, api_key=self._api_key_value(), timeout=self.timeout
        ):
            chunk = _to_chunk(event)
            if run_manager:
                await run_manager.on_llm_new_token(event.text_delta, chunk=chunk)
            yield chunk

    async def _acall(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> str:
        if self.streaming:
            parts = []
            async for chunk in self._astream(messages, stop=stop, run_manager=run_manager, **kwargs):
                parts.append(chunk.text)
            return "".join(parts)
        result = await self._agenerate(messages, stop=stop, run_manager=run_manager, **kwargs)
        text = result.generations[0].text if result.generations else ""
        if not text:
            raise NvidiaGenerationError("Could not generate text with the chat model")
        return text
