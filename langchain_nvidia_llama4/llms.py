"""
NvidiaLlama4 - LangChain text LLM backed by NVIDIA's chat completion API.

Each prompt is sent as a single user turn. Batches issue one request per
prompt: sequentially on the sync path, concurrently (asyncio.gather) on the
async path. Generations always come back in prompt order.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Iterator, Optional

from langchain_core.callbacks import (
    AsyncCallbackManagerForLLMRun,
    CallbackManagerForLLMRun,
)
from langchain_core.language_models.llms import BaseLLM
from langchain_core.outputs import Generation, GenerationChunk, LLMResult

from langchain_nvidia_llama4.base import _NvidiaLlama4Base
from langchain_nvidia_llama4.converters import translate_response
from langchain_nvidia_llama4.errors import NvidiaGenerationError
from langchain_nvidia_llama4.schema import GenerationResult, NvidiaRole, StreamEvent
from langchain_nvidia_llama4.streaming import extract_completion_delta
from langchain_nvidia_llama4.transport import (
    apost_json,
    astream_events,
    post_json,
    stream_events,
)

logger = logging.getLogger(__name__)


def _to_chunk(event: StreamEvent) -> GenerationChunk:
    generation_info = {"finish_reason": event.finish_reason} if event.finish_reason else None
    return GenerationChunk(text=event.text_delta, generation_info=generation_info)


def _to_generations(chunk: Optional[GenerationChunk]) -> list[Generation]:
    if chunk is None:
        return [Generation(text="")]
    return [Generation(text=chunk.text, generation_info=chunk.generation_info)]


def _sum_token_usage(results: list[GenerationResult]) -> dict[str, int]:
    """Add up integer usage counters across per-prompt responses."""
    totals: dict[str, int] = {}
    for result in results:
        for key, value in (result.token_usage or {}).items():
            if isinstance(value, int):
                totals[key] = totals.get(key, 0) + value
    return totals


class NvidiaLlama4(_NvidiaLlama4Base, BaseLLM):
    """
    NVIDIA Llama4 text completion model.

    Accepts ``images`` (list of URLs / base64 data URIs) as a call option
    for multimodal prompts.

    ``invoke`` / ``ainvoke`` return an empty string when the provider sends
    no text; NvidiaGenerationError is raised only by ``_call`` / ``_acall``.
    """

    @classmethod
    def lc_name(cls) -> str:
        return "NvidiaLlama4"

    def _build_payload(
        self,
        prompt: str,
        stop: Optional[list[str]],
        stream: bool,
        **kwargs: Any,
    ) -> dict[str, Any]:
        params = self._request_options(stop, kwargs).to_params()
        if not params.get("images"):
            params.pop("images", None)
        return {
            **params,
            "messages": [{"role": NvidiaRole.USER.value, "content": prompt}],
            "stream": stream,
        }

    def _llm_output(self, results: list[GenerationResult]) -> dict[str, Any]:
        return {"token_usage": _sum_token_usage(results), "model_name": self.model_name}

    # ─────────────────────────────────────────────────────────────────
    # SYNC
    # ─────────────────────────────────────────────────────────────────

    def _complete(self, prompt: str, stop: Optional[list[str]], **kwargs: Any) -> GenerationResult:
        payload = self._build_payload(prompt, stop, stream=False, **kwargs)
        data = post_json(
            self.base_url, payload, api_key=self._api_key_value(), timeout=self.timeout
        )
        return translate_response(data)

    def _generate(
        self,
        prompts: list[str],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> LLMResult:
        if self.streaming:
            generations = []
            for prompt in prompts:
                merged: Optional[GenerationChunk] = None
                for chunk in self._stream(prompt, stop=stop, run_manager=run_manager, **kwargs):
                    merged = chunk if merged is None else merged + chunk
                generations.append(_to_generations(merged))
            return LLMResult(generations=generations, llm_output={"model_name": self.model_name})

        results = [self._complete(prompt, stop, **kwargs) for prompt in prompts]
        return LLMResult(
            generations=[
                [Generation(text=r.text, generation_info=r.generation_info() or None)]
                for r in results
            ],
            llm_output=self._llm_output(results),
        )

    def _stream(
        self,
        prompt: str,
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> Iterator[GenerationChunk]:
        payload = self._build_payload(prompt, stop, stream=True, **kwargs)
        for event in stream_events(
            self.base_url,
            payload,
            api_key=self._api_key_value(),
            timeout=self.timeout,
            extract_delta=extract_completion_delta,
        ):
            chunk = _to_chunk(event)
            if run_manager:
                run_manager.on_llm_new_token(event.text_delta, chunk=chunk)
            yield chunk

    def _call(
        self,
        prompt: str,
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> str:
        """
        Return only the generated text for a single prompt.

        Raises:
            NvidiaGenerationError: If a non-streaming response carried no text
        """
        if self.streaming:
            return "".join(
                chunk.text
                for chunk in self._stream(prompt, stop=stop, run_manager=run_manager, **kwargs)
            )
        text = self._complete(prompt, stop, **kwargs).text
        if not text:
            raise NvidiaGenerationError("Could not generate text with the model")
        return text

    # ─────────────────────────────────────────────────────────────────
    # ASYNC
    # ─────────────────────────────────────────────────────────────────

    async def _acomplete(
        self, prompt: str, stop: Optional[list[str]], **kwargs: Any
    ) -> GenerationResult:
        payload = self._build_payload(prompt, stop, stream=False, **kwargs)
        data = await apost_json(
            self.base_url, payload, api_key=self._api_key_value(), timeout=self.timeout
        )
        return translate_response(data)

    async def _acollect(
        self,
        prompt: str,
        stop: Optional[list[str]],
        run_manager: Optional[AsyncCallbackManagerForLLMRun],
        **kwargs: Any,
    ) -> list[Generation]:
        merged: Optional[GenerationChunk] = None
        async for chunk in self._astream(prompt, stop=stop, run_manager=run_manager, **kwargs):
            merged = chunk if merged is None else merged + chunk
        return _to_generations(merged)

    async def _agenerate(
        self,
        prompts: list[str],
        stop: Optional[list[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> LLMResult:
        if self.streaming:
            generations = await asyncio.gather(
                *(self._acollect(prompt, stop, run_manager, **kwargs) for prompt in prompts)
            )
            return LLMResult(generations=list(generations), llm_output={"model_name": self.model_name})

        logger.debug("Dispatching %d concurrent completion requests", len(prompts))
        results = await asyncio.gather(
            *(self._acomplete(prompt, stop, **kwargs) for prompt in prompts)
        )
        return LLMResult(
            generations=[
                [Generation(text=r.text, generation_info=r.generation_info() or None)]
                for r in results
            ],
            llm_output=self._llm_output(list(results)),
        )

    async def _astream(
        self,
        prompt: str,
        stop: Optional[list[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> AsyncIterator[GenerationChunk]:
        payload = self._build_payload(prompt, stop, stream=True, **kwargs)
        async for event in astream_events(
            self.base_url,
            payload,
            api_key=self._api_key_value(),
            timeout=self.timeout,
            extract_delta=extract_completion_delta,
        ):
            chunk = _to_chunk(event)
            if run_manager:
                await run_manager.on_llm_new_token(event.text_delta, chunk=chunk)
            yield chunk

    async def _acall(
        self,
        prompt: str,
        stop: Optional[list[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> str:
        if self.streaming:
            parts = []
            async for chunk in self._astream(prompt, stop=stop, run_manager=run_manager, **kwargs):
                parts.append(chunk.text)
            return "".join(parts)
        text = (await self._acomplete(prompt, stop, **kwargs)).text
        if not text:
            raise NvidiaGenerationError("Could not generate text with the model")
        return text
