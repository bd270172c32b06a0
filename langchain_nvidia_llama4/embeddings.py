"""
NvidiaEmbeddings - LangChain embeddings backed by NVIDIA's embeddings API.

Unlike the chat adapters, every embeddings call is retried with
exponential backoff (see retry.py) before giving up.
"""

from typing import Any, Optional

from langchain_core.embeddings import Embeddings
from pydantic import Field

from langchain_nvidia_llama4.base import _NvidiaCredentials
from langchain_nvidia_llama4.config import (
    DEFAULT_EMBEDDINGS_MODEL,
    DEFAULT_EMBEDDINGS_URL,
    DEFAULT_ENCODING_FORMAT,
    DEFAULT_INPUT_TYPE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TRUNCATE,
)
from langchain_nvidia_llama4.errors import NvidiaAPIError
from langchain_nvidia_llama4.retry import acall_with_retry, call_with_retry
from langchain_nvidia_llama4.transport import EMBEDDINGS_ERROR_PREFIX, apost_json, post_json

RETRY_LABEL = "generating embeddings"


def parse_embeddings_response(data: Any, expected: Optional[int] = None) -> list[list[float]]:
    """
    Extract vectors from ``{"data": [{"embedding": [...]}, ...]}``.

    Items are ordered by their ``index`` field when the provider sends one,
    so vectors line up with the input texts.

    Raises:
        NvidiaAPIError: If the body has no ``data`` list of embeddings, or
            holds a different number of vectors than ``expected``
    """
    items = data.get("data") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise NvidiaAPIError(f"{EMBEDDINGS_ERROR_PREFIX}: response has no 'data' list")
    if expected is not None and len(items) != expected:
        raise NvidiaAPIError(
            f"{EMBEDDINGS_ERROR_PREFIX}: expected {expected} embeddings, got {len(items)}"
        )

    ordered = sorted(
        items,
        key=lambda item: item.get("index", 0) if isinstance(item, dict) else 0,
    )
    vectors = []
    for item in ordered:
        embedding = item.get("embedding") if isinstance(item, dict) else None
        if not isinstance(embedding, list):
            raise NvidiaAPIError(f"{EMBEDDINGS_ERROR_PREFIX}: item without 'embedding'")
        vectors.append([float(x) for x in embedding])
    return vectors


class NvidiaEmbeddings(_NvidiaCredentials, Embeddings):
    """
    NVIDIA embeddings model.

    Usage:
        embeddings = NvidiaEmbeddings(api_key="nvapi-...", input_type="passage")
        vectors = embeddings.embed_documents(["first text", "second text"])
    """

    base_url: str = DEFAULT_EMBEDDINGS_URL
    model_name: str = Field(default=DEFAULT_EMBEDDINGS_MODEL, alias="model")
    input_type: str = DEFAULT_INPUT_TYPE
    """``query`` or ``passage``."""
    encoding_format: str = DEFAULT_ENCODING_FORMAT
    truncate: str = DEFAULT_TRUNCATE
    """``NONE``, ``START`` or ``END``."""
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    """Total attempts per request, including the first."""
    temperature: Optional[float] = None
    model_kwargs: dict[str, Any] = Field(default_factory=dict)
    """Extra fields merged verbatim into the request body."""

    def _build_payload(self, texts: list[str]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model_name,
            "input": list(texts),
            "input_type": self.input_type,
            "encoding_format": self.encoding_format,
            "truncate": self.truncate,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        payload.update(self.model_kwargs)
        return payload

    def _embed(self, texts: list[str]) -> list[list[float]]:
        payload = self._build_payload(texts)

        def request() -> list[list[float]]:
            data = post_json(
                self.base_url,
                payload,
                api_key=self._api_key_value(),
                timeout=self.timeout,
                error_prefix=EMBEDDINGS_ERROR_PREFIX,
            )
            return parse_embeddings_response(data, expected=len(texts))

        return call_with_retry(request, self.max_retries, label=RETRY_LABEL)

    async def _aembed(self, texts: list[str]) -> list[list[float]]:
        payload = self._build_payload(texts)

        async def request() -> list[list[float]]:
            data = await apost_json(
                self.base_url,
                payload,
                api_key=self._api_key_value(),
                timeout=self.timeout,
                error_prefix=EMBEDDINGS_ERROR_PREFIX,
            )
            return parse_embeddings_response(data, expected=len(texts))

        return await acall_with_retry(request, self.max_retries, label=RETRY_LABEL)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts in one request; one vector per text, same order."""
        if not texts:
            return []
        return self._embed(texts)

    def embed_query(self, text: str) -> list[float]:
        return self._embed([text])[0]

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._aembed(texts)

    async def aembed_query(self, text: str) -> list[float]:
        return (await self._aembed([text]))[0]
