"""
HTTP transport for the NVIDIA endpoints.

Thin httpx wrappers shared by every adapter: one JSON POST, one SSE stream,
each in a sync and an async flavour. Transport and HTTP failures are
re-raised as NvidiaAPIError / NvidiaStreamError with a prefix naming the
failing operation. Exceptions from the consumer of a stream pass through.
"""

import logging
from typing import Any, AsyncIterator, Iterator

import httpx

from langchain_nvidia_llama4.errors import NvidiaAPIError, NvidiaStreamError
from langchain_nvidia_llama4.schema import StreamEvent
from langchain_nvidia_llama4.streaming import (
    DeltaExtractor,
    aiter_stream_events,
    extract_chat_delta,
    iter_stream_events,
)

logger = logging.getLogger(__name__)

CHAT_ERROR_PREFIX = "Error calling NVIDIA Llama4 API"
STREAM_ERROR_PREFIX = "Error processing NVIDIA Llama4 stream"
EMBEDDINGS_ERROR_PREFIX = "Error calling NVIDIA embeddings API"

JSON_CONTENT_TYPE = "application/json"
EVENT_STREAM_CONTENT_TYPE = "text/event-stream"


def build_headers(api_key: str, accept: str = JSON_CONTENT_TYPE) -> dict[str, str]:
    """Request headers for an authenticated JSON POST."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": JSON_CONTENT_TYPE,
        "Accept": accept,
    }


def describe_http_error(response: httpx.Response) -> str:
    """Extract a readable error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        # OpenAI-style {"error": {"message": "..."}} or NVIDIA's {"detail": "..."}
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"HTTP {response.status_code}: {error['message']}"
        if isinstance(error, str) and error:
            return f"HTTP {response.status_code}: {error}"
        detail = data.get("detail")
        if isinstance(detail, str) and detail:
            return f"HTTP {response.status_code}: {detail}"

    return f"HTTP {response.status_code}: {response.text[:200]}"


def _decode_json(response: httpx.Response, error_prefix: str) -> Any:
    if response.status_code >= 400:
        raise NvidiaAPIError(
            f"{error_prefix}: {describe_http_error(response)}",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError as e:
        raise NvidiaAPIError(
            f"{error_prefix}: invalid JSON response: {e}",
            status_code=response.status_code,
        ) from e


# ─────────────────────────────────────────────────────────────────────
# JSON REQUESTS
# ─────────────────────────────────────────────────────────────────────

def post_json(
    url: str,
    payload: dict[str, Any],
    *,
    api_key: str,
    timeout: float,
    error_prefix: str = CHAT_ERROR_PREFIX,
) -> Any:
    """POST ``payload`` and return the decoded JSON body."""
    logger.debug("POST %s (model=%s)", url, payload.get("model"))
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(url, json=payload, headers=build_headers(api_key))
    except httpx.HTTPError as e:
        raise NvidiaAPIError(f"{error_prefix}: {e}") from e
    return _decode_json(response, error_prefix)


async def apost_json(
    url: str,
    payload: dict[str, Any],
    *,
    api_key: str,
    timeout: float,
    error_prefix: str = CHAT_ERROR_PREFIX,
) -> Any:
    """Async counterpart of post_json."""
    logger.debug("POST %s (model=%s)", url, payload.get("model"))
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, json=payload, headers=build_headers(api_key))
    except httpx.HTTPError as e:
        raise NvidiaAPIError(f"{error_prefix}: {e}") from e
    return _decode_json(response, error_prefix)


# ─────────────────────────────────────────────────────────────────────
# SSE STREAMS
# ─────────────────────────────────────────────────────────────────────

def _stream_status_error(response: httpx.Response) -> NvidiaStreamError:
    return NvidiaStreamError(
        f"{STREAM_ERROR_PREFIX}: {describe_http_error(response)}",
        status_code=response.status_code,
    )


def stream_events(
    url: str,
    payload: dict[str, Any],
    *,
    api_key: str,
    timeout: float,
    extract_delta: DeltaExtractor = extract_chat_delta,
) -> Iterator[StreamEvent]:
    """
    POST ``payload`` with SSE accept headers and yield decoded StreamEvents.

    The connection stays open only while the caller keeps iterating.

    Raises:
        NvidiaStreamError: On connection failure, HTTP error status, or
            a transport error mid-stream
    """
    logger.debug("POST %s (model=%s, stream)", url, payload.get("model"))
    headers = build_headers(api_key, accept=EVENT_STREAM_CONTENT_TYPE)
    try:
        with httpx.Client(timeout=timeout) as client:
            with client.stream("POST", url, json=payload, headers=headers) as response:
                if response.status_code >= 400:
                    response.read()
                    raise _stream_status_error(response)
                yield from iter_stream_events(response.iter_bytes(), extract_delta)
    except httpx.HTTPError as e:
        raise NvidiaStreamError(f"{STREAM_ERROR_PREFIX}: {e}") from e


async def astream_events(
    url: str,
    payload: dict[str, Any],
    *,
    api_key: str,
    timeout: float,
    extract_delta: DeltaExtractor = extract_chat_delta,
) -> AsyncIterator[StreamEvent]:
    """Async counterpart of stream_events."""
    logger.debug("POST %s (model=%s, stream)", url, payload.get("model"))
    headers = build_headers(api_key, accept=EVENT_STREAM_CONTENT_TYPE)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            async with client.stream("POST", url, json=payload, headers=headers) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise _stream_status_error(response)
                async for event in aiter_stream_events(response.aiter_bytes(), extract_delta):
                    yield event
    except httpx.HTTPError as e:
        raise NvidiaStreamError(f"{STREAM_ERROR_PREFIX}: {e}") from e
