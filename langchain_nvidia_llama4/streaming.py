"""
SSE stream parsing for chat completion responses.

Bytes arrive in arbitrary chunks. SSELineBuffer reassembles them into
complete lines, and each ``data: {...}`` line is decoded into at most one
StreamEvent. The stream ends at ``data: [DONE]`` or when the transport
closes. Lines that are not valid JSON are skipped, never raised.
"""

import codecs
import json
import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Iterable,
    Iterator,
    Optional,
    Union,
)

from langchain_nvidia_llama4.config import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from langchain_nvidia_llama4.converters import first_choice
from langchain_nvidia_llama4.schema import StreamEvent

logger = logging.getLogger(__name__)

DeltaExtractor = Callable[[Any], str]


# ─────────────────────────────────────────────────────────────────────
# DELTA EXTRACTORS
# ─────────────────────────────────────────────────────────────────────

def extract_chat_delta(payload: Any) -> str:
    """Text fragment at ``choices[0].delta.content``."""
    delta = first_choice(payload).get("delta")
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


def extract_completion_delta(payload: Any) -> str:
    """Text fragment at ``choices[0].text``, falling back to the chat delta."""
    text = first_choice(payload).get("text")
    if isinstance(text, str) and text:
        return text
    return extract_chat_delta(payload)


# ─────────────────────────────────────────────────────────────────────
# LINE REASSEMBLY
# ─────────────────────────────────────────────────────────────────────

class SSELineBuffer:
    """
    Accumulates raw chunks and hands back complete, trimmed lines.

    Decoding is incremental, so a UTF-8 character split across two chunks
    is reassembled rather than mangled. A trailing partial line stays
    buffered until its newline arrives.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: Union[bytes, str]) -> list[str]:
        """Append a chunk and return every line it completed."""
        if isinstance(chunk, str):
            self._buffer += chunk
        else:
            self._buffer += self._decoder.decode(chunk)

        lines = []
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            lines.append(line.strip())
        return lines

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer


def parse_sse_line(
    line: str,
    extract_delta: DeltaExtractor = extract_chat_delta,
) -> tuple[bool, Optional[StreamEvent]]:
    """
    Classify one trimmed SSE line.

    Returns:
        (done, event): ``done`` is True for the ``[DONE]`` sentinel.
        ``event`` is None for ignored lines, unparseable JSON and empty deltas.
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return False, None

    data = line[len(SSE_DATA_PREFIX):].strip()
    if data == SSE_DONE_SENTINEL:
        return True, None

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed SSE line: %.200s", data)
        return False, None

    text = extract_delta(payload)
    if not text:
        return False, None

    finish_reason = first_choice(payload).get("finish_reason")
    return False, StreamEvent(
        text_delta=text,
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
    )


# ─────────────────────────────────────────────────────────────────────
# STREAM ITERATION
# ─────────────────────────────────────────────────────────────────────

def iter_stream_events(
    chunks: Iterable[Union[bytes, str]],
    extract_delta: DeltaExtractor = extract_chat_delta,
) -> Iterator[StreamEvent]:
    """Yield StreamEvents from a synchronous byte stream, in arrival order."""
    buffer = SSELineBuffer()
    for chunk in chunks:
        for line in buffer.feed(chunk):
            done, event = parse_sse_line(line, extract_delta)
            if done:
                logger.debug("SSE stream terminated by [DONE]")
                return
            if event is not None:
                yield event
    logger.debug("SSE stream closed without [DONE]")


async def aiter_stream_events(
    chunks: AsyncIterable[Union[bytes, str]],
    extract_delta: DeltaExtractor = extract_chat_delta,
) -> AsyncIterator[StreamEvent]:
    """Yield StreamEvents from an asynchronous byte stream, in arrival order."""
    buffer = SSELineBuffer()
    async for chunk in chunks:
        for line in buffer.feed(chunk):
            done, event = parse_sse_line(line, extract_delta)
            if done:
                logger.debug("SSE stream terminated by [DONE]")
                return
            if event is not None:
                yield event
    logger.debug("SSE stream closed without [DONE]")
