"""
LangChain integration for NVIDIA Llama4 chat, completion and embeddings APIs.

Adapters translate LangChain messages/options to the NVIDIA wire format,
call the HTTP API (JSON or SSE streaming) and translate responses back.
"""

from .chat_models import ChatNvidiaLlama4
from .converters import (
    convert_options_to_nvidia_params,
    convert_response_to_message,
    format_messages_for_nvidia,
)
from .embeddings import NvidiaEmbeddings
from .errors import (
    NvidiaAPIError,
    NvidiaError,
    NvidiaGenerationError,
    NvidiaStreamError,
    RetryExhaustedError,
)
from .llms import NvidiaLlama4
from .schema import GenerationResult, NvidiaOptions, NvidiaRole, StreamEvent

__all__ = [
    "ChatNvidiaLlama4",
    "NvidiaLlama4",
    "NvidiaEmbeddings",
    "NvidiaOptions",
    "NvidiaRole",
    "GenerationResult",
    "StreamEvent",
    "convert_options_to_nvidia_params",
    "format_messages_for_nvidia",
    "convert_response_to_message",
    "NvidiaError",
    "NvidiaAPIError",
    "NvidiaStreamError",
    "NvidiaGenerationError",
    "RetryExhaustedError",
]
