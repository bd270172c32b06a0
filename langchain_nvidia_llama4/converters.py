"""
Translation between LangChain objects and the NVIDIA wire format.

Three pure functions live here, used by every adapter:
- Option mapping: NvidiaOptions / camelCase kwargs -> snake_case request fields
- Message formatting: LangChain BaseMessage list -> NVIDIA ``messages`` array
- Response translation: chat completion JSON -> GenerationResult / AIMessage

None of them raise on odd input. Missing fields degrade to empty values.
"""

from typing import Any, Mapping, Optional, Sequence, Union

from langchain_core.messages import AIMessage, BaseMessage, ChatMessage
from langchain_core.messages.ai import UsageMetadata

from langchain_nvidia_llama4.schema import GenerationResult, NvidiaOptions, NvidiaRole


# ─────────────────────────────────────────────────────────────────────
# OPTIONS
# ─────────────────────────────────────────────────────────────────────

def convert_options_to_nvidia_params(
    options: Union[NvidiaOptions, Mapping[str, Any], None]
) -> dict[str, Any]:
    """Map user-facing options to NVIDIA request fields, dropping unset ones."""
    return NvidiaOptions.from_mapping(options).to_params()


# ─────────────────────────────────────────────────────────────────────
# MESSAGES
# ─────────────────────────────────────────────────────────────────────

# Keyed by BaseMessage.type, the discriminator every LangChain message declares.
_ROLE_BY_MESSAGE_TYPE: dict[str, NvidiaRole] = {
    "system": NvidiaRole.SYSTEM,
    "SystemMessageChunk": NvidiaRole.SYSTEM,
    "human": NvidiaRole.USER,
    "HumanMessageChunk": NvidiaRole.USER,
    "ai": NvidiaRole.ASSISTANT,
    "AIMessageChunk": NvidiaRole.ASSISTANT,
}

_ROLE_BY_CHAT_ROLE: dict[str, NvidiaRole] = {
    "system": NvidiaRole.SYSTEM,
    "assistant": NvidiaRole.ASSISTANT,
}

_HUMAN_TYPES = frozenset({"human", "HumanMessageChunk"})
_SYSTEM_TYPES = frozenset({"system", "SystemMessageChunk"})


def role_for_message(message: BaseMessage) -> NvidiaRole:
    """Resolve the NVIDIA role for a message. Unknown roles become ``user``."""
    if isinstance(message, ChatMessage):
        return _ROLE_BY_CHAT_ROLE.get(message.role, NvidiaRole.USER)
    return _ROLE_BY_MESSAGE_TYPE.get(message.type, NvidiaRole.USER)


def _stringify_content(content: Any) -> str:
    """Best-effort flattening of message content to plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                texts.append(str(part.get("text", "")))
        return "".join(texts)
    return str(content)


def _format_user_content(content: Any) -> Union[str, list[Any]]:
    """
    Convert HumanMessage content to NVIDIA's multimodal shape.

    Text parts become bare strings, ``image_url`` parts become
    ``{"type": "image", "image_url": {"url": ...}}``. Anything else is dropped.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return _stringify_content(content)

    formatted: list[Any] = []
    for part in content:
        if isinstance(part, str):
            formatted.append(part)
            continue
        if not isinstance(part, dict):
            continue
        part_type = part.get("type")
        if part_type == "text":
            formatted.append(str(part.get("text", "")))
        elif part_type == "image_url":
            image_url = part.get("image_url")
            url = image_url.get("url") if isinstance(image_url, dict) else image_url
            if url:
                formatted.append({"type": "image", "image_url": {"url": url}})
    return formatted


def format_message_for_nvidia(message: BaseMessage) -> dict[str, Any]:
    """Convert a single LangChain message to an NVIDIA message dict."""
    role = role_for_message(message)

    # System and ChatMessage content go out untouched, even when multimodal.
    if isinstance(message, ChatMessage) or message.type in _SYSTEM_TYPES:
        content = message.content
    elif message.type in _HUMAN_TYPES:
        content = _format_user_content(message.content)
    else:
        content = _stringify_content(message.content)

    return {"role": role.value, "content": content}


def format_messages_for_nvidia(messages: Sequence[BaseMessage]) -> list[dict[str, Any]]:
    """Convert LangChain messages to the NVIDIA ``messages`` array, order preserved."""
    return [format_message_for_nvidia(message) for message in messages]


# ─────────────────────────────────────────────────────────────────────
# RESPONSES
# ─────────────────────────────────────────────────────────────────────

def first_choice(data: Any) -> dict[str, Any]:
    """Return ``choices[0]`` as a dict, or an empty dict when absent."""
    if not isinstance(data, dict):
        return {}
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return {}


def translate_response(data: Any) -> GenerationResult:
    """
    Reduce a chat completion response to text, finish reason and usage.

    Never raises: a response without ``choices[0].message.content`` yields
    an empty ``text``.
    """
    choice = first_choice(data)

    message = choice.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if content is None:
        content = choice.get("text")

    finish_reason = choice.get("finish_reason")
    usage = data.get("usage") if isinstance(data, dict) else None

    return GenerationResult(
        text=content if isinstance(content, str) else "",
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        token_usage=usage if isinstance(usage, dict) else None,
    )


def usage_metadata_from(token_usage: Optional[dict[str, Any]]) -> Optional[UsageMetadata]:
    """Convert OpenAI-style usage counts to LangChain's UsageMetadata."""
    if not token_usage:
        return None
    input_tokens = token_usage.get("prompt_tokens")
    output_tokens = token_usage.get("completion_tokens")
    if not isinstance(input_tokens, int) or not isinstance(output_tokens, int):
        return None
    total_tokens = token_usage.get("total_tokens")
    if not isinstance(total_tokens, int):
        total_tokens = input_tokens + output_tokens
    return UsageMetadata(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
    )


def convert_response_to_message(data: Any) -> AIMessage:
    """Build an AIMessage from a chat completion response."""
    result = translate_response(data)
    info = result.generation_info()
    return AIMessage(
        content=result.text,
        additional_kwargs=dict(info),
        response_metadata=dict(info),
        usage_metadata=usage_metadata_from(result.token_usage),
    )
