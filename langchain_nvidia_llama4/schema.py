"""
Pydantic models shared by the NVIDIA adapters: roles, request options,
translated results and stream events.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NvidiaRole(str, Enum):
    """Roles accepted by the NVIDIA chat completion endpoint."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class NvidiaOptions(BaseModel):
    """
    Sampling and request options shared by the chat and completion adapters.

    Accepts both camelCase (``maxTokens``) and snake_case (``max_tokens``)
    names. Field names are the wire names, so ``to_params()`` is the
    camelCase -> snake_case mapping. Values are stored untouched (no
    coercion, no validation); ``None`` means "not set" and never reaches
    the wire.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    model: Optional[Any] = None
    max_tokens: Optional[Any] = None
    temperature: Optional[Any] = None
    top_p: Optional[Any] = None
    top_k: Optional[Any] = None
    presence_penalty: Optional[Any] = None
    frequency_penalty: Optional[Any] = None
    stop: Optional[Any] = None
    images: Optional[Any] = None

    @classmethod
    def from_mapping(cls, values: Union["NvidiaOptions", Mapping[str, Any], None]) -> "NvidiaOptions":
        """Build options from keyword arguments, ignoring unrelated keys."""
        if values is None:
            return cls()
        if isinstance(values, cls):
            return values
        return cls.model_validate(dict(values))

    def merged(self, other: "NvidiaOptions") -> "NvidiaOptions":
        """Overlay ``other`` on top of these options; only set fields override."""
        return self.model_copy(update=other.to_params())

    def to_params(self) -> dict[str, Any]:
        """Return the wire-level parameters, omitting unset fields."""
        params = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            if value is not None:
                params[name] = value
        return params


class GenerationResult(BaseModel):
    """Provider response reduced to what the adapters hand back to LangChain."""
    text: str = ""
    finish_reason: Optional[str] = None
    token_usage: Optional[dict[str, Any]] = None

    def generation_info(self) -> dict[str, Any]:
        """Non-empty metadata only, keyed the way LangChain generations expect."""
        info: dict[str, Any] = {}
        if self.finish_reason is not None:
            info["finish_reason"] = self.finish_reason
        if self.token_usage is not None:
            info["token_usage"] = self.token_usage
        return info


class StreamEvent(BaseModel):
    """One incremental text fragment decoded from an SSE ``data:`` line."""
    text_delta: str = Field(min_length=1)
    finish_reason: Optional[str] = None
