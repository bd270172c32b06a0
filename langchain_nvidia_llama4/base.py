"""
Configuration shared by the NVIDIA adapters.

Adapters are pydantic models: every setting is a named field fixed at
construction. _NvidiaCredentials resolves the API key (argument first,
then NVIDIA_API_KEY). _NvidiaLlama4Base adds the chat-completion
endpoint and the default sampling options sent with every request.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from langchain_nvidia_llama4.config import (
    API_KEY_ENV_VAR,
    DEFAULT_CHAT_MODEL,
    DEFAULT_CHAT_URL,
    get_api_key,
    get_timeout_seconds,
)
from langchain_nvidia_llama4.schema import NvidiaOptions


class _NvidiaCredentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    api_key: Optional[SecretStr] = None
    """NVIDIA API key. Falls back to the NVIDIA_API_KEY environment variable."""

    timeout: float = Field(default_factory=get_timeout_seconds)
    """HTTP timeout in seconds."""

    @model_validator(mode="before")
    @classmethod
    def _resolve_api_key(cls, values: Any) -> Any:
        if isinstance(values, dict) and not values.get("api_key"):
            key = get_api_key()
            if not key:
                raise ValueError(
                    "NVIDIA API key required. "
                    f"Provide api_key parameter or set {API_KEY_ENV_VAR} environment variable."
                )
            values = {**values, "api_key": key}
        return values

    @property
    def lc_secrets(self) -> dict[str, str]:
        return {"api_key": API_KEY_ENV_VAR}

    def _api_key_value(self) -> str:
        if self.api_key is None:
            raise ValueError(
                f"NVIDIA API key required. Set {API_KEY_ENV_VAR} or pass api_key."
            )
        return self.api_key.get_secret_value()


class _NvidiaLlama4Base(_NvidiaCredentials):
    base_url: str = DEFAULT_CHAT_URL
    model_name: str = Field(default=DEFAULT_CHAT_MODEL, alias="model")
    streaming: bool = False
    """Collect responses through the SSE endpoint instead of a single JSON reply."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    stop: Optional[list[str]] = None

    @property
    def _llm_type(self) -> str:
        return "nvidia-llama4"

    def _default_options(self) -> NvidiaOptions:
        return NvidiaOptions(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            top_p=self.top_p,
            top_k=self.top_k,
            presence_penalty=self.presence_penalty,
            frequency_penalty=self.frequency_penalty,
            stop=self.stop,
        )

    def _request_options(
        self, stop: Optional[list[str]], kwargs: Mapping[str, Any]
    ) -> NvidiaOptions:
        """Defaults, overlaid with call options, pinned to this adapter's model."""
        options = self._default_options().merged(NvidiaOptions.from_mapping(kwargs))
        if stop is not None:
            options = options.merged(NvidiaOptions(stop=stop))
        return options.merged(NvidiaOptions(model=self.model_name))

    @property
    def _identifying_params(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "streaming": self.streaming,
            **self._default_options().merged(NvidiaOptions(model=self.model_name)).to_params(),
        }
