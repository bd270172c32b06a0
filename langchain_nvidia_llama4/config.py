"""
Configuration constants and environment lookups for langchain-nvidia-llama4.
"""

import os
from typing import Optional


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS - Overridable per adapter instance
# ─────────────────────────────────────────────────────────────────────

DEFAULT_CHAT_URL: str = "https://integrate.api.nvidia.com/v1/chat/completions"
DEFAULT_EMBEDDINGS_URL: str = "https://integrate.api.nvidia.com/v1/embeddings"

DEFAULT_CHAT_MODEL: str = "meta/llama-4-maverick-17b-128e-instruct"
DEFAULT_EMBEDDINGS_MODEL: str = "nvidia/nv-embedcode-7b-v1"

DEFAULT_INPUT_TYPE: str = "query"
DEFAULT_ENCODING_FORMAT: str = "float"
DEFAULT_TRUNCATE: str = "NONE"

DEFAULT_MAX_RETRIES: int = 3
DEFAULT_TIMEOUT_SECONDS: float = 60.0


# ─────────────────────────────────────────────────────────────────────
# INTERNAL CONSTANTS - Wire protocol
# ─────────────────────────────────────────────────────────────────────

SSE_DATA_PREFIX: str = "data: "
SSE_DONE_SENTINEL: str = "[DONE]"

API_KEY_ENV_VAR: str = "NVIDIA_API_KEY"
TIMEOUT_ENV_VAR: str = "NVIDIA_TIMEOUT_SECONDS"


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_api_key() -> Optional[str]:
    """Get the NVIDIA API key from environment, or None when unset/blank."""
    value = os.environ.get(API_KEY_ENV_VAR, "").strip()
    return value or None


def get_timeout_seconds() -> float:
    """
    Get HTTP request timeout in seconds.

    Set NVIDIA_TIMEOUT_SECONDS in the environment (default: 60).
    """
    try:
        return float(os.environ.get(TIMEOUT_ENV_VAR, DEFAULT_TIMEOUT_SECONDS))
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
