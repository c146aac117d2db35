"""LLM provider abstraction used to regenerate rejected responses."""

from .base import LLMProvider, LLMResponse
from .factory import get_provider, make_regenerator
from .litellm_provider import LiteLLMProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LiteLLMProvider",
    "get_provider",
    "make_regenerator",
]
