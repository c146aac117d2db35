"""Factory for LLM providers and regeneration callbacks."""

from typing import Awaitable, Callable, Optional

from config import settings

from .base import LLMProvider
from .litellm_provider import LiteLLMProvider, _to_litellm_model


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> LLMProvider:
    """Get an LLM provider instance.

    Args:
        provider_name: Optional provider name (anthropic, openai, gemini)
        model: Model name or alias; resolved to a LiteLLM model string
        metadata: Tags sent with every call (e.g. contract type, mode)

    Returns:
        LLMProvider instance

    Examples:
        get_provider(model="gpt-4o")          # gpt-4o
        get_provider("anthropic")             # anthropic/claude-sonnet-4-...
        get_provider()                        # settings.default_model
    """
    if provider_name is None and model is None:
        return LiteLLMProvider(default_model=settings.default_model, metadata=metadata)
    return LiteLLMProvider(default_model=_to_litellm_model(provider_name, model), metadata=metadata)


def make_regenerator(
    provider: LLMProvider,
    system_prompt: str,
    max_tokens: Optional[int] = None,
) -> Callable[[str], Awaitable[str]]:
    """Build a regeneration callback for the governance pipeline.

    The callback sends each correction prompt as the user message, under the
    given system prompt (usually the enriched contract prompt), and returns the
    new completion text.
    """
    limit = max_tokens or settings.max_tokens_per_regeneration

    async def regenerate(correction_prompt: str) -> str:
        response = await provider.acomplete(system_prompt, correction_prompt, max_tokens=limit)
        return response.content

    return regenerate
