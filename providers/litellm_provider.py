"""LiteLLM-backed provider. Single implementation for regeneration calls."""

import logging
from typing import Any, Optional

from config import settings

from .base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

MODEL_ALIASES = {
    "anthropic": {
        None: "anthropic/claude-sonnet-4-20250514",
        "claude-sonnet": "anthropic/claude-sonnet-4-20250514",
        "claude-haiku": "anthropic/claude-3-5-haiku-20241022",
    },
    "openai": {
        None: "gpt-4o-mini",
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
    },
    "gemini": {
        None: "gemini/gemini-2.0-flash",
        "gemini-2.0-flash": "gemini/gemini-2.0-flash",
        "gemini-2.5-flash": "gemini/gemini-2.5-flash",
        "gemini-2.5-pro": "gemini/gemini-2.5-pro",
    },
}

PROVIDER_SYNONYMS = {"claude": "anthropic", "gpt": "openai", "google": "gemini"}


def _match_alias(aliases: dict, model: str) -> Optional[str]:
    model_lower = model.lower()
    # Longest alias first (gpt-4o-mini before gpt-4o)
    for alias in sorted((a for a in aliases if a), key=len, reverse=True):
        if model_lower == alias or model_lower.startswith(alias + "-") or model_lower.startswith(alias + "."):
            return aliases[alias]
    return None


def _to_litellm_model(provider_name: Optional[str], model: Optional[str]) -> str:
    """Map provider + model to LiteLLM model string."""
    if provider_name:
        key = PROVIDER_SYNONYMS.get(provider_name.lower(), provider_name.lower())
        if key in MODEL_ALIASES:
            aliases = MODEL_ALIASES[key]
            if not model:
                return aliases[None]
            matched = _match_alias(aliases, model)
            if matched:
                return matched
            return model if key == "openai" else f"{key}/{model}"
    if model:
        for aliases in MODEL_ALIASES.values():
            matched = _match_alias(aliases, model)
            if matched:
                return matched
        return model
    return settings.default_model


def _usage_value(usage: Any, name: str) -> int:
    value = getattr(usage, name, None)
    if value is None and isinstance(usage, dict):
        value = usage.get(name)
    return int(value or 0)


class LiteLLMProvider(LLMProvider):
    """Single provider that delegates to litellm.acompletion()."""

    def __init__(self, default_model: str, metadata: Optional[dict] = None, timeout: Optional[int] = None):
        """Initialize with the LiteLLM model string to use by default.

        Args:
            default_model: LiteLLM model string (e.g. gpt-4o-mini, anthropic/claude-sonnet-4-20250514).
            metadata: Optional dict passed through to litellm (e.g. contract type).
            timeout: Request timeout in seconds (default: settings.api_timeout_seconds).
        """
        self._default_model = default_model
        self._metadata = metadata or {}
        self._timeout = timeout or settings.api_timeout_seconds

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def _request(self, system_prompt: str, user_message: str, model: Optional[str], max_tokens: int) -> dict:
        return {
            "model": model or self._default_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
            "timeout": self._timeout,
            "metadata": {**self._metadata},
        }

    def _to_response(self, response: Any, resolved_model: str) -> LLMResponse:
        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        hidden = getattr(response, "_hidden_params", None) or {}
        return LLMResponse(
            content=content,
            input_tokens=_usage_value(usage, "prompt_tokens"),
            output_tokens=_usage_value(usage, "completion_tokens"),
            model=getattr(response, "model", None) or resolved_model,
            provider=self.name,
            cost=float(hidden.get("response_cost", 0) or 0),
        )

    async def acomplete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        import litellm

        kwargs = self._request(system_prompt, user_message, model, max_tokens)
        response = await litellm.acompletion(**kwargs)
        result = self._to_response(response, kwargs["model"])
        logger.debug(
            "Regeneration via %s: %d in / %d out tokens, $%.4f",
            result.model, result.input_tokens, result.output_tokens, result.cost,
        )
        return result
