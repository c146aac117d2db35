"""Configuration settings for the Output Governance pipeline."""

# Load .env into os.environ so LiteLLM picks up provider keys (e.g. OPENAI_API_KEY)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """Global settings for Output Governance.

    Settings can be overridden via environment variables with OUTPUT_GOVERNANCE_ prefix.
    Example: OUTPUT_GOVERNANCE_MAX_RETRIES=3
    """

    # Retry loop
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Maximum correction rounds before returning a degraded result"
    )
    correction_preview_chars: int = Field(
        default=2000,
        ge=100,
        description="How much of the rejected response is quoted back in a correction prompt"
    )

    # Validation
    unwanted_json_ratio: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Share of the text a JSON island must cover to count as unwanted raw JSON"
    )

    # Voice script
    voice_word_budget: int = Field(
        default=45,
        ge=1,
        description="Soft word budget for the generic voice summary"
    )
    voice_word_hard_cap: int = Field(
        default=55,
        ge=10,
        description="Hard cap on voice script words, suffix included"
    )

    # Audit
    audit_log_path: str = Field(
        default="",
        description="JSONL file for audit records; empty logs them instead"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level used by the CLI"
    )

    # Regeneration via LiteLLM (CLI / provider adapter)
    default_model: str = Field(
        default="gpt-4o-mini",
        description="LiteLLM model string used for regenerations"
    )
    max_tokens_per_regeneration: int = Field(
        default=4096,
        description="Maximum tokens per regeneration call"
    )
    api_timeout_seconds: int = Field(
        default=120,
        description="API call timeout in seconds"
    )

    model_config = {
        "env_prefix": "OUTPUT_GOVERNANCE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore provider keys (e.g. OPENAI_API_KEY) not in schema
    }

    def get_audit_log_path(self) -> Optional[Path]:
        """Get audit log path as Path object, or None when disabled."""
        return Path(self.audit_log_path) if self.audit_log_path else None


# Create singleton instance
settings = Settings()
