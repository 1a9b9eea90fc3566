from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Jupiter aggregation service
    jupiter_quote_api_url: str = Field(
        default="https://quote-api.jup.ag/v6",
        description="Base URL for the Jupiter quote and swap endpoints",
    )
    jupiter_token_list_url: str = Field(
        default="https://token.jup.ag/all",
        description="Jupiter token list used for token lookups",
    )
    jupiter_api_key: str = Field(
        default="",
        description="Optional Jupiter API key sent as x-api-key",
        validation_alias=AliasChoices(
            "jupiter_api_key",
            "JUPITER_API_KEY",
            "NEXT_PUBLIC_JUPITER_API_KEY",
        ),
    )
    token_cache_ttl_seconds: int = Field(
        default=3600,
        description="TTL for the in-memory token list cache (default: 1 hour)",
    )

    # Requests
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for any quote, swap-build or submission call",
    )

    # Swap defaults
    default_slippage_pct: float = Field(
        default=0.5,
        ge=0.1,
        le=50,
        description="Slippage tolerance used when a request does not specify one",
    )
    wrap_and_unwrap_sol: bool = Field(
        default=True,
        description="Ask the aggregator to wrap/unwrap native SOL automatically",
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.jupiter_api_key)


# Global settings instance
settings = Settings()
