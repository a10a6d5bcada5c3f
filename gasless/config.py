import os

from pathlib import Path
from typing import Any

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

    def model_post_init(self, __context: Any) -> None:
        """Pick up the API key exported by older frontend builds."""

        super().model_post_init(__context)

        if not self.sponsor_api_key:
            fallback = os.getenv("REACT_APP_PIMLICO_API_KEY")
            if fallback:
                object.__setattr__(self, "sponsor_api_key", fallback)

    log_level: str = Field(default="INFO", description="Logging level")

    # Sponsor / bundler service
    sponsor_base_url: str = Field(
        default="https://api.pimlico.io/v2",
        description="Base URL of the bundler/paymaster service",
    )
    sponsor_api_key: str = Field(
        default="",
        description="API key appended to every bundler URL",
        validation_alias=AliasChoices("sponsor_api_key", "pimlico_api_key", "PIMLICO_API_KEY"),
    )
    sponsorship_policy_id: str = Field(
        default="sp_dry_dreaming_celestial",
        description="Sponsorship policy attached to every sponsored operation",
    )
    fee_tier: str = Field(
        default="fast",
        description="Gas price tier requested from the bundler (slow, standard, fast)",
    )

    # Networks
    default_network_id: int = Field(
        default=80002,
        description="Network preselected before a wallet reports its own",
    )

    # Timeouts
    request_timeout_seconds: int = Field(default=20, ge=1, description="HTTP request timeout")
    receipt_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Delay between user operation receipt polls",
    )
    receipt_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Give up waiting for a user operation receipt after this long",
    )

    # Smart account
    account_index: int = Field(
        default=0,
        ge=0,
        description="Salt index used when deriving the counterfactual account",
    )

    @property
    def has_sponsor_key(self) -> bool:
        return bool(self.sponsor_api_key)


# Global settings instance
settings = Settings()
