"""Configuration via pydantic-settings.

Reads from a .env file or ESCROW_-prefixed environment variables. All
settings are validated on first access: an out-of-range fee rate fails fast
with a clear error instead of producing wrong payouts later.

The pure domain functions never read settings. Only the service layer falls
back to them when a caller does not inject a fee config or evidence policy.

Usage:
    from trust_escrow.config import get_settings
    settings = get_settings()
    fee_config = settings.fee_config()
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trust_escrow.domain.evidence import (
    DEFAULT_ALLOWED_MIME_TYPES,
    DEFAULT_MAX_ITEM_BYTES,
    DEFAULT_MAX_ITEMS,
    DEFAULT_MAX_TOTAL_BYTES,
    EvidencePolicy,
)
from trust_escrow.domain.payouts import BPS_DIVISOR, FeeConfig


class Settings(BaseSettings):
    """Central configuration for the escrow core."""

    model_config = SettingsConfigDict(
        env_prefix="ESCROW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # --- Fees ---
    fee_base_rate_bps: int = Field(default=100, ge=0, le=BPS_DIVISOR)
    fee_min_cents: int = Field(default=500, ge=0)
    fee_max_cents: int | None = Field(default=100_000, ge=0)
    fee_affiliate_share_bps: int = Field(default=2_000, ge=0, le=BPS_DIVISOR)

    # --- Evidence ---
    evidence_max_items: int = Field(default=DEFAULT_MAX_ITEMS, ge=1)
    evidence_max_item_bytes: int = Field(default=DEFAULT_MAX_ITEM_BYTES, ge=1)
    evidence_max_total_bytes: int = Field(default=DEFAULT_MAX_TOTAL_BYTES, ge=1)
    evidence_allowed_mime_types: str = ",".join(sorted(DEFAULT_ALLOWED_MIME_TYPES))

    @model_validator(mode="after")
    def validate_fee_bounds(self) -> Settings:
        if self.fee_max_cents is not None and self.fee_max_cents < self.fee_min_cents:
            raise ValueError("fee_max_cents must not be smaller than fee_min_cents")
        return self

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def allowed_mime_type_set(self) -> frozenset[str]:
        """Parse the comma-separated MIME list."""
        return frozenset(
            m.strip().lower() for m in self.evidence_allowed_mime_types.split(",") if m.strip()
        )

    def fee_config(self) -> FeeConfig:
        return FeeConfig(
            base_rate_bps=self.fee_base_rate_bps,
            min_fee_cents=self.fee_min_cents,
            max_fee_cents=self.fee_max_cents,
            affiliate_share_bps=self.fee_affiliate_share_bps,
        )

    def evidence_policy(self) -> EvidencePolicy:
        return EvidencePolicy(
            max_items=self.evidence_max_items,
            max_item_bytes=self.evidence_max_item_bytes,
            max_total_bytes=self.evidence_max_total_bytes,
            allowed_mime_types=self.allowed_mime_type_set,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the settings."""
    return Settings()
