"""Pydantic BaseSettings — protocol constants and transport knobs, ints never float."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────
    APP_ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: str = "INFO"

    # ── Chain / Protocol ────────────────────────────────────────
    CHAIN_ID: int = 4162
    CHAIN_VERSION: str = "SXR"
    EIP712_FILL_HASHER: str = "0x845a2Da2D70fEDe8474b1C8518200798c60aC364"
    BASE_TOKEN_ADDRESS: str = "0x6629Ce1Cf35Cc1329ebB4F63202F3f197b3F050B"
    EXECUTOR_ADDRESS: str = "0x52adf738AAD93c31f798a30b2C74D658e1E9a562"
    BASE_TOKEN_DECIMALS: int = Field(default=6, ge=0)
    # Deprecated on-chain expiry, still part of the signed order.
    ORDER_EXPIRY_SENTINEL: int = 2209006800
    API_EXPIRY_SECONDS: int = Field(default=3600, gt=0)
    # Hundredths of a percent: 25 -> 0.25%.
    ODDS_LADDER_STEP_SIZE: int = Field(default=25, gt=0)

    # ── Signing ─────────────────────────────────────────────────
    SIGNER_MAX_WORKERS: int = Field(default=2, ge=1)
    SIGNER_TIMEOUT_SECONDS: Optional[float] = None

    # ── Network / API ───────────────────────────────────────────
    SX_API_BASE_URL: str = "https://api.sx.bet"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HTTP_MAX_RETRIES: int = Field(default=3, ge=0)
    HTTP_RATE_LIMIT_RPS: float = Field(default=5.0, gt=0)

    # ── Credentials (never commit real values) ──────────────────
    PRIVATE_KEY: str = ""
    SX_API_KEY: str = ""
    TAKER_ADDRESS: str = ""


settings = Settings()
