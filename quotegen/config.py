"""
Application settings.

Values come from environment variables. A `.env` file at the project root is
loaded first if present (python-dotenv), so local development needs no exports.

Environment variables:
- SUPABASE_URL / SUPABASE_KEY: Supabase project URL and server-side API key
  (only required once a Supabase client is actually built)
- LOG_LEVEL: logging level name (default INFO)
- CORS_ORIGINS: comma-separated allowed origins (default "*")
- EMAIL_WEBHOOK_URL: relay that delivers customer emails (unset = log only)
- FROM_EMAIL / COMPANY_NAME: sender identity used in notification emails
- QUOTE_VALIDITY_DAYS: default validity window for new quotes (default 30)
- DEFAULT_CURRENCY: currency code for new quotes (default USD)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)
    email_webhook_url: Optional[str] = None
    from_email: str = "quotes@quotegen.app"
    company_name: str = "QuoteGen"
    quote_validity_days: int = 30
    default_currency: str = "USD"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_KEY") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")) or ("*",),
            email_webhook_url=os.getenv("EMAIL_WEBHOOK_URL") or None,
            from_email=os.getenv("FROM_EMAIL", "quotes@quotegen.app"),
            company_name=os.getenv("COMPANY_NAME", "QuoteGen"),
            quote_validity_days=int(os.getenv("QUOTE_VALIDITY_DAYS", "30")),
            default_currency=os.getenv("DEFAULT_CURRENCY", "USD"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once."""
    return Settings.from_env()


__all__ = ["Settings", "get_settings"]
