"""
config.py — Service configuration

All settings come from environment variables and are read exactly once into
a `Settings` model. Handlers and clients receive the values they need at
construction time and never touch the environment themselves.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel

DEFAULT_STRIPE_API_BASE = "https://api.stripe.com"
DEFAULT_BACKEND_API_URL = "http://backend:1337"


class Settings(BaseModel):
    """
    Attributes:
        webhook_secret (str, optional): Shared secret expected in the x-strapi-secret header.
            Absence is reported as a server configuration error, not as unauthorized.
        stripe_secret_key (str, optional): Payment provider secret key (sk_test_... / sk_live_...).
        stripe_api_base (str): Base URL of the payment provider API.
        backend_api_url (str): Base URL of the content/order backend.
        log_level (str): Root log level.
        log_file (str, optional): Optional persistent log file.
    """
    webhook_secret: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_api_base: str = DEFAULT_STRIPE_API_BASE
    backend_api_url: str = DEFAULT_BACKEND_API_URL
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            # Empty strings count as unset
            webhook_secret=env.get("STRAPI_WEBHOOK_SECRET") or None,
            stripe_secret_key=env.get("STRIPE_SECRET_KEY") or None,
            stripe_api_base=env.get("STRIPE_API_BASE", DEFAULT_STRIPE_API_BASE),
            backend_api_url=env.get("BACKEND_API_URL", DEFAULT_BACKEND_API_URL),
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_file=env.get("LOG_FILE") or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
