"""
Dependency injection for FastAPI endpoints.

Clients are created once per process and shared; handlers are cheap and
built per request from the shared clients and the settings. Tests replace any
of these through app.dependency_overrides.
"""

import logging
from functools import lru_cache

from fastapi import Depends

from .cancellation_service import CancellationRequestHandler
from .clients import BackendClient, PaymentClient
from .config import Settings, get_settings
from .refund import RefundCommandHandler

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _payment_client(api_key, base_url) -> PaymentClient:
    logger.debug(f"Creating payment client for {base_url}")
    return PaymentClient(api_key=api_key, base_url=base_url)


@lru_cache(maxsize=1)
def _backend_client(base_url) -> BackendClient:
    logger.debug(f"Creating backend client for {base_url}")
    return BackendClient(base_url=base_url)


def get_payment_client(settings: Settings = Depends(get_settings)) -> PaymentClient:
    return _payment_client(settings.stripe_secret_key, settings.stripe_api_base)


def get_backend_client(settings: Settings = Depends(get_settings)) -> BackendClient:
    return _backend_client(settings.backend_api_url)


def get_refund_handler(
    settings: Settings = Depends(get_settings),
    payment_client: PaymentClient = Depends(get_payment_client),
) -> RefundCommandHandler:
    return RefundCommandHandler(webhook_secret=settings.webhook_secret, payment_client=payment_client)


def get_cancellation_handler(
    backend_client: BackendClient = Depends(get_backend_client),
) -> CancellationRequestHandler:
    return CancellationRequestHandler(backend_client)
