"""
Environment-driven configuration.

Values are read on every call rather than at import time so a warm container
picks up the environment it was started with and tests can monkeypatch it.
"""

import os
from typing import Optional

from smsgate.errors import ConfigurationError
from smsgate.logger import get_logger

logger = get_logger("config")

DEFAULT_REGION = "us-east-1"
MESSAGEBIRD_API_BASE = "https://rest.messagebird.com"


def aws_region() -> str:
    return os.getenv("AWS_REGION", DEFAULT_REGION)


def _required(name: str, default: Optional[str] = None) -> str:
    value = os.getenv(name, default)
    if not value:
        msg = f"Missing required environment variables: {name}"
        logger.error(msg)
        raise ConfigurationError(msg)
    return value


def gateways_table() -> str:
    return _required("GATEWAYS_TABLE", "gateways")


def messages_table() -> str:
    return _required("MESSAGES_TABLE", "messages")


def messages_gateway_index() -> str:
    return _required("MESSAGES_GATEWAY_INDEX", "gateway_id-index")


def subscriptions_table() -> str:
    return _required("SUBSCRIPTIONS_TABLE", "customer_subscriptions")


def payments_table() -> str:
    return _required("PAYMENTS_TABLE", "payments")


def webhook_events_table() -> Optional[str]:
    # Optional: duplicate-event guard is skipped when unset.
    return os.getenv("WEBHOOK_EVENTS_TABLE") or None


def messagebird_api_base() -> str:
    return os.getenv("MESSAGEBIRD_API_BASE", MESSAGEBIRD_API_BASE).rstrip("/")
