import json
import os

import boto3

from smsgate import config
from smsgate.errors import ConfigurationError
from smsgate.logger import get_logger

logger = get_logger("secrets")


def get_secret_json(secret_name: str) -> dict:
    """
    Fetch a JSON secret from AWS Secrets Manager and return it as a dict.
    """
    region_name = config.aws_region()

    logger.info(
        "secrets.fetch",
        extra={"secret_name": secret_name, "region": region_name},
    )

    client = boto3.client("secretsmanager", region_name=region_name)

    resp = client.get_secret_value(SecretId=secret_name)
    secret_str = resp.get("SecretString")

    if not secret_str:
        msg = f"Secret '{secret_name}' has no SecretString payload"
        logger.error(msg)
        raise ConfigurationError(msg)

    try:
        data = json.loads(secret_str)
    except json.JSONDecodeError as e:
        logger.error(
            "secrets.invalid_json",
            extra={"secret_name": secret_name, "error": str(e)},
        )
        raise ConfigurationError(f"Secret '{secret_name}' is not valid JSON")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Secret '{secret_name}' must be a JSON object")

    return data


def get_stripe_webhook_secret() -> str:
    """
    Resolve the Stripe webhook signing secret.

    STRIPE_WEBHOOK_SECRET wins when set (local runs). Otherwise the secret
    named by STRIPE_SECRET_NAME is read from Secrets Manager, expected as:

        {
          "webhook_secret": "whsec_...",
          "api_key": "sk_..."
        }
    """
    direct = os.getenv("STRIPE_WEBHOOK_SECRET")
    if direct:
        return direct

    secret_name = os.getenv("STRIPE_SECRET_NAME")
    if not secret_name:
        msg = "Missing required environment variables: STRIPE_SECRET_NAME"
        logger.error(msg)
        raise ConfigurationError(msg)

    data = get_secret_json(secret_name)
    webhook_secret = data.get("webhook_secret")
    if not webhook_secret:
        logger.error("secrets.missing_field", extra={"secret_name": secret_name, "field": "webhook_secret"})
        raise ConfigurationError("Missing Stripe webhook secret")

    return webhook_secret
