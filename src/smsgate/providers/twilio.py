# providers/twilio.py

import json
from typing import Any, Dict, Optional

from twilio.http import HttpClient
from twilio.rest import Client as TwilioClient

from smsgate.credentials import TWILIO, WHATSAPP_TWILIO, TwilioCredentials, WhatsAppTwilioCredentials
from smsgate.errors import ProviderRequestFailed, ValidationFailed
from smsgate.logger import get_logger
from smsgate.providers.base import BalanceResult, SendOptions, SendResult

logger = get_logger("twilio")

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
WHATSAPP_SCHEME = "whatsapp:"


def build_client(account_sid: str, auth_token: str, http_client: Optional[HttpClient] = None) -> TwilioClient:
    """
    Build a Twilio REST client for one gateway's account.

    `http_client` replaces the SDK's requests-based transport; the SDK still
    does the Basic auth and form encoding on top of it.
    """
    return TwilioClient(account_sid, auth_token, http_client=http_client)


def _call(client: TwilioClient, method: str, url: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Authenticated request through the SDK client, returning the JSON body.

    A non-2xx answer raises ProviderRequestFailed carrying Twilio's own
    `message`, or `Twilio API error: <status>` when there is none.
    """
    response = client.request(method, url, data=data)
    try:
        payload = json.loads(response.text or "{}")
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    if not 200 <= response.status_code < 300:
        logger.error(
            "twilio.api_error",
            extra={"url": url, "method": method, "status_code": response.status_code, "code": payload.get("code")},
        )
        raise ProviderRequestFailed(payload.get("message") or f"Twilio API error: {response.status_code}")

    return payload


def _messages_url(account_sid: str) -> str:
    return f"{TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json"


def normalize_twilio_balance(balance_data: Dict[str, Any], account_data: Dict[str, Any]) -> BalanceResult:
    """
    Merge the Balance and Account resources into the normalized balance shape.

    Twilio reports the balance as a decimal string ("3.40").
    """
    raw_balance = balance_data.get("balance")
    try:
        balance = float(raw_balance)
    except (TypeError, ValueError):
        raise ProviderRequestFailed(f"Twilio API error: invalid balance {raw_balance!r}")

    return BalanceResult(
        balance=balance,
        currency=balance_data.get("currency"),
        extra={
            "accountType": account_data.get("type"),
            "accountStatus": account_data.get("status"),
            "createdAt": account_data.get("date_created"),
        },
    )


class TwilioSMSAdapter:
    provider = TWILIO
    message_id_key = "message_sid"
    send_fields = ("account_sid", "auth_token", "sender_number")
    balance_fields = ("account_sid", "auth_token")
    supports_templates = False

    def __init__(self, http_client: Optional[HttpClient] = None):
        self.http_client = http_client

    def send_message(
        self,
        credentials: TwilioCredentials,
        recipient: str,
        body: Optional[str],
        options: SendOptions = SendOptions(),
    ) -> SendResult:
        client = build_client(credentials.account_sid, credentials.auth_token, self.http_client)
        data = {"To": recipient, "From": credentials.sender_number, "Body": body}

        try:
            msg = _call(client, "POST", _messages_url(credentials.account_sid), data=data)
        except ProviderRequestFailed as e:
            raise ProviderRequestFailed(f"Failed to send SMS: {e.message}") from e
        except Exception as e:
            logger.error("twilio.send_transport_error", extra={"error": str(e), "to": recipient})
            raise ProviderRequestFailed(f"Failed to send SMS: {e}") from e

        logger.info("twilio.sent", extra={"sid": msg.get("sid"), "status": msg.get("status"), "to": recipient})
        return SendResult(provider_message_id=msg.get("sid"), provider_status=msg.get("status"))

    def get_balance(self, credentials: TwilioCredentials) -> BalanceResult:
        client = build_client(credentials.account_sid, credentials.auth_token, self.http_client)
        account_url = f"{TWILIO_API_BASE}/Accounts/{credentials.account_sid}"

        # Both lookups must succeed; there is no partial balance.
        try:
            balance_data = _call(client, "GET", f"{account_url}/Balance.json")
            account_data = _call(client, "GET", f"{account_url}.json")
            return normalize_twilio_balance(balance_data, account_data)
        except ProviderRequestFailed as e:
            raise ProviderRequestFailed(f"Failed to fetch Twilio balance: {e.message}") from e
        except Exception as e:
            logger.error("twilio.balance_transport_error", extra={"error": str(e)})
            raise ProviderRequestFailed(f"Failed to fetch Twilio balance: {e}") from e


class TwilioWhatsAppAdapter:
    provider = WHATSAPP_TWILIO
    message_id_key = "message_sid"
    send_fields = ("account_sid", "auth_token", "whatsapp_number")
    balance_fields = ("account_sid", "auth_token")
    supports_templates = True

    def __init__(self, http_client: Optional[HttpClient] = None):
        self.http_client = http_client

    def send_message(
        self,
        credentials: WhatsAppTwilioCredentials,
        recipient: str,
        body: Optional[str],
        options: SendOptions = SendOptions(),
    ) -> SendResult:
        data: Dict[str, Any] = {
            "From": f"{WHATSAPP_SCHEME}{credentials.whatsapp_number}",
            "To": f"{WHATSAPP_SCHEME}{recipient}",
        }

        if options.template_sid:
            data["ContentSid"] = options.template_sid
            if options.template_variables:
                data["ContentVariables"] = json.dumps(options.template_variables)
        elif body:
            data["Body"] = body
        else:
            raise ValidationFailed("Either template_sid or message is required")

        client = build_client(credentials.account_sid, credentials.auth_token, self.http_client)

        # Provider errors are surfaced as Twilio reports them, without a prefix.
        try:
            msg = _call(client, "POST", _messages_url(credentials.account_sid), data=data)
        except ProviderRequestFailed:
            raise
        except Exception as e:
            logger.error("whatsapp.send_transport_error", extra={"error": str(e), "to": data["To"]})
            raise ProviderRequestFailed(str(e) or "Failed to send message") from e

        logger.info(
            "whatsapp.sent",
            extra={"sid": msg.get("sid"), "status": msg.get("status"), "templated": bool(options.template_sid)},
        )
        return SendResult(
            provider_message_id=msg.get("sid"),
            provider_status=msg.get("status"),
            details={
                "to": msg.get("to"),
                "from": msg.get("from"),
                "direction": msg.get("direction"),
                "num_segments": msg.get("num_segments"),
            },
        )

    def get_balance(self, credentials: WhatsAppTwilioCredentials) -> BalanceResult:
        # WhatsApp gateways bill through the same Twilio account but no
        # balance endpoint is exposed for them.
        raise ValidationFailed("Balance lookup is not supported for WhatsApp gateways")
