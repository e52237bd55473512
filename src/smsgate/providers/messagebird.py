from typing import Any, Dict, Optional

import httpx

from smsgate import config
from smsgate.credentials import MESSAGEBIRD, MessageBirdCredentials
from smsgate.errors import ProviderRequestFailed
from smsgate.logger import get_logger
from smsgate.providers.base import BalanceResult, SendOptions, SendResult

logger = get_logger("messagebird")


def _headers(credentials: MessageBirdCredentials) -> Dict[str, str]:
    return {
        "Authorization": f"AccessKey {credentials.api_key}",
        "Content-Type": "application/json",
    }


def _error_description(resp: httpx.Response) -> Optional[str]:
    try:
        data = resp.json()
    except ValueError:
        return None
    errors = data.get("errors") if isinstance(data, dict) else None
    if errors:
        return errors[0].get("description")
    return None


def normalize_messagebird_balance(data: Dict[str, Any]) -> BalanceResult:
    return BalanceResult(balance=data.get("amount"), currency=data.get("type"))


class MessageBirdAdapter:
    provider = MESSAGEBIRD
    message_id_key = "message_id"
    send_fields = ("api_key", "originator")
    balance_fields = ("api_key",)
    supports_templates = False

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(base_url=config.messagebird_api_base())
        return self._http_client

    def _request(self, method: str, path: str, credentials: MessageBirdCredentials, fallback: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self.http_client.request(method, path, headers=_headers(credentials), **kwargs)
        except httpx.HTTPError as e:
            logger.error("messagebird.transport_error", extra={"path": path, "error": str(e)})
            raise ProviderRequestFailed(str(e) or fallback) from e

        if resp.status_code >= 400:
            description = _error_description(resp)
            logger.error(
                "messagebird.api_error",
                extra={"path": path, "status_code": resp.status_code, "description": description},
            )
            raise ProviderRequestFailed(description or fallback)

        return resp.json()

    def send_message(
        self,
        credentials: MessageBirdCredentials,
        recipient: str,
        body: Optional[str],
        options: SendOptions = SendOptions(),
    ) -> SendResult:
        data = self._request(
            "POST",
            "/messages",
            credentials,
            "Failed to send message",
            json={
                "originator": credentials.originator,
                "recipients": [recipient],
                "body": body,
            },
        )

        # MessageBird reports status per recipient; the message itself has none.
        status = data.get("status")
        if status is None:
            items = (data.get("recipients") or {}).get("items") or []
            status = items[0].get("status") if items else None

        logger.info("messagebird.sent", extra={"id": data.get("id"), "status": status})
        return SendResult(provider_message_id=data.get("id"), provider_status=status)

    def get_balance(self, credentials: MessageBirdCredentials) -> BalanceResult:
        data = self._request("GET", "/balance", credentials, "Failed to fetch balance")
        return normalize_messagebird_balance(data)
