"""
Send / balance pipeline shared by every gateway function.

One DispatchService is bound to exactly one provider adapter; routing across
providers happens by calling a different function, never inside this one.

A send runs: authenticate -> validate params -> resolve gateway -> match
provider -> load credentials -> call provider -> reconcile ledger. Nothing is
rolled back when a later step fails, and the ledger step never fails the
request: once the provider accepted the message it must be reported as sent.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from smsgate.credentials import load_credentials
from smsgate.errors import AuthenticationMissing, LedgerUpdateFailed, ProviderMismatch, ValidationFailed
from smsgate.logger import get_logger
from smsgate.providers.base import ProviderAdapter, SendOptions
from smsgate.store import Gateway

logger = get_logger("dispatch")


@dataclass
class DispatchRequest:
    authorization: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None


class DispatchService:
    def __init__(self, store, adapter: ProviderAdapter):
        self.store = store
        self.adapter = adapter

    def _authenticate(self, request: DispatchRequest) -> None:
        # Presence only; the token itself is verified upstream.
        if not request.authorization or not request.authorization.strip():
            logger.warning("dispatch.auth_missing", extra={"request_id": request.request_id})
            raise AuthenticationMissing()

    def _resolve(self, gateway_id: str, required):
        gateway: Gateway = self.store.get_gateway(gateway_id)

        if gateway.provider != self.adapter.provider:
            logger.warning(
                "dispatch.provider_mismatch",
                extra={
                    "gateway_id": gateway_id,
                    "gateway_provider": gateway.provider,
                    "expected_provider": self.adapter.provider,
                },
            )
            raise ProviderMismatch()

        credentials = load_credentials(gateway.provider, gateway.credentials, required)
        logger.debug("dispatch.gateway_resolved", extra={"gateway_id": gateway_id, "provider": gateway.provider})
        return credentials

    def send(self, request: DispatchRequest) -> Dict[str, Any]:
        self._authenticate(request)

        params = request.params
        gateway_id = params.get("gateway_id")
        recipient = params.get("recipient")
        body = params.get("message")
        options = SendOptions(
            template_sid=params.get("template_sid"),
            template_variables=params.get("template_variables"),
        )

        if not gateway_id or not recipient:
            raise ValidationFailed("Missing required parameters")
        if not body and not self.adapter.supports_templates:
            raise ValidationFailed("Missing required parameters")

        credentials = self._resolve(gateway_id, self.adapter.send_fields)

        result = self.adapter.send_message(credentials, recipient, body, options)

        logger.info(
            "dispatch.sent",
            extra={
                "request_id": request.request_id,
                "gateway_id": gateway_id,
                "provider": self.adapter.provider,
                "provider_message_id": result.provider_message_id,
                "provider_status": result.provider_status,
            },
        )

        # A templated send never carried the body, so it cannot be matched on.
        sent_body = None if self.adapter.supports_templates and options.template_sid else body or None
        self._reconcile(gateway_id, recipient, sent_body)

        response: Dict[str, Any] = {
            "success": True,
            self.adapter.message_id_key: result.provider_message_id,
            "status": result.provider_status,
        }
        if result.details is not None:
            response["details"] = result.details
        return response

    def _reconcile(self, gateway_id: str, recipient: str, body: Optional[str]) -> None:
        try:
            self.store.mark_sent(gateway_id, recipient, body)
        except Exception as e:
            failure = LedgerUpdateFailed(f"Error updating message status: {e}")
            logger.error(
                "dispatch.ledger_update_failed",
                extra={"gateway_id": gateway_id, "error": failure.message},
                exc_info=True,
            )

    def get_balance(self, request: DispatchRequest) -> Dict[str, Any]:
        self._authenticate(request)

        gateway_id = request.params.get("gateway_id")
        if not gateway_id:
            raise ValidationFailed("Gateway ID is required")

        credentials = self._resolve(gateway_id, self.adapter.balance_fields)

        result = self.adapter.get_balance(credentials)
        logger.info(
            "dispatch.balance_fetched",
            extra={"request_id": request.request_id, "gateway_id": gateway_id, "provider": self.adapter.provider},
        )
        return result.as_dict()
