from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple

from smsgate.credentials import Credentials


@dataclass(frozen=True)
class SendOptions:
    template_sid: Optional[str] = None
    template_variables: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class SendResult:
    provider_message_id: str
    provider_status: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class BalanceResult:
    balance: float
    currency: Optional[str]
    # Provider-specific fields; informational only.
    extra: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"balance": self.balance, "currency": self.currency, **self.extra}


class ProviderAdapter(Protocol):
    """Interface every gateway provider adapter implements."""

    provider: str
    message_id_key: str
    send_fields: Tuple[str, ...]
    balance_fields: Tuple[str, ...]
    # True when a send may carry a template instead of a body.
    supports_templates: bool

    def send_message(
        self,
        credentials: Credentials,
        recipient: str,
        body: Optional[str],
        options: SendOptions,
    ) -> SendResult:
        """Send one message and return the provider's id and status."""
        ...

    def get_balance(self, credentials: Credentials) -> BalanceResult:
        """Fetch the account balance in the normalized shape."""
        ...
