"""
Gateway credential types.

A gateway's `credentials` attribute is a provider-shaped map. It is turned into
one of the dataclasses below at the dispatch boundary, and the fields the
requested operation needs are checked before any provider call is made.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, Optional, Union

from smsgate.errors import CredentialsInvalid, ProviderMismatch
from smsgate.logger import get_logger

logger = get_logger("credentials")

TWILIO = "twilio"
WHATSAPP_TWILIO = "whatsapp_twilio"
MESSAGEBIRD = "messagebird"


@dataclass(frozen=True)
class TwilioCredentials:
    account_sid: str
    auth_token: str
    sender_number: Optional[str] = None


@dataclass(frozen=True)
class WhatsAppTwilioCredentials:
    account_sid: str
    auth_token: str
    whatsapp_number: Optional[str] = None


@dataclass(frozen=True)
class MessageBirdCredentials:
    api_key: str
    originator: Optional[str] = None


Credentials = Union[TwilioCredentials, WhatsAppTwilioCredentials, MessageBirdCredentials]

CREDENTIAL_TYPES = {
    TWILIO: TwilioCredentials,
    WHATSAPP_TWILIO: WhatsAppTwilioCredentials,
    MESSAGEBIRD: MessageBirdCredentials,
}


def load_credentials(provider: str, raw: Optional[Dict[str, Any]], required: Iterable[str]) -> Credentials:
    """
    Build the credential object for `provider` from the stored map.

    Raises CredentialsInvalid when any field in `required` is absent or empty,
    and ProviderMismatch when the provider has no credential type.
    """
    cls = CREDENTIAL_TYPES.get(provider)
    if cls is None:
        raise ProviderMismatch()

    raw = raw if isinstance(raw, dict) else {}
    missing = [name for name in required if not raw.get(name)]
    if missing:
        # Field names only; never the values.
        logger.warning(
            "credentials.missing_fields",
            extra={"provider": provider, "missing": missing},
        )
        raise CredentialsInvalid()

    values = {f.name: raw.get(f.name) for f in fields(cls)}
    return cls(**values)
