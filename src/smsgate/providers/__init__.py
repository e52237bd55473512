from smsgate.providers.base import BalanceResult, ProviderAdapter, SendOptions, SendResult
from smsgate.providers.messagebird import MessageBirdAdapter
from smsgate.providers.twilio import TwilioSMSAdapter, TwilioWhatsAppAdapter

__all__ = [
    "BalanceResult",
    "MessageBirdAdapter",
    "ProviderAdapter",
    "SendOptions",
    "SendResult",
    "TwilioSMSAdapter",
    "TwilioWhatsAppAdapter",
]
