"""
Error taxonomy for the dispatch functions.

Every error that aborts a request subclasses DispatchError and is rendered as
a 400 `{"error": <message>}` response. Callers only see the message text, so
the wording is part of the API.
"""


class DispatchError(Exception):
    default_message = "An unexpected error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationMissing(DispatchError):
    default_message = "Missing authorization header"


class ValidationFailed(DispatchError):
    default_message = "Missing required parameters"


class ConfigurationError(DispatchError):
    default_message = "Server misconfigured"


class GatewayNotFound(DispatchError):
    default_message = "Gateway not found or access denied"


class ProviderMismatch(DispatchError):
    default_message = "Invalid gateway provider"


class CredentialsInvalid(DispatchError):
    default_message = "Invalid gateway credentials"


class ProviderRequestFailed(DispatchError):
    """Network failure or non-2xx answer from the provider API."""


class LedgerUpdateFailed(DispatchError):
    """Status reconciliation failed after a successful send. Logged, never surfaced."""

    default_message = "Error updating message status"


class WebhookError(DispatchError):
    """Billing webhook could not be verified or applied."""
