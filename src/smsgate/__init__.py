"""
SMS Dashboard Gateway Functions
===============================

Shared package for the serverless functions behind the SMS/WhatsApp messaging
dashboard. The functions send messages and read account balances through
third-party gateway providers (Twilio, Twilio WhatsApp, MessageBird), reconcile
message status into the `messages` ledger, and process billing webhooks.

Modules under this package:
- config.py       → environment-driven configuration
- logger.py       → structured JSON logging
- errors.py       → dispatch error taxonomy
- secrets.py      → AWS Secrets Manager integration
- credentials.py  → per-provider gateway credential types
- store.py        → DynamoDB gateway store and message ledger
- providers/      → provider adapters (Twilio, WhatsApp, MessageBird)
- dispatch.py     → send / balance request pipeline
- http.py         → API Gateway event parsing and responses
- billing.py      → Stripe webhook processing
- idempotency.py  → DynamoDB-based duplicate-event guard

Environment variables expected:
  • AWS_REGION                 - AWS region for all resources
  • GATEWAYS_TABLE             - DynamoDB table holding gateway records
  • MESSAGES_TABLE             - DynamoDB table holding the message ledger
  • MESSAGES_GATEWAY_INDEX     - GSI on messages.gateway_id
  • SUBSCRIPTIONS_TABLE        - DynamoDB table for customer subscriptions
  • PAYMENTS_TABLE             - DynamoDB table for payments
  • WEBHOOK_EVENTS_TABLE       - DynamoDB table for webhook de-duplication (optional)
  • STRIPE_SECRET_NAME         - Secrets Manager secret with the webhook secret
  • LOG_LEVEL                  - Log verbosity (default: INFO)

All handlers built on this package are stateless and Lambda-optimized.
"""

__version__ = "1.0.0"
__author__ = "SMS Dashboard Engineering"
__license__ = "MIT"

__all__ = ["__version__", "__author__"]
