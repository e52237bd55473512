"""
Stripe billing webhook.

Three event kinds are applied to the subscription tables; everything else is
acknowledged and ignored. The signature is always verified before the payload
is looked at.
"""

import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import boto3
import stripe
from botocore.exceptions import ClientError

from smsgate import config
from smsgate.errors import WebhookError
from smsgate.logger import get_logger

logger = get_logger("billing")

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"

SUBSCRIPTION_PERIOD = timedelta(days=30)


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


class SubscriptionStore:
    """DynamoDB writes for `customer_subscriptions` and `payments`."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("dynamodb", region_name=config.aws_region())
        return self._client

    def insert_subscription(self, user_id: str, plan_id: str, start_date: str, end_date: str) -> None:
        self.client.put_item(
            TableName=config.subscriptions_table(),
            Item={
                "user_id": {"S": user_id},
                "subscription_plan_id": {"S": plan_id},
                "status": {"S": "active"},
                "start_date": {"S": start_date},
                "end_date": {"S": end_date},
                "auto_renew": {"BOOL": True},
            },
        )

    def update_subscription(self, user_id: str, plan_id: str, status: str, end_date: str, auto_renew: bool) -> bool:
        """Returns False when there is no subscription row to update."""
        try:
            self.client.update_item(
                TableName=config.subscriptions_table(),
                Key={"user_id": {"S": user_id}, "subscription_plan_id": {"S": plan_id}},
                UpdateExpression="SET #s = :status, end_date = :end_date, auto_renew = :auto_renew",
                ConditionExpression="attribute_exists(user_id)",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":status": {"S": status},
                    ":end_date": {"S": end_date},
                    ":auto_renew": {"BOOL": auto_renew},
                },
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning(
                    "billing.subscription_not_found",
                    extra={"user_id": user_id, "plan_id": plan_id},
                )
                return False
            raise

    def insert_payment(self, user_id: str, plan_id: str, amount: float, transaction_id: Optional[str], payment_date: str) -> str:
        payment_id = str(uuid.uuid4())
        item = {
            "id": {"S": payment_id},
            "user_id": {"S": user_id},
            "subscription_plan_id": {"S": plan_id},
            "amount": {"N": str(amount)},
            "status": {"S": "completed"},
            "payment_date": {"S": payment_date},
        }
        if transaction_id:
            item["transaction_id"] = {"S": transaction_id}
        self.client.put_item(TableName=config.payments_table(), Item=item)
        return payment_id


def verify_event(payload: str, signature: Optional[str], webhook_secret: str) -> Dict[str, Any]:
    """
    Check the Stripe-Signature header and return the event as a plain dict
    decoded from the verified payload. stripe.Event is not a dict.
    """
    if not signature:
        raise WebhookError("No signature")
    try:
        stripe.Webhook.construct_event(payload, signature, webhook_secret)
    except ValueError as e:
        logger.warning("billing.invalid_payload", extra={"error": str(e)})
        raise WebhookError(f"Invalid payload: {e}")
    except stripe.SignatureVerificationError as e:
        logger.warning("billing.invalid_signature", extra={"error": str(e)})
        raise WebhookError(f"Invalid signature: {e}")

    return json.loads(payload)


def _plan_metadata(obj) -> tuple:
    metadata = obj.get("metadata") or {}
    user_id = metadata.get("userId")
    plan_id = metadata.get("planId")
    if not user_id or not plan_id:
        raise WebhookError("Missing metadata")
    return user_id, plan_id


def _period_end(subscription) -> datetime:
    period_end = subscription.get("current_period_end")
    if period_end is None:
        # Newer API versions carry the period on the subscription items.
        items = (subscription.get("items") or {}).get("data") or []
        period_end = items[0].get("current_period_end") if items else None
    if period_end is None:
        raise WebhookError("Missing current_period_end")
    return datetime.fromtimestamp(int(period_end), tz=timezone.utc)


def apply_event(event, store: SubscriptionStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Apply one verified Stripe event to the subscription tables.
    Returns a small summary for logging.
    """
    now = now or datetime.now(timezone.utc)
    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type == CHECKOUT_COMPLETED:
        user_id, plan_id = _plan_metadata(obj)
        store.insert_subscription(
            user_id,
            plan_id,
            start_date=_iso(now),
            end_date=_iso(now + SUBSCRIPTION_PERIOD),
        )
        amount_total = obj.get("amount_total")
        payment_id = store.insert_payment(
            user_id,
            plan_id,
            amount=amount_total / 100 if amount_total else 0,
            transaction_id=obj.get("payment_intent"),
            payment_date=_iso(now),
        )
        return {"event_type": event_type, "user_id": user_id, "payment_id": payment_id}

    if event_type == SUBSCRIPTION_UPDATED:
        user_id, plan_id = _plan_metadata(obj)
        active = obj.get("status") == "active"
        updated = store.update_subscription(
            user_id,
            plan_id,
            status="active" if active else "cancelled",
            end_date=_iso(_period_end(obj)),
            auto_renew=active,
        )
        return {"event_type": event_type, "user_id": user_id, "updated": updated}

    if event_type == SUBSCRIPTION_DELETED:
        user_id, plan_id = _plan_metadata(obj)
        updated = store.update_subscription(
            user_id,
            plan_id,
            status="expired",
            end_date=_iso(now),
            auto_renew=False,
        )
        return {"event_type": event_type, "user_id": user_id, "updated": updated}

    logger.info("billing.event_ignored", extra={"event_type": event_type})
    return {"event_type": event_type, "ignored": True}
