import time

import boto3
from botocore.exceptions import ClientError

from smsgate import config
from smsgate.logger import get_logger

logger = get_logger("idempotency")


def was_processed(event_id: str, ttl_secs: int = 86400, client=None) -> bool:
    """
    Record `event_id` and report whether it had already been recorded.

    Stripe redelivers webhooks until it gets a 2xx, so the same event id can
    arrive more than once. Returns False (never a duplicate) when
    WEBHOOK_EVENTS_TABLE is not configured.
    """
    table = config.webhook_events_table()
    if not table or not event_id:
        return False

    ddb = client or boto3.client("dynamodb", region_name=config.aws_region())
    try:
        ddb.put_item(
            TableName=table,
            Item={"pk": {"S": event_id}, "exp": {"N": str(int(time.time()) + ttl_secs)}},
            ConditionExpression="attribute_not_exists(pk)",
        )
        return False
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            logger.info("idempotency.duplicate", extra={"event_id": event_id})
            return True
        raise


def forget(event_id: str, client=None) -> None:
    """Remove the marker so a failed event can be processed on redelivery."""
    table = config.webhook_events_table()
    if not table or not event_id:
        return

    ddb = client or boto3.client("dynamodb", region_name=config.aws_region())
    ddb.delete_item(TableName=table, Key={"pk": {"S": event_id}})
