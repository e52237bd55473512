"""
DynamoDB-backed gateway store and message ledger.

The dispatch functions read `gateways` by id and perform a single status
transition on `messages` (pending -> sent). Row creation and the rest of the
message lifecycle belong to the dashboard, not to these functions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError

from smsgate import config
from smsgate.errors import GatewayNotFound
from smsgate.logger import get_logger

logger = get_logger("store")

_deserializer = TypeDeserializer()


@dataclass
class Gateway:
    id: str
    provider: str
    credentials: Dict[str, Any] = field(default_factory=dict)
    status: Optional[str] = None


def _decode(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _deserializer.deserialize(v) for k, v in item.items()}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DynamoStore:
    """
    Row-scoped reads and updates over the `gateways` and `messages` tables.
    The boto3 client is created on first use so importing a handler does not
    need AWS configuration.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("dynamodb", region_name=config.aws_region())
        return self._client

    def get_gateway(self, gateway_id: str) -> Gateway:
        table = config.gateways_table()
        try:
            resp = self.client.get_item(
                TableName=table,
                Key={"id": {"S": gateway_id}},
                ProjectionExpression="id, provider, credentials, #s",
                ExpressionAttributeNames={"#s": "status"},
            )
        except ClientError as e:
            logger.error(
                "store.gateway_lookup_error",
                extra={"gateway_id": gateway_id, "error": str(e)},
            )
            raise GatewayNotFound()

        item = resp.get("Item")
        if not item:
            logger.warning("store.gateway_not_found", extra={"gateway_id": gateway_id})
            raise GatewayNotFound()

        data = _decode(item)
        return Gateway(
            id=data.get("id", gateway_id),
            provider=data.get("provider"),
            credentials=data.get("credentials") or {},
            status=data.get("status"),
        )

    def _pending_message_ids(self, gateway_id: str, recipient: str, message: Optional[str]) -> List[str]:
        filter_expr = "recipient = :r AND #s = :pending"
        values = {
            ":g": {"S": gateway_id},
            ":r": {"S": recipient},
            ":pending": {"S": "pending"},
        }
        names = {"#s": "status"}
        if message is not None:
            filter_expr += " AND #m = :m"
            values[":m"] = {"S": message}
            names["#m"] = "message"

        paginator = self.client.get_paginator("query")
        pages = paginator.paginate(
            TableName=config.messages_table(),
            IndexName=config.messages_gateway_index(),
            KeyConditionExpression="gateway_id = :g",
            FilterExpression=filter_expr,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )

        ids = []
        for page in pages:
            for item in page.get("Items", []):
                ids.append(item["id"]["S"])
        return ids

    def mark_sent(self, gateway_id: str, recipient: str, message: Optional[str] = None) -> int:
        """
        Move every pending ledger row matching (gateway_id, recipient[, message])
        to `sent`. Returns the number of rows updated.

        `message=None` matches on gateway and recipient only (templated sends).
        Rows that left `pending` between the query and the update are skipped.
        """
        table = config.messages_table()
        sent_at = utc_now_iso()
        updated = 0

        for message_id in self._pending_message_ids(gateway_id, recipient, message):
            try:
                self.client.update_item(
                    TableName=table,
                    Key={"id": {"S": message_id}},
                    UpdateExpression="SET #s = :sent, sent_at = :sent_at",
                    ConditionExpression="#s = :pending",
                    ExpressionAttributeNames={"#s": "status"},
                    ExpressionAttributeValues={
                        ":sent": {"S": "sent"},
                        ":pending": {"S": "pending"},
                        ":sent_at": {"S": sent_at},
                    },
                )
                updated += 1
            except ClientError as e:
                if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                    logger.info("store.ledger_row_already_reconciled", extra={"message_id": message_id})
                    continue
                raise

        logger.info(
            "store.ledger_reconciled",
            extra={"gateway_id": gateway_id, "rows_updated": updated},
        )
        return updated
