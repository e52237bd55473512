from smsgate.dispatch import DispatchService
from smsgate.http import handle
from smsgate.providers import MessageBirdAdapter
from smsgate.store import DynamoStore

# Reuse the HTTP connection pool across warm invocations
service = DispatchService(store=DynamoStore(), adapter=MessageBirdAdapter())


def lambda_handler(event, context):
    return handle(event, context, service.send, name="send_messagebird_sms")
