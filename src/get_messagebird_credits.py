from smsgate.dispatch import DispatchService
from smsgate.http import handle
from smsgate.providers import MessageBirdAdapter
from smsgate.store import DynamoStore

service = DispatchService(store=DynamoStore(), adapter=MessageBirdAdapter())


def lambda_handler(event, context):
    # GET /get-messagebird-credits?gateway_id=...
    return handle(event, context, service.get_balance, name="get_messagebird_credits", from_query=True)
