from smsgate.dispatch import DispatchService
from smsgate.http import handle
from smsgate.providers import TwilioSMSAdapter
from smsgate.store import DynamoStore

service = DispatchService(store=DynamoStore(), adapter=TwilioSMSAdapter())


def lambda_handler(event, context):
    # GET /get-twilio-credits?gateway_id=...
    return handle(event, context, service.get_balance, name="get_twilio_credits", from_query=True)
