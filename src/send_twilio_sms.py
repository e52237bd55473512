from smsgate.dispatch import DispatchService
from smsgate.http import handle
from smsgate.providers import TwilioSMSAdapter
from smsgate.store import DynamoStore

# Built once per container; AWS clients are created lazily on first use.
service = DispatchService(store=DynamoStore(), adapter=TwilioSMSAdapter())


def lambda_handler(event, context):
    return handle(event, context, service.send, name="send_twilio_sms")
