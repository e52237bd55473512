from smsgate.dispatch import DispatchService
from smsgate.http import handle
from smsgate.providers import TwilioWhatsAppAdapter
from smsgate.store import DynamoStore

# Built once per container; AWS clients are created lazily on first use.
service = DispatchService(store=DynamoStore(), adapter=TwilioWhatsAppAdapter())


def lambda_handler(event, context):
    return handle(event, context, service.send, name="send_whatsapp_message")
