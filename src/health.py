from smsgate import __version__
from smsgate.http import json_response, request_method
from smsgate.logger import log


def lambda_handler(event, context):
    log("health.check", path="/health", method=request_method(event))
    return json_response(200, {"status": "ok", "version": __version__})
