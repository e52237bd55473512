import json
import logging

import httpx
import pytest
from botocore.exceptions import ClientError
from twilio.http import HttpClient
from twilio.http.response import Response

from smsgate.errors import GatewayNotFound
from smsgate.store import Gateway

# Shared fakes for the dispatch tests. Nothing here talks to the network:
#  - Twilio: a twilio.http.HttpClient that records requests
#  - MessageBird: httpx.MockTransport
#  - DynamoDB: hand-written stubs with the boto3 client method names


class RecordingTwilioHttp(HttpClient):
    """Transport for twilio.rest.Client that records requests and replays canned responses."""

    def __init__(self, responses=None):
        self.logger = logging.getLogger("tests.twilio")
        self.is_async = False
        self.timeout = None
        self.responses = list(responses or [])
        self.requests = []

    def request(self, method, url, params=None, data=None, headers=None, auth=None, timeout=None,
                allow_redirects=False, **kwargs):
        self.requests.append({
            "method": method,
            "url": url,
            "params": dict(params or {}),
            "data": dict(data or {}),
            "auth": auth,
        })
        status_code, payload = self.responses.pop(0)
        return Response(status_code, json.dumps(payload))


class RecordingMessageBird:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests = []
        self.client = httpx.Client(
            base_url="https://rest.messagebird.com",
            transport=httpx.MockTransport(self._handle),
        )

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, payload = self.responses.pop(0)
        return httpx.Response(status_code, json=payload)


class FakeStore:
    def __init__(self, gateways=None, fail_ledger=False):
        self.gateways = {g.id: g for g in (gateways or [])}
        self.fail_ledger = fail_ledger
        self.lookups = []
        self.ledger_calls = []

    def get_gateway(self, gateway_id):
        self.lookups.append(gateway_id)
        if gateway_id not in self.gateways:
            raise GatewayNotFound()
        return self.gateways[gateway_id]

    def mark_sent(self, gateway_id, recipient, message=None):
        self.ledger_calls.append((gateway_id, recipient, message))
        if self.fail_ledger:
            raise RuntimeError("ledger unavailable")
        return 1


class StubPaginator:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        return iter(self.pages)


class StubDynamo:
    def __init__(self, item=None, pages=None, update_errors=None, get_error=None):
        self.item = item
        self.get_error = get_error
        self.paginator = StubPaginator(pages or [])
        self.update_errors = dict(update_errors or {})
        self.get_calls = []
        self.updates = []
        self.puts = []
        self.deletes = []

    def get_item(self, **kwargs):
        self.get_calls.append(kwargs)
        if self.get_error:
            raise self.get_error
        return {"Item": self.item} if self.item else {}

    def get_paginator(self, name):
        assert name == "query"
        return self.paginator

    def update_item(self, **kwargs):
        key = kwargs["Key"].get("id", {}).get("S")
        if key in self.update_errors:
            raise self.update_errors[key]
        self.updates.append(kwargs)
        return {}

    def put_item(self, **kwargs):
        self.puts.append(kwargs)
        return {}

    def delete_item(self, **kwargs):
        self.deletes.append(kwargs)
        return {}


def client_error(code, operation="UpdateItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class LambdaContext:
    aws_request_id = "req-123"


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("GATEWAYS_TABLE", "gateways")
    monkeypatch.setenv("MESSAGES_TABLE", "messages")
    monkeypatch.setenv("MESSAGES_GATEWAY_INDEX", "gateway_id-index")
    monkeypatch.delenv("WEBHOOK_EVENTS_TABLE", raising=False)


@pytest.fixture
def twilio_gateway():
    return Gateway(
        id="gw-twilio",
        provider="twilio",
        credentials={"account_sid": "AC123", "auth_token": "secret", "sender_number": "+15550001111"},
        status="active",
    )


@pytest.fixture
def whatsapp_gateway():
    return Gateway(
        id="gw-whatsapp",
        provider="whatsapp_twilio",
        credentials={"account_sid": "AC123", "auth_token": "secret", "whatsapp_number": "+15559876543"},
        status="active",
    )


@pytest.fixture
def messagebird_gateway():
    return Gateway(
        id="gw-mb",
        provider="messagebird",
        credentials={"api_key": "live_key", "originator": "Dashboard"},
        status="active",
    )


@pytest.fixture
def context():
    return LambdaContext()


@pytest.fixture
def api_event():
    def _build(method="POST", body=None, query=None, auth="Bearer test-token"):
        headers = {"content-type": "application/json"}
        if auth is not None:
            headers["authorization"] = auth
        return {
            "version": "2.0",
            "requestContext": {"http": {"method": method}},
            "headers": headers,
            "queryStringParameters": query,
            "body": json.dumps(body) if body is not None else None,
            "isBase64Encoded": False,
        }

    return _build


def twilio_message(sid="SM123", status="queued", to="+15551234567", from_="+15550001111"):
    return {
        "sid": sid,
        "account_sid": "AC123",
        "status": status,
        "to": to,
        "from": from_,
        "direction": "outbound-api",
        "num_segments": "1",
        "num_media": "0",
        "api_version": "2010-04-01",
    }
