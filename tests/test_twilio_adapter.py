import json

import pytest

from conftest import RecordingTwilioHttp, twilio_message
from smsgate.credentials import TwilioCredentials, WhatsAppTwilioCredentials
from smsgate.errors import ProviderRequestFailed, ValidationFailed
from smsgate.providers import SendOptions, TwilioSMSAdapter, TwilioWhatsAppAdapter
from smsgate.providers.twilio import normalize_twilio_balance

SMS_CREDS = TwilioCredentials(account_sid="AC123", auth_token="secret", sender_number="+15550001111")
WA_CREDS = WhatsAppTwilioCredentials(account_sid="AC123", auth_token="secret", whatsapp_number="+15559876543")


def test_sms_send_posts_form_fields_with_basic_auth():
    http = RecordingTwilioHttp([(201, twilio_message(sid="SM1", status="queued"))])
    adapter = TwilioSMSAdapter(http_client=http)

    result = adapter.send_message(SMS_CREDS, "+15551234567", "hello", SendOptions())

    assert result.provider_message_id == "SM1"
    assert result.provider_status == "queued"
    assert len(http.requests) == 1
    req = http.requests[0]
    assert req["method"] == "POST"
    assert req["url"].endswith("/2010-04-01/Accounts/AC123/Messages.json")
    assert req["data"]["To"] == "+15551234567"
    assert req["data"]["From"] == "+15550001111"
    assert req["data"]["Body"] == "hello"
    assert tuple(req["auth"]) == ("AC123", "secret")


def test_sms_send_error_includes_provider_message():
    http = RecordingTwilioHttp([(400, {"code": 21211, "message": "The 'To' number is not valid.", "status": 400})])
    adapter = TwilioSMSAdapter(http_client=http)

    with pytest.raises(ProviderRequestFailed) as exc:
        adapter.send_message(SMS_CREDS, "bogus", "hello", SendOptions())

    assert exc.value.message == "Failed to send SMS: The 'To' number is not valid."


def test_sms_send_error_without_provider_message_uses_status():
    http = RecordingTwilioHttp([(503, {})])
    adapter = TwilioSMSAdapter(http_client=http)

    with pytest.raises(ProviderRequestFailed) as exc:
        adapter.send_message(SMS_CREDS, "+15551234567", "hello", SendOptions())

    assert exc.value.message == "Failed to send SMS: Twilio API error: 503"


def test_whatsapp_send_error_is_unprefixed():
    http = RecordingTwilioHttp([(400, {"code": 63016, "message": "Outside window", "status": 400})])
    adapter = TwilioWhatsAppAdapter(http_client=http)

    with pytest.raises(ProviderRequestFailed) as exc:
        adapter.send_message(WA_CREDS, "+15551234567", "hi", SendOptions())

    assert exc.value.message == "Outside window"


def test_whatsapp_freeform_payload_uses_whatsapp_scheme():
    http = RecordingTwilioHttp([
        (201, twilio_message(sid="SMwa", to="whatsapp:+15551234567", from_="whatsapp:+15559876543")),
    ])
    adapter = TwilioWhatsAppAdapter(http_client=http)

    result = adapter.send_message(WA_CREDS, "+15551234567", "hi there", SendOptions())

    data = http.requests[0]["data"]
    assert data["From"] == "whatsapp:+15559876543"
    assert data["To"] == "whatsapp:+15551234567"
    assert data["Body"] == "hi there"
    assert "ContentSid" not in data
    assert result.provider_message_id == "SMwa"
    assert result.details["to"] == "whatsapp:+15551234567"


def test_whatsapp_template_payload():
    http = RecordingTwilioHttp([(201, twilio_message(sid="SMtpl"))])
    adapter = TwilioWhatsAppAdapter(http_client=http)

    adapter.send_message(
        WA_CREDS,
        "+15551234567",
        "ignored when a template is given",
        SendOptions(template_sid="HX123", template_variables={"1": "Ada"}),
    )

    data = http.requests[0]["data"]
    assert data["ContentSid"] == "HX123"
    assert json.loads(data["ContentVariables"]) == {"1": "Ada"}
    assert "Body" not in data


def test_whatsapp_requires_template_or_body():
    http = RecordingTwilioHttp([])
    adapter = TwilioWhatsAppAdapter(http_client=http)

    with pytest.raises(ValidationFailed) as exc:
        adapter.send_message(WA_CREDS, "+15551234567", None, SendOptions())

    assert exc.value.message == "Either template_sid or message is required"
    assert http.requests == []


def test_balance_normalization():
    result = normalize_twilio_balance(
        {"balance": "3.40", "currency": "USD"},
        {"type": "Trial", "status": "active", "date_created": "2023-01-01"},
    )
    assert result.as_dict() == {
        "balance": 3.4,
        "currency": "USD",
        "accountType": "Trial",
        "accountStatus": "active",
        "createdAt": "2023-01-01",
    }


def test_balance_fetches_balance_then_account():
    http = RecordingTwilioHttp([
        (200, {"account_sid": "AC123", "balance": "12.05", "currency": "USD"}),
        (200, {"sid": "AC123", "type": "Full", "status": "active", "date_created": "Sun, 01 Jan 2023 00:00:00 +0000"}),
    ])
    adapter = TwilioSMSAdapter(http_client=http)

    result = adapter.get_balance(TwilioCredentials(account_sid="AC123", auth_token="secret"))

    assert [r["url"] for r in http.requests] == [
        "https://api.twilio.com/2010-04-01/Accounts/AC123/Balance.json",
        "https://api.twilio.com/2010-04-01/Accounts/AC123.json",
    ]
    assert all(r["method"] == "GET" for r in http.requests)
    assert result.balance == 12.05
    assert result.extra["accountType"] == "Full"


def test_balance_fails_when_account_lookup_fails():
    http = RecordingTwilioHttp([
        (200, {"balance": "12.05", "currency": "USD"}),
        (503, {}),
    ])
    adapter = TwilioSMSAdapter(http_client=http)

    with pytest.raises(ProviderRequestFailed) as exc:
        adapter.get_balance(TwilioCredentials(account_sid="AC123", auth_token="secret"))

    assert exc.value.message == "Failed to fetch Twilio balance: Twilio API error: 503"


def test_balance_error_uses_provider_message():
    http = RecordingTwilioHttp([(401, {"code": 20003, "message": "Authenticate"})])
    adapter = TwilioSMSAdapter(http_client=http)

    with pytest.raises(ProviderRequestFailed) as exc:
        adapter.get_balance(TwilioCredentials(account_sid="AC123", auth_token="wrong"))

    assert exc.value.message == "Failed to fetch Twilio balance: Authenticate"
    assert len(http.requests) == 1
