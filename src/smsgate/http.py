"""
API Gateway event helpers shared by the Lambda handlers.

Accepts both HTTP API (payload v2) and REST API (payload v1) events. Every
response is JSON and carries the CORS headers the dashboard needs.
"""

import base64
import json
from typing import Any, Callable, Dict, Optional

from smsgate.dispatch import DispatchRequest
from smsgate.errors import AuthenticationMissing, DispatchError, ValidationFailed
from smsgate.logger import get_logger

logger = get_logger("http")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Credentials": "true",
}


def request_method(event: dict) -> str:
    method = event.get("requestContext", {}).get("http", {}).get("method") or event.get("httpMethod") or "GET"
    return method.upper()


def get_header(event: dict, name: str) -> Optional[str]:
    # v2 lowercases header names, v1 does not.
    wanted = name.lower()
    for key, value in (event.get("headers") or {}).items():
        if key.lower() == wanted:
            return value
    return None


def query_params(event: dict) -> Dict[str, str]:
    return dict(event.get("queryStringParameters") or {})


def raw_body(event: dict) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded") and isinstance(body, str):
        body = base64.b64decode(body).decode("utf-8")
    return body


def parse_json_body(event: dict) -> dict:
    """
    Extract and parse the JSON body from the Lambda event.

    - For API Gateway: event["body"] is a JSON string (possibly base64).
    - For direct invocations: event["body"] may already be a dict.
    """
    body = event.get("body")
    if isinstance(body, dict):
        return body

    text = raw_body(event)
    if not text:
        return {}

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("http.invalid_json", extra={"body_preview": text[:200]})
        raise ValidationFailed("Invalid JSON body")

    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON body")
    return payload


def json_response(status_code: int, payload: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": {**CORS_HEADERS, "Content-Type": "application/json"},
        "body": json.dumps(payload, default=str),
    }


def preflight_response() -> dict:
    return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}


def error_response(message: str) -> dict:
    return json_response(400, {"error": message or "An unexpected error occurred"})


def build_request(event: dict, context, from_query: bool = False) -> DispatchRequest:
    params = query_params(event) if from_query else parse_json_body(event)
    return DispatchRequest(
        authorization=get_header(event, "Authorization"),
        params=params,
        request_id=getattr(context, "aws_request_id", None),
    )


def handle(event: dict, context, operation: Callable[[DispatchRequest], Dict[str, Any]], name: str, from_query: bool = False) -> dict:
    """
    Run one dispatch operation for an API Gateway event.

    Every failure becomes a 400 `{"error": ...}`; the message text is what the
    dashboard shows to the user.
    """
    if request_method(event) == "OPTIONS":
        return preflight_response()

    logger.info(
        f"{name}.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None), "method": request_method(event)},
    )

    # Authorization is checked before the body is parsed.
    if not get_header(event, "Authorization"):
        logger.warning(f"{name}.auth_missing")
        return error_response(AuthenticationMissing().message)

    try:
        request = build_request(event, context, from_query=from_query)
        return json_response(200, operation(request))
    except DispatchError as e:
        logger.warning(f"{name}.failed", extra={"error_type": type(e).__name__, "error": e.message})
        return error_response(e.message)
    except Exception as e:
        logger.exception(f"{name}.unexpected_error")
        return error_response(str(e))
