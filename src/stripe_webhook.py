from smsgate import idempotency
from smsgate.billing import SubscriptionStore, apply_event, verify_event
from smsgate.errors import DispatchError
from smsgate.http import error_response, get_header, json_response, raw_body
from smsgate.logger import get_logger
from smsgate.secrets import get_stripe_webhook_secret

logger = get_logger("stripe-webhook")

store = SubscriptionStore()


def lambda_handler(event, context):
    logger.info(
        "stripe_webhook.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None)},
    )

    # 1) Verify signature before touching the payload
    try:
        payload = raw_body(event)
        stripe_event = verify_event(
            payload,
            get_header(event, "Stripe-Signature"),
            get_stripe_webhook_secret(),
        )
    except DispatchError as e:
        return error_response(e.message)
    except Exception as e:
        logger.error("stripe_webhook.verify_error", extra={"error": str(e)}, exc_info=True)
        return error_response(str(e))

    event_id = stripe_event.get("id")
    event_type = stripe_event.get("type")

    # 2) Skip redeliveries
    try:
        duplicate = idempotency.was_processed(event_id)
    except Exception as e:
        logger.error(
            "stripe_webhook.idempotency_error",
            extra={"event_id": event_id, "event_type": event_type, "error": str(e)},
            exc_info=True,
        )
        return error_response(str(e))

    if duplicate:
        logger.info("stripe_webhook.duplicate", extra={"event_id": event_id, "event_type": event_type})
        return json_response(200, {"received": True})

    # 3) Apply
    try:
        summary = apply_event(stripe_event, store)
    except Exception as e:
        logger.error(
            "stripe_webhook.apply_error",
            extra={"event_id": event_id, "event_type": event_type, "error": str(e)},
            exc_info=True,
        )
        # Let Stripe redeliver this event.
        try:
            idempotency.forget(event_id)
        except Exception:
            logger.error("stripe_webhook.forget_error", extra={"event_id": event_id}, exc_info=True)
        message = e.message if isinstance(e, DispatchError) else str(e)
        return error_response(message)

    logger.info("stripe_webhook.applied", extra={"event_id": event_id, **summary})
    return json_response(200, {"received": True})
