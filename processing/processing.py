import hashlib
import hmac
import json
import logging

from fastapi import APIRouter, Depends, Request, HTTPException
from fastapi.responses import JSONResponse

import config
from exceptions.payment import InvalidWebhookSignatureException
from models.payment import PaymentNotificationDTO
from services.payment_gateway import PaymentGatewayClient
from services.payment_reconciler import PaymentReconciler
from web.dependencies import get_payment_gateway

logger = logging.getLogger(__name__)

processing_router = APIRouter(tags=["webhooks"])


def _parse_signature_header(x_signature_header: str) -> dict[str, str]:
    parts = {}
    for part in x_signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key and value:
            parts[key.strip()] = value.strip()
    return parts


def verify_signature(x_signature_header: str | None, x_request_id: str | None, data_id: str, secret: str) -> None:
    """
    Validate the HMAC-SHA256 signature of a payment notification.

    The signed manifest is "id:<data.id>;request-id:<x-request-id>;ts:<ts>;"
    and the header carries "ts=<ts>,v1=<hex digest>".

    Raises:
        InvalidWebhookSignatureException: header missing, malformed or not matching
    """
    if x_signature_header is None:
        raise InvalidWebhookSignatureException("missing x-signature header")

    parts = _parse_signature_header(x_signature_header)
    ts = parts.get("ts")
    received_signature = parts.get("v1")
    if not ts or not received_signature:
        raise InvalidWebhookSignatureException("malformed x-signature header")

    manifest = f"id:{data_id};request-id:{x_request_id or ''};ts:{ts};"
    generated_signature = hmac.new(secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256).hexdigest()

    # Timing-safe comparison
    if not hmac.compare_digest(generated_signature, received_signature.lower()):
        raise InvalidWebhookSignatureException("signature mismatch")


async def parse_notification(request: Request) -> PaymentNotificationDTO:
    """
    Extract topic and payment id from query parameters (topic/type + id/data.id)
    or, failing that, from the JSON body ({"type": ..., "data": {"id": ...}}).
    """
    params = request.query_params
    topic = params.get("topic") or params.get("type")
    payment_id = params.get("data.id") or params.get("id")

    if not topic or not payment_id:
        raw_body = await request.body()
        body = {}
        if raw_body:
            try:
                body = json.loads(raw_body)
            except ValueError:
                raise HTTPException(status_code=400, detail="Malformed notification body")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Malformed notification body")
        topic = topic or body.get("topic") or body.get("type")
        data = body.get("data")
        if not payment_id and isinstance(data, dict):
            payment_id = data.get("id")
        payment_id = payment_id or body.get("id")

    if not topic or not payment_id:
        raise HTTPException(status_code=400, detail="Notification must carry a topic and a payment id")

    return PaymentNotificationDTO(
        topic=str(topic).strip().lower(),
        payment_id=str(payment_id).strip(),
        request_id=request.headers.get("x-request-id"),
    )


@processing_router.post(config.WEBHOOK_PATH)
async def payment_notification(request: Request, gateway: PaymentGatewayClient = Depends(get_payment_gateway)):
    """
    Payment gateway webhook.

    Answers:
        200: processed, duplicate, stale, amount mismatch, ignored or unknown order (never re-delivered)
        400: no topic or payment id
        403: signature check failed
        502: payment could not be fetched from the gateway (re-delivered)
    """
    notification = await parse_notification(request)
    logger.info(f"Payment webhook received: topic={notification.topic} id={notification.payment_id} "
                f"request_id={notification.request_id}")

    if config.PAYMENT_WEBHOOK_SECRET:
        try:
            verify_signature(request.headers.get("x-signature"), notification.request_id,
                             notification.payment_id, config.PAYMENT_WEBHOOK_SECRET)
        except InvalidWebhookSignatureException as e:
            logger.error(f"Payment webhook rejected: {e.reason}")
            raise HTTPException(status_code=403, detail="Invalid signature")

    if notification.topic != "payment":
        logger.info(f"Payment webhook topic '{notification.topic}' ignored")
        return JSONResponse(status_code=200, content={"status": "ignored"})

    # Gateway errors propagate to the exception handler (502) so the gateway retries
    result = await PaymentReconciler.reconcile(notification.payment_id, gateway)
    return JSONResponse(status_code=200, content={
        "status": result.result,
        "order_id": result.order_id,
        "order_status": result.order_status.value if result.order_status else None,
    })
