"""
Payment Gateway Client

HTTP client for the external payment gateway (Mercado Pago compatible API):
- create_payment_intent: POST /checkout/preferences
- fetch_payment: GET /v1/payments/{id}

Every call is bounded by PAYMENT_GATEWAY_TIMEOUT_SECONDS. Network errors and
timeouts raise PaymentGatewayUnavailableException, error answers raise
PaymentGatewayException; neither is ever swallowed here.
"""

import asyncio
import logging

import aiohttp
from pydantic import ValidationError

import config
from exceptions.payment import (
    PaymentGatewayException,
    PaymentGatewayUnavailableException,
    PaymentNotFoundException,
)
from models.order import OrderWithItemsDTO
from models.payment import GatewayPaymentDTO, PaymentIntentDTO

logger = logging.getLogger(__name__)


class PaymentGatewayClient:

    def __init__(self,
                 api_url: str | None = None,
                 access_token: str | None = None,
                 timeout_seconds: int | None = None):
        self.api_url = (api_url or config.PAYMENT_GATEWAY_API_URL).rstrip("/")
        self.access_token = access_token if access_token is not None else config.PAYMENT_GATEWAY_ACCESS_TOKEN
        self.timeout_seconds = timeout_seconds or config.PAYMENT_GATEWAY_TIMEOUT_SECONDS

    async def _request(self, method: str, path: str, operation: str, payload: dict | None = None) -> dict:
        if not self.access_token:
            raise PaymentGatewayException(operation, "gateway access token not configured")

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        url = f"{self.api_url}{path}"

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, json=payload, headers=headers) as response:
                    if response.status == 404:
                        raise PaymentGatewayException(operation, "resource not found", 404)
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(f"Payment gateway {operation} answered HTTP {response.status}: {body[:500]}")
                        raise PaymentGatewayException(operation, f"HTTP {response.status}", response.status)
                    return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Payment gateway {operation} unreachable: {type(e).__name__}: {e}")
            raise PaymentGatewayUnavailableException(operation, str(e) or type(e).__name__) from e

    async def fetch_payment(self, payment_id: str) -> GatewayPaymentDTO:
        """
        Authoritative payment lookup.

        Raises:
            PaymentNotFoundException: gateway does not know the payment (404)
            PaymentGatewayException: error answer or malformed payment
            PaymentGatewayUnavailableException: network error or timeout
        """
        try:
            payment = await self._request("GET", f"/v1/payments/{payment_id}", "fetch_payment")
        except PaymentGatewayException as e:
            if e.status_code == 404:
                raise PaymentNotFoundException(payment_id) from e
            raise
        try:
            return GatewayPaymentDTO.model_validate(payment)
        except ValidationError as e:
            raise PaymentGatewayException(
                "fetch_payment", f"malformed payment response: {e.error_count()} errors"
            ) from e

    async def create_payment_intent(self, order: OrderWithItemsDTO) -> PaymentIntentDTO:
        """
        Create a checkout preference for a committed order.

        The order id is the correlation id (external_reference) the webhook
        reconciler uses to find the order again.
        """
        payload = build_preference_payload(order)
        preference = await self._request("POST", "/checkout/preferences", "create_payment_intent", payload)
        if not preference.get("id") or not preference.get("init_point"):
            raise PaymentGatewayException("create_payment_intent", "response without id/init_point")
        logger.info(f"Payment intent {preference['id']} created for order {order.order_number}")
        return PaymentIntentDTO(
            preference_id=str(preference["id"]),
            redirect_url=preference["init_point"],
            sandbox_redirect_url=preference.get("sandbox_init_point"),
        )


def to_major_units(amount: int) -> float:
    return round(amount / config.CURRENCY.get_minor_units(), 2)


def to_minor_units(amount: float) -> int:
    return round(amount * config.CURRENCY.get_minor_units())


def build_preference_payload(order: OrderWithItemsDTO) -> dict:
    """
    Preference body: one line per order item plus a shipping line when
    shipping is charged, amounts in major units.

    Line items cannot be negative, so a discounted order is sent as a single
    line carrying the order total.
    """
    currency_id = config.CURRENCY.value
    if order.discount:
        items = [{
            "id": order.order_number,
            "title": f"Order {order.order_number}",
            "quantity": 1,
            "unit_price": to_major_units(order.total),
            "currency_id": currency_id,
        }]
        return _preference_body(order, items)

    items = [
        {
            "id": order_item.product_id or order_item.product_sku or str(order_item.id),
            "title": order_item.product_name,
            "quantity": order_item.quantity,
            "unit_price": to_major_units(order_item.unit_price),
            "currency_id": currency_id,
        }
        for order_item in order.items
    ]
    if order.shipping_cost and order.shipping_cost > 0:
        items.append({
            "id": "shipping",
            "title": f"Shipping - {order.shipping_zone.value.upper()}",
            "quantity": 1,
            "unit_price": to_major_units(order.shipping_cost),
            "currency_id": currency_id,
        })
    return _preference_body(order, items)


def _preference_body(order: OrderWithItemsDTO, items: list[dict]) -> dict:
    payload = {
        "items": items,
        "back_urls": {
            "success": f"{config.PUBLIC_BASE_URL}/shop/order/success?orderId={order.id}",
            "failure": f"{config.PUBLIC_BASE_URL}/shop/order/failure?orderId={order.id}",
            "pending": f"{config.PUBLIC_BASE_URL}/shop/order/pending?orderId={order.id}",
        },
        "auto_return": "approved",
        "external_reference": order.id,
        "notification_url": f"{config.PUBLIC_BASE_URL}{config.WEBHOOK_PATH}",
        "statement_descriptor": config.PAYMENT_STATEMENT_DESCRIPTOR,
        "payer": {
            "name": order.shipping_full_name,
            "phone": {"number": order.shipping_phone},
            "address": {
                "street_name": order.shipping_street,
                "zip_code": order.shipping_postal_code,
            },
        },
    }
    if order.shipping_email:
        payload["payer"]["email"] = order.shipping_email
    return payload
