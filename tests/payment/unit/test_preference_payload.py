"""
Unit Tests: payment intent (checkout preference) payload.
"""

import pytest

from enums.shipping_zone import ShippingZone
from exceptions.payment import PaymentGatewayException, PaymentNotFoundException
from models.order import OrderWithItemsDTO
from models.orderItem import OrderItemDTO
from services.payment_gateway import PaymentGatewayClient, build_preference_payload, to_major_units


def make_order(**overrides) -> OrderWithItemsDTO:
    values = dict(
        id="order-1", order_number="ORD-2026-0042", subtotal=10000, shipping_cost=50000, discount=0,
        total=60000, shipping_zone=ShippingZone.NEAR, shipping_full_name="Ana Perez",
        shipping_phone="+5491122334455", shipping_email="ana@example.com", shipping_street="Av. Corrientes",
        shipping_postal_code="C1043",
        items=[
            OrderItemDTO(id=1, product_id="p1", quantity=2, unit_price=4000, total=8000, product_name="Mate cup"),
            OrderItemDTO(id=2, product_id="p2", quantity=1, unit_price=2000, total=2000, product_name="Bombilla"),
        ],
    )
    values.update(overrides)
    return OrderWithItemsDTO(**values)


class TestBuildPreferencePayload:

    def test_major_units(self):
        assert to_major_units(123456) == 1234.56

    def test_item_lines_and_shipping_line(self):
        payload = build_preference_payload(make_order())

        items = payload["items"]
        assert [(i["title"], i["quantity"], i["unit_price"]) for i in items] == [
            ("Mate cup", 2, 40.0),
            ("Bombilla", 1, 20.0),
            ("Shipping - NEAR", 1, 500.0),
        ]
        assert all(i["currency_id"] == "ARS" for i in items)

    def test_correlation_and_urls(self):
        payload = build_preference_payload(make_order())

        assert payload["external_reference"] == "order-1"
        assert payload["auto_return"] == "approved"
        assert payload["notification_url"] == "https://shop.example.com/webhooks/payments"
        assert payload["back_urls"]["success"].endswith("?orderId=order-1")
        assert payload["payer"]["email"] == "ana@example.com"

    def test_free_shipping_has_no_shipping_line(self):
        payload = build_preference_payload(make_order(shipping_cost=0, total=10000))

        assert len(payload["items"]) == 2

    def test_discounted_order_sent_as_single_total_line(self):
        payload = build_preference_payload(make_order(discount=1000, total=59000))

        assert len(payload["items"]) == 1
        assert payload["items"][0]["unit_price"] == 590.0


@pytest.mark.asyncio
class TestGatewayClient:

    async def test_missing_access_token(self):
        client = PaymentGatewayClient(access_token="")

        with pytest.raises(PaymentGatewayException):
            await client.fetch_payment("1")

    async def test_not_found_becomes_payment_not_found(self, gateway):
        with pytest.raises(PaymentNotFoundException):
            await gateway.fetch_payment("missing")

    async def test_fetch_payment_parses_dto(self, gateway):
        gateway.payments["55"] = {"id": 55, "status": "approved", "external_reference": "order-1",
                                  "transaction_amount": 590.0, "date_approved": None}

        payment = await gateway.fetch_payment("55")

        assert payment.id == "55"
        assert payment.external_reference == "order-1"

    async def test_malformed_payment_is_a_gateway_error(self, gateway):
        gateway.payments["56"] = {"status": "approved", "transaction_amount": "not-a-number"}

        with pytest.raises(PaymentGatewayException) as exc_info:
            await gateway.fetch_payment("56")

        assert exc_info.value.details["operation"] == "fetch_payment"
