"""
Shipping Service

Shipping cost from destination zone and parcel weight. Pure calculation,
no I/O; base costs and the weight surcharge come from config.
"""

import logging
import math

import config
from enums.shipping_zone import ShippingZone
from models.cartItem import CartLineDTO

logger = logging.getLogger(__name__)


class ShippingService:

    @staticmethod
    def get_base_costs() -> dict[ShippingZone, int]:
        return {
            ShippingZone.NEAR: config.SHIPPING_COST_NEAR,
            ShippingZone.FAR: config.SHIPPING_COST_FAR,
            ShippingZone.PICKUP: 0,
        }

    @staticmethod
    def resolve_zone(zone: ShippingZone | str) -> ShippingZone | None:
        if isinstance(zone, ShippingZone):
            return zone
        try:
            return ShippingZone(str(zone).strip().lower())
        except ValueError:
            return None

    @staticmethod
    def calculate_cost(zone: ShippingZone | str, weight_grams: int) -> int:
        """
        Shipping cost in minor currency units.

        Weight above SHIPPING_WEIGHT_THRESHOLD_GRAMS adds
        SHIPPING_COST_PER_EXTRA_KG per additional kilogram, rounded up to a
        whole kilogram. Pickup is always free. An unknown zone is charged
        like the most expensive zone.

        Example:
            >>> ShippingService.calculate_cost(ShippingZone.NEAR, 2500)
            90000  # 50000 + 2 extra kg * 20000
        """
        base_costs = ShippingService.get_base_costs()
        resolved_zone = ShippingService.resolve_zone(zone)

        if resolved_zone == ShippingZone.PICKUP:
            return 0

        if resolved_zone is None:
            base_cost = max(base_costs.values())
            logger.warning(f"Unknown shipping zone '{zone}', charging highest zone cost {base_cost}")
        else:
            base_cost = base_costs[resolved_zone]

        extra_grams = max(0, weight_grams - config.SHIPPING_WEIGHT_THRESHOLD_GRAMS)
        extra_kg = math.ceil(extra_grams / 1000)
        return base_cost + extra_kg * config.SHIPPING_COST_PER_EXTRA_KG

    @staticmethod
    def calculate_weight(lines: list[CartLineDTO]) -> int:
        return sum((line.product.weight or 0) * line.item.quantity for line in lines)
