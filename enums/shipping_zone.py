from enum import Enum


class ShippingZone(Enum):
    NEAR = "near"        # Metropolitan area around the warehouse
    FAR = "far"          # Rest of the country
    PICKUP = "pickup"    # Customer picks up at the store (free)
