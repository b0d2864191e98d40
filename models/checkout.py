from pydantic import BaseModel, Field

from enums.shipping_zone import ShippingZone
from models.cartItem import CartLineDTO
from models.coupon import AppliedCouponDTO
from models.order import ShippingAddressDTO


class CheckoutRequestDTO(BaseModel):
    cart_id: str = Field(..., min_length=1)
    shipping_address: ShippingAddressDTO
    # Kept as a plain string: unknown zones are charged, not rejected
    shipping_zone: str = Field(..., min_length=1, max_length=20)
    coupon_code: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=500)


class OrderQuoteDTO(BaseModel):
    """Everything checkout computed from the cart before writing anything."""
    cart_id: str
    lines: list[CartLineDTO]
    shipping_zone: ShippingZone
    weight: int
    subtotal: int
    shipping_cost: int
    discount: int
    total: int
    applied_coupon: AppliedCouponDTO | None = None


class CheckoutResultDTO(BaseModel):
    order_id: str
    order_number: str
    total: int
    preference_id: str | None = None
    redirect_url: str | None = None
