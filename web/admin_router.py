"""
Admin order management API.

Every endpoint checks the admin capability (ADMIN_USER_IDS) of the caller
given by X-User-Id; non-admins get 403.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from enums.order_status import OrderStatus
from models.order import OrderWithItemsDTO, OrderPageDTO
from services.order import OrderService
from utils.permission_utils import Owner
from web.dependencies import get_owner

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    tracking_number: str | None = Field(None, max_length=100)
    tracking_url: str | None = Field(None, max_length=500)
    internal_notes: str | None = Field(None, max_length=2000)


@admin_router.get("/orders", response_model=OrderPageDTO)
async def admin_list_orders(page: int = Query(1, ge=1),
                            limit: int = Query(20, ge=1, le=100),
                            order_status: OrderStatus | None = Query(None, alias="status"),
                            user_id: str | None = Query(None, max_length=64),
                            start_date: datetime | None = Query(None),
                            end_date: datetime | None = Query(None),
                            owner: Owner = Depends(get_owner)):
    return await OrderService.admin_list_orders(
        owner.user_id, page, limit, order_status, user_id, start_date, end_date
    )


@admin_router.get("/orders/{order_id}", response_model=OrderWithItemsDTO)
async def admin_get_order(order_id: str, owner: Owner = Depends(get_owner)):
    return await OrderService.admin_get_order(owner.user_id, order_id)


@admin_router.patch("/orders/{order_id}/status", response_model=OrderWithItemsDTO)
async def admin_update_order_status(order_id: str, payload: StatusUpdateRequest, owner: Owner = Depends(get_owner)):
    """
    Move an order along the state machine. Sending the current status with
    tracking data or notes only updates those fields.

    Returns:
        200: updated order
        403: caller is not an admin
        404: order not found
        409: transition not allowed
    """
    return await OrderService.admin_update_status(
        order_id, owner.user_id, payload.status,
        tracking_number=payload.tracking_number,
        tracking_url=payload.tracking_url,
        internal_notes=payload.internal_notes,
    )
