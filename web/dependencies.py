"""
FastAPI dependencies shared by the routers.

Identity comes from the upstream identity/session provider as opaque
headers; tests override the gateway and dispatcher dependencies.
"""

from typing import AsyncIterator

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from db import get_db_session
from services.notification import NotificationDispatcher
from services.payment_gateway import PaymentGatewayClient
from utils.permission_utils import Owner


async def get_owner(x_user_id: str | None = Header(None, max_length=64),
                    x_session_token: str | None = Header(None, max_length=128)) -> Owner:
    return Owner(user_id=x_user_id or None, session_token=x_session_token or None)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_db_session() as session:
        yield session


def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient()


def get_dispatcher(request: Request) -> NotificationDispatcher | None:
    return getattr(request.app.state, "dispatcher", None)
