from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from models.cart import Cart, CartDTO
from utils.permission_utils import Owner


class CartRepository:
    @staticmethod
    async def get_by_id(cart_id: str, session: AsyncSession) -> CartDTO | None:
        stmt = select(Cart).where(Cart.id == cart_id)
        cart = await session.execute(stmt)
        cart = cart.scalar()
        if cart is not None:
            return CartDTO.model_validate(cart, from_attributes=True)
        return None

    @staticmethod
    async def get_by_owner(owner: Owner, session: AsyncSession) -> CartDTO | None:
        # Signed-in users own their cart by user id even if they also carry a session token
        if owner.user_id:
            stmt = select(Cart).where(Cart.user_id == owner.user_id)
        else:
            stmt = select(Cart).where(Cart.session_token == owner.session_token)
        cart = await session.execute(stmt)
        cart = cart.scalar()
        if cart is not None:
            return CartDTO.model_validate(cart, from_attributes=True)
        return None

    @staticmethod
    async def get_or_create(owner: Owner, session: AsyncSession) -> CartDTO:
        cart = await CartRepository.get_by_owner(owner, session)
        if cart is not None:
            return cart
        if owner.user_id:
            cart = Cart(user_id=owner.user_id)
        else:
            cart = Cart(session_token=owner.session_token)
        session.add(cart)
        await session.flush()
        return CartDTO.model_validate(cart, from_attributes=True)

    @staticmethod
    async def touch(cart_id: str, session: AsyncSession) -> None:
        stmt = update(Cart).where(Cart.id == cart_id).values(updated_at=utcnow())
        await session.execute(stmt)
