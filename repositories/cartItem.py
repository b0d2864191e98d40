from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from models.cartItem import CartItem, CartItemDTO, CartLineDTO
from models.product import Product, ProductDTO


class CartItemRepository:
    @staticmethod
    async def create(cart_item_dto: CartItemDTO, session: AsyncSession) -> CartItemDTO:
        cart_item = CartItem(**cart_item_dto.model_dump(exclude_none=True))
        session.add(cart_item)
        await session.flush()
        return CartItemDTO.model_validate(cart_item, from_attributes=True)

    @staticmethod
    async def get_by_id(cart_item_id: int, session: AsyncSession) -> CartItemDTO | None:
        stmt = select(CartItem).where(CartItem.id == cart_item_id)
        cart_item = await session.execute(stmt)
        cart_item = cart_item.scalar()
        if cart_item is not None:
            return CartItemDTO.model_validate(cart_item, from_attributes=True)
        return None

    @staticmethod
    async def get_by_product(cart_id: str, product_id: str, session: AsyncSession) -> CartItemDTO | None:
        stmt = select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        cart_item = await session.execute(stmt)
        cart_item = cart_item.scalar()
        if cart_item is not None:
            return CartItemDTO.model_validate(cart_item, from_attributes=True)
        return None

    @staticmethod
    async def get_lines(cart_id: str, session: AsyncSession) -> list[CartLineDTO]:
        """
        Cart items joined with the live product rows, oldest item first.

        Args:
            cart_id: ID of the cart
            session: Database session

        Returns:
            List of CartLineDTO (empty for an empty cart)
        """
        stmt = (select(CartItem, Product)
                .join(Product, CartItem.product_id == Product.id)
                .where(CartItem.cart_id == cart_id)
                .order_by(CartItem.id))
        rows = await session.execute(stmt)
        return [
            CartLineDTO(
                item=CartItemDTO.model_validate(cart_item, from_attributes=True),
                product=ProductDTO.model_validate(product, from_attributes=True),
            )
            for cart_item, product in rows.all()
        ]

    @staticmethod
    async def update_quantity(cart_item_id: int, quantity: int, session: AsyncSession) -> None:
        stmt = update(CartItem).where(CartItem.id == cart_item_id).values(quantity=quantity)
        await session.execute(stmt)

    @staticmethod
    async def delete(cart_item_id: int, session: AsyncSession) -> None:
        stmt = delete(CartItem).where(CartItem.id == cart_item_id)
        await session.execute(stmt)

    @staticmethod
    async def delete_all(cart_id: str, session: AsyncSession) -> int:
        stmt = delete(CartItem).where(CartItem.cart_id == cart_id)
        result = await session.execute(stmt)
        return result.rowcount

    @staticmethod
    async def delete_checked_out(cart_items: list[CartItemDTO], session: AsyncSession) -> int:
        """
        Remove exactly the items that were priced for an order.

        Each delete matches on id AND quantity, so an item added, removed or
        re-quantified since the cart was read is not counted. Callers compare
        the result against len(cart_items).
        """
        deleted = 0
        for cart_item in cart_items:
            stmt = delete(CartItem).where(
                CartItem.id == cart_item.id,
                CartItem.cart_id == cart_item.cart_id,
                CartItem.quantity == cart_item.quantity,
            )
            result = await session.execute(stmt)
            deleted += result.rowcount
        return deleted
