from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession

from models.product import Product, ProductDTO


class ProductRepository:
    """
    Products belong to the catalog. Only the stock counter is written here,
    always with a single conditional statement so concurrent orders can
    never drive it below zero.
    """

    @staticmethod
    async def get_by_id(product_id: str, session: AsyncSession) -> ProductDTO | None:
        stmt = select(Product).where(Product.id == product_id)
        product = await session.execute(stmt)
        product = product.scalar()
        if product is not None:
            return ProductDTO.model_validate(product, from_attributes=True)
        return None

    @staticmethod
    async def decrement_stock(product_id: str, quantity: int, allow_backorder: bool,
                              session: AsyncSession) -> bool:
        """
        Take quantity units of stock.

        Without backorder the update only matches while enough stock is left,
        so False means a concurrent order got there first. Backorder products
        floor at zero instead of failing.
        """
        if allow_backorder:
            stmt = (update(Product)
                    .where(Product.id == product_id)
                    .values(stock=case((Product.stock > quantity, Product.stock - quantity), else_=0)))
        else:
            stmt = (update(Product)
                    .where(Product.id == product_id, Product.stock >= quantity)
                    .values(stock=Product.stock - quantity))
        result = await session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1

    @staticmethod
    async def restore_stock(product_id: str, quantity: int, session: AsyncSession) -> bool:
        """Give back stock of a cancelled order. Untracked and deleted products are skipped."""
        stmt = (update(Product)
                .where(Product.id == product_id, Product.track_inventory == True)
                .values(stock=Product.stock + quantity)
                .execution_options(synchronize_session=False))
        result = await session.execute(stmt)
        return result.rowcount == 1
