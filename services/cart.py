import logging

from sqlalchemy.ext.asyncio import AsyncSession

from exceptions.cart import CartItemNotFoundException, ProductUnavailableException
from models.cart import CartDTO, CartSummaryDTO
from models.cartItem import CartItemDTO, CartLineDTO
from models.coupon import AppliedCouponDTO
from repositories.cart import CartRepository
from repositories.cartItem import CartItemRepository
from repositories.product import ProductRepository
from services.coupon import CouponService
from utils.permission_utils import Owner, require_owner

logger = logging.getLogger(__name__)


class CartService:

    @staticmethod
    def calculate_subtotal(lines: list[CartLineDTO]) -> int:
        """Subtotal at the live product price; price_at_add is display only."""
        return sum(line.product.price * line.item.quantity for line in lines)

    @staticmethod
    async def get_cart_summary(owner: Owner, session: AsyncSession) -> CartSummaryDTO:
        """
        Get (or lazily create) the owner's cart with its priced lines.

        Args:
            owner: Signed-in user or guest session
            session: Database session

        Returns:
            CartSummaryDTO with lines, item count and subtotal
        """
        require_owner(owner)
        cart = await CartRepository.get_or_create(owner, session)
        await session.commit()
        return await CartService._summarize(cart, session)

    @staticmethod
    async def _summarize(cart: CartDTO, session: AsyncSession) -> CartSummaryDTO:
        lines = await CartItemRepository.get_lines(cart.id, session)
        return CartSummaryDTO(
            cart=cart,
            lines=lines,
            item_count=sum(line.item.quantity for line in lines),
            subtotal=CartService.calculate_subtotal(lines),
        )

    @staticmethod
    async def add_item(owner: Owner, product_id: str, quantity: int, session: AsyncSession) -> CartSummaryDTO:
        """
        Add a product to the owner's cart.

        Adding a product already in the cart merges the quantities. The live
        price is snapshotted as price_at_add. Stock is NOT checked or
        reserved here; checkout re-validates availability.

        Raises:
            ProductUnavailableException: product missing or inactive
        """
        require_owner(owner)
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1 (got: {quantity})")

        product = await ProductRepository.get_by_id(product_id, session)
        if product is None or not product.is_active:
            raise ProductUnavailableException(product_id)

        cart = await CartRepository.get_or_create(owner, session)
        existing_item = await CartItemRepository.get_by_product(cart.id, product_id, session)
        if existing_item is None:
            await CartItemRepository.create(CartItemDTO(
                cart_id=cart.id,
                product_id=product_id,
                quantity=quantity,
                price_at_add=product.price,
            ), session)
        else:
            await CartItemRepository.update_quantity(existing_item.id, existing_item.quantity + quantity, session)
        await CartRepository.touch(cart.id, session)
        await session.commit()

        logger.info(f"Cart {cart.id}: added {quantity} x product {product_id}")
        return await CartService._summarize(cart, session)

    @staticmethod
    async def _get_owned_item(owner: Owner, cart_item_id: int, session: AsyncSession) -> tuple[CartDTO, CartItemDTO]:
        require_owner(owner)
        cart = await CartRepository.get_by_owner(owner, session)
        cart_item = await CartItemRepository.get_by_id(cart_item_id, session)
        # Items of other carts are reported as missing
        if cart is None or cart_item is None or cart_item.cart_id != cart.id:
            raise CartItemNotFoundException(cart_item_id)
        return cart, cart_item

    @staticmethod
    async def update_quantity(owner: Owner, cart_item_id: int, quantity: int, session: AsyncSession) -> CartSummaryDTO:
        """Set the quantity of a cart item; 0 removes the item."""
        if quantity < 0:
            raise ValueError(f"Quantity must not be negative (got: {quantity})")
        cart, cart_item = await CartService._get_owned_item(owner, cart_item_id, session)
        if quantity == 0:
            await CartItemRepository.delete(cart_item.id, session)
        else:
            await CartItemRepository.update_quantity(cart_item.id, quantity, session)
        await CartRepository.touch(cart.id, session)
        await session.commit()
        return await CartService._summarize(cart, session)

    @staticmethod
    async def remove_item(owner: Owner, cart_item_id: int, session: AsyncSession) -> CartSummaryDTO:
        cart, cart_item = await CartService._get_owned_item(owner, cart_item_id, session)
        await CartItemRepository.delete(cart_item.id, session)
        await CartRepository.touch(cart.id, session)
        await session.commit()
        return await CartService._summarize(cart, session)

    @staticmethod
    async def clear(owner: Owner, session: AsyncSession) -> CartSummaryDTO:
        require_owner(owner)
        cart = await CartRepository.get_or_create(owner, session)
        removed = await CartItemRepository.delete_all(cart.id, session)
        await CartRepository.touch(cart.id, session)
        await session.commit()
        logger.info(f"Cart {cart.id}: cleared {removed} items")
        return await CartService._summarize(cart, session)

    @staticmethod
    async def preview_coupon(owner: Owner, code: str, session: AsyncSession) -> tuple[AppliedCouponDTO, int]:
        """
        Validate a coupon against the cart's current subtotal without consuming it.

        Returns:
            Tuple of (applied coupon with discount, subtotal it was computed for)
        """
        require_owner(owner)
        cart = await CartRepository.get_by_owner(owner, session)
        lines = await CartItemRepository.get_lines(cart.id, session) if cart is not None else []
        subtotal = CartService.calculate_subtotal(lines)
        applied_coupon = await CouponService.validate(code, subtotal, session)
        return applied_coupon, subtotal
