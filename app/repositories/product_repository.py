"""
Product repositories.

Data access layer for Product and UserProduct models.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import HoldingStatus
from app.models.product import Product
from app.models.user_product import UserProduct
from app.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Product catalog repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize product repository."""
        super().__init__(Product, session)

    async def get_active_products(self) -> list[Product]:
        """Get purchasable products ordered by price."""
        stmt = (
            select(Product)
            .where(Product.is_active.is_(True))
            .order_by(Product.price.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class UserProductRepository(BaseRepository[UserProduct]):
    """User holdings repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user product repository."""
        super().__init__(UserProduct, session)

    async def get_payable_ids(self) -> list[int]:
        """
        Get IDs of holdings that may still pay income.

        Returns:
            IDs of active holdings with remaining days, oldest first
        """
        stmt = (
            select(UserProduct.id)
            .where(
                UserProduct.status == HoldingStatus.ACTIVE.value,
                UserProduct.remaining_days > 0,
            )
            .order_by(UserProduct.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def lock_payable(self, holding_id: int) -> UserProduct | None:
        """
        Re-read a holding under lock, skipping rows locked by another worker.

        Args:
            holding_id: Holding ID

        Returns:
            Locked holding if still active with remaining days, otherwise None
        """
        stmt = (
            select(UserProduct)
            .where(
                UserProduct.id == holding_id,
                UserProduct.status == HoldingStatus.ACTIVE.value,
                UserProduct.remaining_days > 0,
            )
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_for_user(self, user_id: int) -> list[UserProduct]:
        """Get a user's active holdings, newest first."""
        stmt = (
            select(UserProduct)
            .where(
                UserProduct.user_id == user_id,
                UserProduct.status == HoldingStatus.ACTIVE.value,
            )
            .order_by(UserProduct.purchase_date.desc(), UserProduct.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def has_any_holding(self, user_id: int) -> bool:
        """Check whether the user ever bought a product."""
        return await self.exists(user_id=user_id)

    async def has_active_holding(self, user_id: int, product_id: int) -> bool:
        """Check whether the user already holds an active unit of a product."""
        return await self.exists(
            user_id=user_id,
            product_id=product_id,
            status=HoldingStatus.ACTIVE.value,
        )
