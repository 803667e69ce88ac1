"""
Product service.

Catalog management, product purchases and daily income history.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product
from app.repositories.product_repository import ProductRepository
from app.services.base_service import BaseService, service_operation, transaction
from app.services.income.income_query import IncomeQueryManager
from app.services.income.purchase_handler import PurchaseHandler
from app.utils.exceptions import ValidationError
from app.utils.money import quantize_money, require_positive


class ProductService(BaseService):
    """
    Product catalog and purchase service.

    This is a facade that delegates to specialized handlers.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize product service and all sub-components."""
        super().__init__(session)

        self.product_repo = ProductRepository(session)
        self.purchase_handler = PurchaseHandler(session)
        self.income_query = IncomeQueryManager(session)

    async def list_products(self) -> list[Product]:
        """Get purchasable products ordered by price."""
        return await self.product_repo.get_active_products()

    @transaction
    async def create_product(
        self,
        name: str,
        price: Decimal,
        daily_income: Decimal,
        total_days: int,
    ) -> Product:
        """
        Add a product to the catalog.

        The return rate is derived as total income over price, in percent.

        Args:
            name: Product name
            price: Purchase price
            daily_income: Income paid per day
            total_days: Number of daily payouts

        Returns:
            Created product

        Raises:
            ValidationError: If any value is missing or non-positive
        """
        if not name:
            raise ValidationError("Product name is required")
        price = require_positive(price, "price")
        daily_income = require_positive(daily_income, "daily_income")
        if total_days <= 0:
            raise ValidationError("total_days must be positive")

        return_rate = quantize_money(daily_income * total_days * 100 / price)
        product = await self.product_repo.create(
            name=name,
            price=price,
            daily_income=daily_income,
            total_days=total_days,
            return_rate=return_rate,
            is_active=True,
        )
        self.logger.info(
            "Product created",
            extra={"product_id": product.id, "price": str(price)},
        )
        return product

    @service_operation
    async def purchase_product(
        self,
        user_id: int,
        product_id: int,
        now: datetime | None = None,
    ):
        """
        Buy a product from the user's balance.

        Debit, holding snapshot, referral activation and commissions are
        committed together.

        Args:
            user_id: Buyer
            product_id: Product to buy
            now: Purchase time

        Returns:
            ServiceResult with PurchaseOutcome
        """
        return await self.purchase_handler.purchase(user_id, product_id, now=now)

    async def get_user_income_history(
        self, user_id: int, limit: int = 30
    ) -> dict:
        """
        Get active holdings and recent daily income payouts.

        Args:
            user_id: User ID
            limit: Maximum number of payout records

        Returns:
            Income history dict
        """
        return await self.income_query.get_user_income_history(user_id, limit)
