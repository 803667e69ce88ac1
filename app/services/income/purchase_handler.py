"""
Product purchase module.

Debits the product price, snapshots the product terms into a new holding
and runs referral activation and commissions for the purchase.
"""

from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    CommissionEventType,
    HoldingStatus,
    TransactionType,
)
from app.models.transaction import Transaction
from app.models.user_product import UserProduct
from app.repositories.product_repository import (
    ProductRepository,
    UserProductRepository,
)
from app.repositories.user_repository import UserRepository
from app.services.ledger.ledger_service import LedgerService
from app.services.referral.chain_manager import ReferralChainManager
from app.services.referral.commission_engine import (
    CommissionEngine,
    CommissionResult,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import NotFoundError, ValidationError


@dataclass
class PurchaseOutcome:
    """Result of a product purchase."""

    holding: UserProduct
    transaction: Transaction
    commission: CommissionResult


class PurchaseHandler:
    """Handles product purchases."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize purchase handler."""
        self.session = session
        self.product_repo = ProductRepository(session)
        self.holding_repo = UserProductRepository(session)
        self.user_repo = UserRepository(session)
        self.ledger = LedgerService(session)
        self.chain_manager = ReferralChainManager(session)
        self.commission_engine = CommissionEngine(session)

    async def purchase(
        self,
        user_id: int,
        product_id: int,
        now: datetime | None = None,
    ) -> PurchaseOutcome:
        """
        Buy a product from the user's balance.

        Args:
            user_id: Buyer
            product_id: Product to buy
            now: Purchase time

        Returns:
            PurchaseOutcome

        Raises:
            NotFoundError: If user or product does not exist
            ValidationError: If the product is inactive or already held
            InsufficientBalanceError: If the balance is below the price
        """
        now = now or utc_now()

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        if not user.is_active:
            raise ValidationError("Account is disabled")

        product = await self.product_repo.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
        if not product.is_active:
            raise ValidationError("Product is not available")

        if await self.holding_repo.has_active_holding(user_id, product_id):
            raise ValidationError("You already own this product")

        tx = await self.ledger.post_debit(
            user_id,
            product.price,
            TransactionType.PURCHASE.value,
            occurred_at=now,
            description=f"Purchased {product.name}",
        )

        holding = await self.holding_repo.create(
            user_id=user_id,
            product_id=product.id,
            product_name=product.name,
            product_price=product.price,
            daily_income=product.daily_income,
            total_days=product.total_days,
            return_rate=product.return_rate,
            status=HoldingStatus.ACTIVE.value,
            remaining_days=product.total_days,
            purchase_date=now,
        )
        tx.user_product_id = holding.id

        await self.chain_manager.activate_edge(
            user_id, product.price, CommissionEventType.PURCHASE, now=now
        )
        commission = await self.commission_engine.distribute(
            user_id,
            product.price,
            CommissionEventType.PURCHASE,
            source_transaction_id=tx.id,
            now=now,
        )
        await self.session.flush()

        logger.info(
            "Product purchased",
            extra={
                "user_id": user_id,
                "product_id": product.id,
                "holding_id": holding.id,
                "price": str(product.price),
                "commission_total": str(commission.total_paid),
            },
        )
        return PurchaseOutcome(holding=holding, transaction=tx, commission=commission)
