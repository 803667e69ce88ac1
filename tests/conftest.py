"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_ledger.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BUSINESS_TIMEZONE", "Asia/Dhaka")
os.environ.setdefault("REFERRAL_SIGNUP_BONUS", "0")
os.environ.setdefault("COMMISSION_TIERS", "")
os.environ.setdefault("COMMISSION_DEPTH", "3")
os.environ.setdefault("WITHDRAWAL_FEE_PERCENT", "5")
os.environ.setdefault("MIN_WITHDRAWAL_AMOUNT", "200")
os.environ.setdefault("DAILY_INCOME_INTERVAL_HOURS", "24")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import itertools
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.models import (
    Base,
    HoldingStatus,
    PaymentMethod,
    Product,
    Referral,
    ReferralStatus,
    Transaction,
    User,
    UserProduct,
)


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine with the full schema, one per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")

    # pysqlite transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker):
    """Database session for one test."""
    async with session_maker() as session:
        yield session


class LedgerFactory:
    """Creates committed rows for integration tests."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._seq = itertools.count(1)

    async def _save(self, entity):
        self.session.add(entity)
        await self.session.commit()
        return entity

    async def user(
        self,
        balance: Decimal | str = "0",
        is_active: bool = True,
        email: str | None = None,
    ) -> User:
        n = next(self._seq)
        return await self._save(
            User(
                email=email or f"user{n}@example.com",
                referral_code=f"CODE{n:04d}",
                balance=Decimal(balance),
                is_active=is_active,
            )
        )

    async def edge(
        self,
        referrer: User,
        referred: User,
        status: ReferralStatus = ReferralStatus.ACTIVE,
    ) -> Referral:
        return await self._save(
            Referral(
                referrer_id=referrer.id,
                referrer_email=referrer.email,
                referred_user_id=referred.id,
                referred_email=referred.email,
                status=status.value,
                total_earned=Decimal("0"),
            )
        )

    async def active_referrals(self, referrer: User, count: int) -> list[User]:
        """Give a referrer ``count`` fresh users with active edges."""
        users = []
        for _ in range(count):
            referred = await self.user()
            await self.edge(referrer, referred)
            users.append(referred)
        return users

    async def product(
        self,
        price: Decimal | str = "1000",
        daily_income: Decimal | str = "50",
        total_days: int = 30,
        is_active: bool = True,
    ) -> Product:
        n = next(self._seq)
        return await self._save(
            Product(
                name=f"Product {n}",
                price=Decimal(price),
                daily_income=Decimal(daily_income),
                total_days=total_days,
                return_rate=Decimal("150"),
                is_active=is_active,
            )
        )

    async def holding(
        self,
        owner: User,
        purchase_date: datetime,
        daily_income: Decimal | str = "50",
        total_days: int = 3,
        remaining_days: int | None = None,
    ) -> UserProduct:
        return await self._save(
            UserProduct(
                user_id=owner.id,
                product_id=None,
                product_name="Starter",
                product_price=Decimal("1000"),
                daily_income=Decimal(daily_income),
                total_days=total_days,
                return_rate=Decimal("150"),
                status=HoldingStatus.ACTIVE.value,
                remaining_days=total_days if remaining_days is None else remaining_days,
                total_earned=Decimal("0"),
                purchase_date=purchase_date,
            )
        )

    async def payment_method(self, owner: User) -> PaymentMethod:
        return await self._save(
            PaymentMethod(
                user_id=owner.id,
                method="bkash",
                account_number="01700000000",
            )
        )


@pytest_asyncio.fixture
async def factory(db_session):
    """Row factory sharing the test session."""
    return LedgerFactory(db_session)


class DbReader:
    """Reloads committed state, bypassing stale identity-map values."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def user(self, user_id: int) -> User:
        return await self.session.get(User, user_id, populate_existing=True)

    async def balance(self, user_id: int) -> Decimal:
        result = await self.session.execute(
            select(User.balance).where(User.id == user_id)
        )
        return result.scalar_one()

    async def transaction(self, tx_id: int) -> Transaction | None:
        return await self.session.get(Transaction, tx_id, populate_existing=True)

    async def transactions(self, **filters) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .filter_by(**filters)
            .order_by(Transaction.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def referral(self, referred_user_id: int) -> Referral | None:
        stmt = (
            select(Referral)
            .where(Referral.referred_user_id == referred_user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def holding(self, holding_id: int) -> UserProduct:
        return await self.session.get(UserProduct, holding_id, populate_existing=True)


@pytest.fixture
def reader(db_session):
    """Reload helpers for asserting on committed state."""
    return DbReader(db_session)


@pytest.fixture
def now():
    """Fixed reference moment: 2026-01-02 06:00 UTC (12:00 in Dhaka)."""
    return datetime(2026, 1, 2, 6, 0, tzinfo=UTC)
