"""
Persisted lease lock.

Cross-process single-flight guard for background jobs. A lease row is
keyed by job name; a holder owns it until ``expires_at``. Stale leases
from crashed workers expire on their own.
"""

import os
import socket
import uuid
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job_lease import JobLease
from app.utils.datetime_utils import ensure_utc, utc_now


def default_holder_id() -> str:
    """Build a holder id unique to this process and call."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class DatabaseLease:
    """
    Lease stored in the ``job_leases`` table.

    Usage:
        lease = DatabaseLease(session, "daily_income", ttl_seconds=900)
        if await lease.acquire():
            try:
                ...
            finally:
                await lease.release()

    acquire() and release() commit the session they are given.
    """

    def __init__(
        self,
        session: AsyncSession,
        name: str,
        ttl_seconds: int,
        holder: str | None = None,
    ) -> None:
        """
        Initialize lease.

        Args:
            session: Database session
            name: Lease (job) name
            ttl_seconds: Lease lifetime
            holder: Holder id (defaults to host:pid:random)
        """
        self.session = session
        self.name = name
        self.ttl = timedelta(seconds=ttl_seconds)
        self.holder = holder or default_holder_id()
        self.acquired = False

    async def acquire(self, now: datetime | None = None) -> bool:
        """
        Take the lease if it is free or expired.

        Args:
            now: Current time

        Returns:
            True if this holder now owns the lease
        """
        now = now or utc_now()
        stmt = (
            select(JobLease)
            .where(JobLease.name == self.name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        lease = result.scalar_one_or_none()

        if lease is None:
            lease = JobLease(name=self.name)
            self.session.add(lease)
        elif (
            lease.holder
            and lease.holder != self.holder
            and lease.expires_at is not None
            and ensure_utc(lease.expires_at) > now
        ):
            await self.session.rollback()
            logger.info(
                f"Lease {self.name} held by {lease.holder}, skipping",
                extra={"lease": self.name, "holder": lease.holder},
            )
            return False
        elif lease.holder and lease.holder != self.holder:
            logger.warning(
                f"Lease {self.name} expired, taking over from {lease.holder}",
                extra={"lease": self.name, "previous_holder": lease.holder},
            )

        lease.holder = self.holder
        lease.acquired_at = now
        lease.expires_at = now + self.ttl

        try:
            await self.session.commit()
        except IntegrityError:
            # Another worker inserted the row first
            await self.session.rollback()
            logger.info(
                f"Lease {self.name} taken concurrently, skipping",
                extra={"lease": self.name},
            )
            return False

        self.acquired = True
        return True

    async def release(self) -> None:
        """Give the lease back if this holder still owns it."""
        if not self.acquired:
            return

        stmt = (
            select(JobLease)
            .where(JobLease.name == self.name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        lease = result.scalar_one_or_none()
        if lease is not None and lease.holder == self.holder:
            lease.holder = None
            lease.expires_at = None
        await self.session.commit()
        self.acquired = False
