"""
Unit tests for service decorators.

Tests commit/rollback handling and ServiceResult mapping of
service_operation and transaction.
"""

import pytest

from app.services.base_service import (
    INTERNAL_ERROR_CODE,
    BaseService,
    ServiceResult,
    service_operation,
    transaction,
)
from app.utils.exceptions import InsufficientBalanceError, NotFoundError


class DummyService(BaseService):
    """Service exercising the decorators."""

    @service_operation
    async def succeed(self, value):
        return value * 2

    @service_operation
    async def reject(self):
        raise InsufficientBalanceError("Insufficient balance: available 1, required 2")

    @service_operation
    async def crash(self):
        raise RuntimeError("connection reset by peer")

    @transaction
    async def write(self):
        return "written"

    @transaction
    async def write_and_fail(self):
        raise NotFoundError("User 7 not found")


class TestServiceOperation:
    """Test service_operation decorator."""

    @pytest.mark.asyncio
    async def test_success_commits(self, mock_session):
        """Successful operations commit and wrap the value."""
        result = await DummyService(mock_session).succeed(21)

        assert result == ServiceResult(success=True, data=42)
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_domain_error_rolls_back(self, mock_session):
        """Domain errors become failed results with their code."""
        result = await DummyService(mock_session).reject()

        assert result.success is False
        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert "Insufficient balance" in result.error
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_hidden(self, mock_session):
        """Unexpected errors roll back without leaking details."""
        result = await DummyService(mock_session).crash()

        assert result.success is False
        assert result.error_code == INTERNAL_ERROR_CODE
        assert "connection reset" not in result.error
        mock_session.rollback.assert_awaited_once()


class TestTransactionDecorator:
    """Test transaction decorator."""

    @pytest.mark.asyncio
    async def test_commit_on_success(self, mock_session):
        """Return value passes through after commit."""
        assert await DummyService(mock_session).write() == "written"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rollback_and_reraise(self, mock_session):
        """Errors roll back and propagate."""
        with pytest.raises(NotFoundError):
            await DummyService(mock_session).write_and_fail()
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
