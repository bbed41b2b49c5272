"""Database Session Manager — error mapping and retry of conflicting transactions."""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from housing_draw.core.errors import ConcurrencyError, DatabaseError
from housing_draw.infrastructure.database import DatabaseSessionManager, is_retryable


class _Orig(Exception):
    def __init__(self, sqlstate):
        super().__init__("conflict")
        self.sqlstate = sqlstate


@pytest.fixture
async def manager():
    m = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    yield m
    await m.dispose()


def test_serialization_failure_is_retryable():
    exc = OperationalError("UPDATE groups", {}, _Orig("40001"))
    assert is_retryable(exc)


def test_deadlock_is_retryable():
    exc = OperationalError("UPDATE groups", {}, _Orig("40P01"))
    assert is_retryable(exc)


def test_other_operational_errors_are_not_retryable():
    exc = OperationalError("SELECT 1", {}, _Orig("08006"))
    assert not is_retryable(exc)


async def test_health_check_succeeds(manager):
    assert await manager.health_check() is True


async def test_run_in_transaction_retries_conflicts(manager):
    calls = []

    async def operation(db):
        calls.append(db)
        if len(calls) < 3:
            raise ConcurrencyError("conflict")
        return (await db.execute(text("SELECT 1"))).scalar_one()

    assert await manager.run_in_transaction(operation, max_attempts=3) == 1
    assert len(calls) == 3
    assert calls[0] is not calls[2]


async def test_run_in_transaction_gives_up_after_max_attempts(manager):
    attempts = []

    async def operation(db):
        attempts.append(1)
        raise ConcurrencyError("conflict")

    with pytest.raises(ConcurrencyError):
        await manager.run_in_transaction(operation, max_attempts=2)
    assert len(attempts) == 2


async def test_serialization_error_inside_session_becomes_concurrency_error(manager):
    with pytest.raises(ConcurrencyError):
        async with manager.session():
            raise OperationalError("UPDATE groups", {}, _Orig("40001"))


async def test_other_sqlalchemy_errors_become_database_error(manager):
    with pytest.raises(DatabaseError):
        async with manager.session() as db:
            await db.execute(text("SELECT * FROM no_such_table"))
