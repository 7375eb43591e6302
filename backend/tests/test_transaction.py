"""
Tests for the bounded-retry transaction wrapper.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError

from app.core.exceptions import NotRegistered, TransientStoreFailure
from app.db.transaction import is_transient, is_unique_violation, run_in_transaction


class FakeDriverError(Exception):
    def __init__(self, message: str = "driver error", sqlstate: str = None):
        super().__init__(message)
        self.sqlstate = sqlstate


def store_error(message: str = "driver error", sqlstate: str = None, cls=OperationalError):
    return cls("SELECT 1", None, FakeDriverError(message, sqlstate))


class FakeSession:
    """Stands in for both the session and its transaction context."""

    def __init__(self, log: list):
        self.log = log

    def begin(self):
        return self

    async def __aenter__(self):
        self.log.append("enter")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.log.append("rollback" if exc_type else "exit")
        return False


class FakeSessionFactory:
    def __init__(self):
        self.log: list = []
        self.sessions = 0

    def __call__(self):
        self.sessions += 1
        return FakeSession(self.log)


def failing_work(failures: list):
    """Raises each queued exception in turn, then returns 'done'."""
    calls = {"count": 0}

    async def work(session):
        calls["count"] += 1
        if failures:
            raise failures.pop(0)
        return "done"

    work.calls = calls
    return work


def test_serialization_failure_is_transient():
    assert is_transient(store_error(sqlstate="40001"))
    assert is_transient(store_error(sqlstate="40P01"))


def test_sqlite_busy_is_transient():
    assert is_transient(store_error("database is locked"))


def test_pool_timeout_is_transient():
    assert is_transient(PoolTimeoutError("QueuePool limit reached"))


def test_unique_violation_is_not_transient():
    assert not is_transient(store_error("duplicate key", sqlstate="23505", cls=IntegrityError))
    assert not is_transient(ValueError("nope"))


@pytest.mark.asyncio
async def test_retries_until_success():
    factory = FakeSessionFactory()
    work = failing_work([store_error(sqlstate="40001"), store_error("database is locked")])

    result = await run_in_transaction(factory, work, operation="test", max_attempts=3, base_delay=0)

    assert result == "done"
    assert work.calls["count"] == 3
    # Each attempt runs on a fresh session
    assert factory.sessions == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_transient_failure():
    factory = FakeSessionFactory()
    work = failing_work([store_error(sqlstate="40001") for _ in range(5)])

    with pytest.raises(TransientStoreFailure) as exc_info:
        await run_in_transaction(factory, work, operation="test", max_attempts=3, base_delay=0)

    assert work.calls["count"] == 3
    assert "SELECT" not in exc_info.value.message


@pytest.mark.asyncio
async def test_domain_errors_are_not_retried():
    factory = FakeSessionFactory()
    work = failing_work([NotRegistered()])

    with pytest.raises(NotRegistered):
        await run_in_transaction(factory, work, operation="test", max_attempts=3, base_delay=0)

    assert work.calls["count"] == 1
    assert "rollback" in factory.log


@pytest.mark.asyncio
async def test_non_transient_store_errors_propagate():
    factory = FakeSessionFactory()
    work = failing_work([store_error("syntax error", sqlstate="42601")])

    with pytest.raises(OperationalError):
        await run_in_transaction(factory, work, operation="test", max_attempts=3, base_delay=0)

    assert work.calls["count"] == 1


def test_unique_violation_detected():
    assert is_unique_violation(store_error("duplicate key value", sqlstate="23505", cls=IntegrityError))
    assert is_unique_violation(
        store_error("UNIQUE constraint failed: registrations.attendee_id, registrations.event_id", cls=IntegrityError)
    )


def test_foreign_key_violation_is_not_unique_violation():
    assert not is_unique_violation(store_error("violates foreign key constraint", sqlstate="23503", cls=IntegrityError))
    assert not is_unique_violation(store_error("FOREIGN KEY constraint failed", cls=IntegrityError))
