"""
Unit Tests for the database helpers
Tests for: placeholder normalization, error classification, retry
"""
import asyncio
import socket

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from nanoflows.core.database import (
    error_code,
    has_pending_writes,
    is_transient_error,
    normalize_query,
    query,
    retry_delay,
    run_with_retry,
)
from nanoflows.models import User, UserRole


class DriverError(Exception):
    """Stand-in for a DBAPI error carrying a SQLSTATE"""

    def __init__(self, sqlstate: str):
        super().__init__(f"driver error {sqlstate}")
        self.sqlstate = sqlstate


class TestNormalizeQuery:

    def test_dollar_placeholders(self):
        sql, params = normalize_query("SELECT * FROM users WHERE id = $1 AND role = $2", ["u1", "admin"])

        assert sql == "SELECT * FROM users WHERE id = :p1 AND role = :p2"
        assert params == {"p1": "u1", "p2": "admin"}

    def test_repeated_dollar_placeholder(self):
        sql, params = normalize_query("SELECT $1, $1, $2", [10, 20])

        assert sql == "SELECT :p1, :p1, :p2"
        assert params == {"p1": 10, "p2": 20}

    def test_question_mark_placeholders(self):
        sql, params = normalize_query("UPDATE notes SET content = ? WHERE id = ?", ["text", "n1"])

        assert sql == "UPDATE notes SET content = :p1 WHERE id = :p2"
        assert params == {"p1": "text", "p2": "n1"}

    def test_placeholders_inside_literals_untouched(self):
        sql, params = normalize_query("SELECT '$1 and ?' AS label, id FROM users WHERE id = $1", ["u1"])

        assert sql == "SELECT '$1 and ?' AS label, id FROM users WHERE id = :p1"
        assert params == {"p1": "u1"}

    def test_mapping_passed_through(self):
        sql, params = normalize_query("SELECT * FROM users WHERE id = :id", {"id": "u1"})

        assert sql == "SELECT * FROM users WHERE id = :id"
        assert params == {"id": "u1"}

    def test_no_params(self):
        assert normalize_query("SELECT 1") == ("SELECT 1", {})

    def test_missing_parameter_raises(self):
        with pytest.raises(ValueError):
            normalize_query("SELECT $2", ["only-one"])


class TestErrorClassification:

    def test_timeout_is_transient(self):
        assert error_code(asyncio.TimeoutError()) == "ETIMEDOUT"
        assert is_transient_error(TimeoutError())

    def test_dns_failure(self):
        assert error_code(socket.gaierror(-2, "Name or service not known")) == "ENOTFOUND"

    def test_connection_refused_errno(self):
        assert error_code(ConnectionRefusedError(111, "Connection refused")) == "ECONNREFUSED"

    def test_serialization_failure(self):
        assert is_transient_error(DriverError("40001"))
        assert is_transient_error(DriverError("40P01"))

    def test_connection_sqlstate_aliases(self):
        assert error_code(DriverError("08006")) == "ECONNRESET"
        assert error_code(DriverError("08001")) == "ECONNREFUSED"

    def test_unique_violation_not_transient(self):
        assert error_code(DriverError("23505")) == "23505"
        assert not is_transient_error(DriverError("23505"))

    def test_wrapped_driver_error(self):
        wrapped = OperationalError("SELECT 1", {}, DriverError("40001"))
        assert error_code(wrapped) == "40001"

    def test_error_found_through_cause_chain(self):
        try:
            try:
                raise ConnectionResetError(104, "Connection reset by peer")
            except ConnectionResetError as inner:
                raise RuntimeError("query failed") from inner
        except RuntimeError as outer:
            assert error_code(outer) == "ECONNRESET"

    def test_plain_error_has_no_code(self):
        assert error_code(ValueError("bad input")) is None
        assert not is_transient_error(ValueError("bad input"))


class TestRetry:

    def test_retry_delay_doubles_and_caps(self):
        assert retry_delay(0, base_delay=1.0, max_delay=10.0) == 1.0
        assert retry_delay(1, base_delay=1.0, max_delay=10.0) == 2.0
        assert retry_delay(2, base_delay=1.0, max_delay=10.0) == 4.0
        assert retry_delay(5, base_delay=1.0, max_delay=10.0) == 10.0

    @pytest.mark.asyncio
    async def test_transient_error_retried_until_success(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise DriverError("40001")
            return "ok"

        assert await run_with_retry(flaky, retries=2) == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        calls = []

        async def always_failing():
            calls.append(1)
            raise DriverError("08006")

        with pytest.raises(DriverError):
            await run_with_retry(always_failing, retries=2)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_non_transient_error_not_retried(self):
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError("syntax error")

        with pytest.raises(ValueError):
            await run_with_retry(broken, retries=3)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_reraised_error_is_the_original(self):
        original = DriverError("40P01")

        async def deadlocked():
            raise original

        with pytest.raises(DriverError) as exc_info:
            await run_with_retry(deadlocked, retries=0)
        assert exc_info.value is original


def new_user() -> User:
    return User(email='retry@example.com', hashed_password='x', name='Retry', role=UserRole.USER)


class FailsOnce:
    """Operation that hits a dropped connection on its first call"""

    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls == 1:
            raise DriverError("08006")
        return "ok"


class TestRetryInsideTransaction:

    @pytest.mark.asyncio
    async def test_clean_session_is_retried(self, db_session):
        operation = FailsOnce()

        assert not has_pending_writes(db_session)
        assert await run_with_retry(operation, db=db_session, retries=2) == "ok"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_flushed_writes_are_not_rolled_back(self, db_session):
        user = new_user()
        db_session.add(user)
        await db_session.flush()
        operation = FailsOnce()

        assert has_pending_writes(db_session)
        with pytest.raises(DriverError):
            await run_with_retry(operation, db=db_session, retries=2)

        assert operation.calls == 1
        assert user in db_session
        await db_session.commit()
        assert await db_session.get(User, user.id) is user

    @pytest.mark.asyncio
    async def test_unflushed_changes_are_not_rolled_back(self, db_session):
        user = new_user()
        db_session.add(user)
        operation = FailsOnce()

        with pytest.raises(DriverError):
            await run_with_retry(operation, db=db_session, retries=2)

        assert operation.calls == 1
        assert user in db_session.new

    @pytest.mark.asyncio
    async def test_bulk_update_counts_as_a_write(self, db_session, test_user):
        await db_session.execute(update(User).where(User.id == test_user.id).values(name='Renamed'))

        assert has_pending_writes(db_session)

    @pytest.mark.asyncio
    async def test_raw_sql_write_counts_as_a_write(self, db_session, test_user):
        await query(db_session, "UPDATE users SET name = $1 WHERE id = $2", ['Renamed', test_user.id])

        assert has_pending_writes(db_session)

    @pytest.mark.asyncio
    async def test_commit_and_rollback_end_the_transaction(self, db_session):
        db_session.add(new_user())
        await db_session.commit()
        assert not has_pending_writes(db_session)

        await db_session.execute(update(User).values(name='Renamed'))
        await db_session.rollback()
        assert not has_pending_writes(db_session)
