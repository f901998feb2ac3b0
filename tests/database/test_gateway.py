import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from app.core.exceptions import ConnectionFailureException, ConstraintViolationException, SyntaxFailureException
from app.database.gateway import is_retryable
from app.models.user import User
from app.utils.clock import utcnow


def _deadlock():
    return OperationalError("UPDATE \"Room\" ...", {}, Exception("deadlock detected"))


@pytest.mark.asyncio
async def test_insert_returns_id_and_stamps_audit_fields(gateway):
    before = utcnow()
    user_id = await gateway.run_in_transaction(
        lambda: gateway.insert(User, {"device_id": "A" * 20, "display_name": "Ada"}, actor_id=None)
    )
    assert isinstance(user_id, int)

    row = await gateway.fetch_one(select(User.updated_at, User.is_deleted).where(User.user_id == user_id))
    assert row.updated_at >= before
    assert row.is_deleted is False

@pytest.mark.asyncio
async def test_update_reports_affected_rows_and_actor(gateway, test_user):
    affected = await gateway.run_in_transaction(
        lambda: gateway.update(User, User.user_id == test_user.user_id, values={"display_name": "New"}, actor_id=42)
    )
    assert affected == 1

    row = await gateway.fetch_one(select(User.display_name, User.updated_by).where(User.user_id == test_user.user_id))
    assert row.display_name == "New"
    assert row.updated_by == 42

@pytest.mark.asyncio
async def test_query_returns_rows(gateway, test_user):
    result = await gateway.query(select(User.user_id, User.display_name))
    assert result.scalars() == [test_user.user_id]
    assert result.first().display_name == "Test User"

@pytest.mark.asyncio
async def test_orm_select_and_core_update_share_query(gateway, test_user):
    assert await gateway.fetch_all(select(User.user_id).where(User.user_id == -1)) == []

    result = await gateway.query(select(User).where(User.user_id == test_user.user_id))
    assert result.first()[0].display_name == "Test User"

    result = await gateway.query(
        User.__table__.update().where(User.user_id == test_user.user_id).values(display_name="Renamed")
    )
    assert result.rows == []
    assert result.affected_rows == 1

@pytest.mark.asyncio
async def test_unique_violation_is_constraint_violation(gateway, test_user):
    with pytest.raises(ConstraintViolationException):
        await gateway.run_in_transaction(
            lambda: gateway.insert(User, {"device_id": test_user.device_id, "display_name": "Copy"}, actor_id=None)
        )

@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(gateway):
    async def work():
        await gateway.insert(User, {"device_id": "B" * 20, "display_name": "Temp"}, actor_id=None)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await gateway.run_in_transaction(work)

    assert await gateway.fetch_one(select(User.user_id).where(User.device_id == "B" * 20)) is None

@pytest.mark.asyncio
async def test_deadlock_is_retried(gateway):
    attempts = []

    async def work():
        attempts.append(1)
        if len(attempts) < 3:
            raise _deadlock()
        return "done"

    assert await gateway.run_in_transaction(work) == "done"
    assert len(attempts) == 3

@pytest.mark.asyncio
async def test_deadlock_gives_up_after_max_attempts(gateway):
    attempts = []

    async def work():
        attempts.append(1)
        raise _deadlock()

    with pytest.raises(ConnectionFailureException):
        await gateway.run_in_transaction(work)
    assert len(attempts) == gateway.max_attempts

@pytest.mark.asyncio
async def test_nested_transaction_joins_outer(gateway):
    depths = []

    async def inner():
        depths.append(gateway.in_transaction)
        return 1

    async def outer():
        depths.append(gateway.in_transaction)
        return await gateway.run_in_transaction(inner) + 1

    assert await gateway.run_in_transaction(outer) == 2
    assert depths == [True, True]
    assert not gateway.in_transaction

@pytest.mark.asyncio
async def test_malformed_statement_is_syntax_failure(gateway):
    with pytest.raises(SyntaxFailureException):
        await gateway.query(text("SELEC nothing"))

def test_is_retryable_checks_sqlstate():
    class PgError(Exception):
        sqlstate = "40P01"

    assert is_retryable(OperationalError("stmt", {}, PgError("x")))
    assert not is_retryable(OperationalError("stmt", {}, Exception("disk I/O error")))
    assert not is_retryable(RuntimeError("deadlock"))

@pytest.mark.asyncio
async def test_pool_timeout_is_connection_failure(gateway, monkeypatch):
    async def exhausted(*args, **kwargs):
        raise PoolTimeoutError("QueuePool limit of size 10 overflow 5 reached")

    monkeypatch.setattr(gateway.session, "execute", exhausted)
    with pytest.raises(ConnectionFailureException):
        await gateway.fetch_one(select(User.user_id))
    with pytest.raises(ConnectionFailureException):
        await gateway.run_in_transaction(lambda: gateway.fetch_all(select(User.user_id)))
