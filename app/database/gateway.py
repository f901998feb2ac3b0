# app/database/gateway.py
import functools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy import Insert, insert, update
from sqlalchemy.engine import CursorResult, Row
from sqlalchemy.exc import (
    CompileError,
    DBAPIError,
    IntegrityError,
    OperationalError,
    ProgrammingError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConnectionFailureException,
    ConstraintViolationException,
    SyntaxFailureException,
)
from app.core.log_config import logger
from app.utils.clock import utcnow

T = TypeVar("T")

# PostgreSQL deadlock_detected / serialization_failure
RETRYABLE_SQLSTATES = {"40P01", "40001"}


@dataclass
class QueryResult:
    """Outcome of a single statement: a row set, or counters for a mutation."""
    rows: List[Row] = field(default_factory=list)
    affected_rows: int = 0
    insert_id: Optional[int] = None

    def first(self) -> Optional[Row]:
        return self.rows[0] if self.rows else None

    def scalars(self) -> list:
        return [row[0] for row in self.rows]


def _is_syntax_error(exc: BaseException) -> bool:
    # SQLite reports malformed SQL as an OperationalError.
    return isinstance(exc, OperationalError) and "syntax error" in str(exc).lower()


def is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    return "deadlock" in str(orig or exc).lower()


class DatabaseGateway:
    """
    Single entry point for SQL execution.

    Statements are SQLAlchemy constructs, so every value is sent as a bound
    parameter. Mutations go through ``insert``/``update``/``soft_delete`` which
    stamp the audit columns from the acting user.
    """

    def __init__(self, session: AsyncSession, max_attempts: int = settings.db_deadlock_retries):
        self.session = session
        self.max_attempts = max_attempts
        self._depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    async def query(self, statement) -> QueryResult:
        """
        Execute a statement and return its rows, or the affected-row count and
        generated key for mutations.

        Raises:
            ConstraintViolationException: unique / foreign-key violation
            ConnectionFailureException: pool timeout or lost connection
            SyntaxFailureException: statement rejected by the database
        """
        try:
            result = await self.session.execute(statement)
        except Exception as e:
            self._translate(e)
            raise

        # ORM selects come back as a buffered result without cursor metadata.
        if not isinstance(result, CursorResult) or result.returns_rows:
            return QueryResult(rows=list(result.all()))

        insert_id = None
        if isinstance(statement, Insert) and result.inserted_primary_key:
            insert_id = result.inserted_primary_key[0]
        return QueryResult(affected_rows=result.rowcount, insert_id=insert_id)

    async def fetch_one(self, statement) -> Optional[Row]:
        return (await self.query(statement)).first()

    async def fetch_all(self, statement) -> List[Row]:
        return (await self.query(statement)).rows

    async def insert(self, model, values: dict, actor_id: Optional[int]) -> int:
        """Insert one row and return its generated primary key."""
        stamped = {
            **values,
            "is_deleted": False,
            "updated_by": actor_id,
            "updated_at": utcnow(),
        }
        result = await self.query(insert(model.__table__).values(**stamped))
        return result.insert_id

    async def update(self, model, *where, values: dict, actor_id: int) -> int:
        """Update matching rows and return how many were affected."""
        stamped = {**values, "updated_by": actor_id, "updated_at": utcnow()}
        result = await self.query(update(model.__table__).where(*where).values(**stamped))
        return result.affected_rows

    async def soft_delete(self, model, *where, actor_id: int) -> int:
        return await self.update(
            model,
            model.is_deleted.is_(False),
            *where,
            values={"is_deleted": True},
            actor_id=actor_id,
        )

    async def run_in_transaction(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``work`` inside one database transaction.

        Commits on success and rolls back on any failure. Deadlocks and
        serialization failures are retried up to ``max_attempts`` times. A call
        made while a transaction is already open joins it.
        """
        if self.in_transaction:
            return await work()

        attempt = 0
        while True:
            attempt += 1
            self._depth += 1
            try:
                result = await work()
                await self._commit()
                return result
            except Exception as e:
                await self.session.rollback()
                if is_retryable(e) and attempt < self.max_attempts:
                    logger.warning(f"Transaction deadlocked (attempt {attempt}/{self.max_attempts}); retrying")
                    continue
                if is_retryable(e):
                    raise ConnectionFailureException(detail=f"Transaction failed after {attempt} attempts: {e}") from e
                raise
            finally:
                self._depth -= 1

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception as e:
            self._translate(e)
            raise

    @staticmethod
    def _translate(exc: Exception) -> None:
        # Retryable errors propagate untouched so run_in_transaction can see them.
        if is_retryable(exc):
            return
        if isinstance(exc, IntegrityError):
            raise ConstraintViolationException(detail=str(exc.orig)) from exc
        if isinstance(exc, PoolTimeoutError):
            raise ConnectionFailureException(detail=f"Timed out acquiring a connection: {exc}") from exc
        if isinstance(exc, (ProgrammingError, CompileError)) or _is_syntax_error(exc):
            logger.critical(f"Database rejected statement: {exc}")
            raise SyntaxFailureException(detail=str(exc)) from exc
        if isinstance(exc, (OperationalError, OSError, ConnectionError)):
            raise ConnectionFailureException(detail=str(exc)) from exc


def transactional(method: Callable[..., Awaitable[Any]]):
    """Run a repository method inside ``self.gateway``'s transaction."""
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        return await self.gateway.run_in_transaction(lambda: method(self, *args, **kwargs))
    return wrapper
