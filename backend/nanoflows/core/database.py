import asyncio
import errno
import re
import socket
import time
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, TypeVar, Union

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import Session, declarative_base
from sqlalchemy.pool import NullPool

from nanoflows.core.config import settings
from nanoflows.core.logging_config import logger

# Create base class for models (can be defined before engine)
Base = declarative_base()

# Lazy engine initialization - create on first use to avoid import-time issues
_engine: Optional[AsyncEngine] = None
_async_session_local: Optional[async_sessionmaker[AsyncSession]] = None

T = TypeVar("T")
Params = Union[Sequence[Any], Mapping[str, Any], None]


def get_database_url() -> str:
    """Get properly formatted database URL"""
    db_url = settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return db_url


def get_engine() -> AsyncEngine:
    """
    Get or create the database engine (lazy initialization).

    Connection pooling strategy:
    - SQLite: NullPool (required for thread safety)
    - PostgreSQL Development: NullPool (simpler debugging)
    - PostgreSQL Production: QueuePool with connection limits

    Pool limits come from DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT
    and DB_POOL_RECYCLE.
    """
    global _engine
    if _engine is None:
        db_url = get_database_url()

        if "sqlite" in db_url:
            # SQLite requires NullPool for thread safety
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        elif settings.ENVIRONMENT == "development":
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                poolclass=NullPool,
            )
        else:
            # Production: async-adapted QueuePool (the create_async_engine default)
            _engine = create_async_engine(
                db_url,
                echo=settings.DB_ECHO,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                pool_pre_ping=True,  # Verify connections before use
            )
    return _engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy initialization)"""
    global _async_session_local
    if _async_session_local is None:
        _async_session_local = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _async_session_local


# ==========================================
# Write tracking
# ==========================================

# Set once the open transaction has sent INSERT/UPDATE/DELETE to the database
WRITES_SENT_KEY = "nanoflows_writes_sent"


@event.listens_for(Session, "after_flush")
def _mark_flush(session, flush_context):
    session.info[WRITES_SENT_KEY] = True


@event.listens_for(Session, "do_orm_execute")
def _mark_bulk_dml(orm_execute_state):
    if orm_execute_state.is_insert or orm_execute_state.is_update or orm_execute_state.is_delete:
        orm_execute_state.session.info[WRITES_SENT_KEY] = True


@event.listens_for(Session, "after_commit")
@event.listens_for(Session, "after_rollback")
def _clear_writes(session):
    session.info.pop(WRITES_SENT_KEY, None)


def has_pending_writes(session: Union[Session, AsyncSession]) -> bool:
    """Unflushed changes, or writes already sent in the open transaction"""
    return bool(session.new or session.dirty or session.deleted or session.info.get(WRITES_SENT_KEY))


# Dependency to get DB session
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session - only commits if the request wrote something"""
    session_factory = get_session_local()
    async with session_factory() as session:
        try:
            yield session
            if has_pending_writes(session):
                await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Database initialization
async def init_db():
    """Create all tables"""
    import nanoflows.models  # noqa: F401  (registers every table on Base.metadata)

    eng = get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connection"""
    global _engine, _async_session_local
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_local = None


# ==========================================
# Transient error classification
# ==========================================

TRANSIENT_ERROR_CODES = frozenset({
    "ETIMEDOUT",     # timeout
    "ECONNREFUSED",  # connection refused
    "ECONNRESET",    # connection reset
    "ENOTFOUND",     # DNS lookup failed
    "40001",         # serialization_failure
    "40P01",         # deadlock_detected
})

# SQLSTATE class 08 (connection exception) folded onto the errno-style names
SQLSTATE_ALIASES = {
    "08001": "ECONNREFUSED",  # sqlclient_unable_to_establish_sqlconnection
    "08003": "ECONNRESET",    # connection_does_not_exist
    "08006": "ECONNRESET",    # connection_failure
}


def _own_error_code(exc: BaseException) -> Optional[str]:
    """Code carried by this exception object alone (not its causes)"""
    # gaierror and TimeoutError are OSError subclasses, check them first
    if isinstance(exc, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return "ETIMEDOUT"

    for attr in ("sqlstate", "pgcode"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return SQLSTATE_ALIASES.get(value, value)

    # SQLAlchemy's own .code is a doc link id ("e3q8"), not a driver code
    if not isinstance(exc, SQLAlchemyError):
        value = getattr(exc, "code", None)
        if isinstance(value, str) and value:
            return value

    if isinstance(exc, OSError) and exc.errno:
        return errno.errorcode.get(exc.errno)

    return None


def error_code(exc: BaseException) -> Optional[str]:
    """
    Find the driver or OS error code behind an exception.

    Walks the exception, the DBAPI error wrapped in ``orig`` and the
    ``__cause__``/``__context__`` chain, returning the first code found.
    """
    seen = set()
    pending: List[BaseException] = [exc]

    while pending:
        current = pending.pop(0)
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))

        code = _own_error_code(current)
        if code:
            return code

        pending.extend(
            candidate
            for candidate in (getattr(current, "orig", None), current.__cause__, current.__context__)
            if isinstance(candidate, BaseException)
        )

    return None


def is_transient_error(exc: BaseException) -> bool:
    """True when the failure is worth retrying (network, timeout, serialization)"""
    return error_code(exc) in TRANSIENT_ERROR_CODES


def retry_delay(attempt: int, base_delay: Optional[float] = None, max_delay: Optional[float] = None) -> float:
    """Exponential backoff: base * 2**attempt, capped at max_delay"""
    base = settings.DB_RETRY_BASE_DELAY if base_delay is None else base_delay
    cap = settings.DB_RETRY_MAX_DELAY if max_delay is None else max_delay
    return min(base * (2 ** attempt), cap)


# ==========================================
# Parameterized SQL
# ==========================================

class QueryResult(NamedTuple):
    rows: List[Dict[str, Any]]
    rowcount: int


# Quoted literals are matched first so placeholders inside them are left alone
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\$(\d+)|\?")
_TABLE_RE = re.compile(r"\b(?:FROM|INTO|UPDATE|JOIN)\s+\"?(\w+)", re.IGNORECASE)


def normalize_query(sql: str, params: Params = None) -> Tuple[str, Dict[str, Any]]:
    """
    Rewrite positional placeholders into SQLAlchemy named binds.

    Accepts ``$1..$n`` and ``?``; both become ``:p1..:pn``. A mapping of
    params is assumed to already use named binds and is passed through.
    """
    if params is None:
        params = ()
    if isinstance(params, Mapping):
        return sql, dict(params)

    values = list(params)
    bound: Dict[str, Any] = {}
    sequential = 0

    def replace(match: "re.Match[str]") -> str:
        nonlocal sequential
        token = match.group(0)
        if token[0] in ("'", '"'):
            return token

        if match.group(1) is not None:
            index = int(match.group(1))
        else:
            sequential += 1
            index = sequential

        if index < 1 or index > len(values):
            raise ValueError(
                f"Query references parameter {index} but {len(values)} were given"
            )

        name = f"p{index}"
        bound[name] = values[index - 1]
        return f":{name}"

    return _PLACEHOLDER_RE.sub(replace, sql), bound


def _describe(statement: str) -> Tuple[str, str]:
    operation = statement.lstrip().split(None, 1)[0].upper() if statement.strip() else "QUERY"
    match = _TABLE_RE.search(statement)
    return operation, match.group(1) if match else "-"


async def query(db: AsyncSession, sql: str, params: Params = None) -> QueryResult:
    """Run one parameterized statement on the session's pooled connection"""
    statement, bound = normalize_query(sql, params)
    start_time = time.perf_counter()

    result = await db.execute(text(statement), bound)
    if result.returns_rows:
        rows = [dict(row) for row in result.mappings().all()]
        rowcount = len(rows)
    else:
        rows = []
        rowcount = result.rowcount

    operation, table = _describe(statement)
    if operation in ("INSERT", "UPDATE", "DELETE"):
        db.info[WRITES_SENT_KEY] = True
    logger.log_db_query(
        operation=operation,
        table=table,
        duration_ms=(time.perf_counter() - start_time) * 1000,
        rows_affected=rowcount,
    )
    return QueryResult(rows=rows, rowcount=rowcount)


async def _discard_failed_transaction(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except Exception as rollback_error:
        # The connection is already gone; the next attempt checks out a new one
        logger.warning(f"[DB-Retry] Rollback before retry failed: {rollback_error}")


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    db: Optional[AsyncSession] = None,
    retries: Optional[int] = None,
    description: str = "query",
) -> T:
    """
    Await ``operation`` and retry it on transient failures.

    Non-transient errors, and the last transient one, are re-raised as-is.
    A retry rolls ``db`` back, so a failure inside a transaction that
    already holds writes is re-raised instead of retried.
    """
    retries = settings.DB_QUERY_RETRIES if retries is None else max(0, retries)
    max_attempts = retries + 1
    attempt = 0

    while True:
        holds_writes = db is not None and has_pending_writes(db)
        try:
            return await operation()
        except Exception as exc:
            if attempt >= retries or not is_transient_error(exc):
                raise
            if holds_writes:
                logger.warning(
                    f"[DB-Retry] {description} failed with {error_code(exc)} inside a transaction "
                    f"with pending writes; not retrying"
                )
                raise

            delay = retry_delay(attempt)
            logger.log_db_retry(
                attempt=attempt + 1,
                max_attempts=max_attempts,
                code=error_code(exc) or "unknown",
                delay=delay,
                db_description=description,
            )
            if db is not None:
                await _discard_failed_transaction(db)
            await asyncio.sleep(delay)
            attempt += 1


async def query_with_retry(
    sql: str,
    params: Params = None,
    db: Optional[AsyncSession] = None,
    retries: Optional[int] = None,
) -> QueryResult:
    """
    Parameterized query with bounded retry on transient errors.

    When no session is given one is borrowed from the pool and committed
    once the statement succeeds.
    """
    if db is None:
        async with get_session_local()() as session:
            result = await query_with_retry(sql, params, db=session, retries=retries)
            await session.commit()
            return result

    return await run_with_retry(
        lambda: query(db, sql, params),
        db=db,
        retries=retries,
        description=_describe(sql)[0],
    )


async def execute_with_retry(db: AsyncSession, statement: Any, params: Optional[Mapping[str, Any]] = None, retries: Optional[int] = None):
    """Same retry semantics for ORM/Core statements (select(), update(), ...)"""
    if params is None:
        operation = lambda: db.execute(statement)  # noqa: E731
    else:
        operation = lambda: db.execute(statement, params)  # noqa: E731
    return await run_with_retry(operation, db=db, retries=retries, description=type(statement).__name__)
