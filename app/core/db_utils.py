from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError, DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.exceptions import Conflict

# lock_not_available, query_canceled (statement_timeout), serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"55P03", "57014", "40001", "40P01"}


def _sqlstate(e: DBAPIError) -> str | None:
    orig = getattr(e, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


async def flush_or_409(db: AsyncSession, msg: str, ctx: dict | None = None) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        raise Conflict(msg, ctx=ctx) from e


@asynccontextmanager
async def retryable_conflicts(ctx: dict | None = None):
    """
    Lock waits and statement timeouts abort the whole unit; surface them as a Conflict
    the caller may retry, since nothing was persisted.
    """
    try:
        yield
    except DBAPIError as e:
        if isinstance(e, IntegrityError) or _sqlstate(e) not in RETRYABLE_SQLSTATES:
            raise
        raise Conflict(
            "Inventory is busy, retry the request",
            ctx={**(ctx or {}), "retryable": True, "sqlstate": _sqlstate(e)}
        ) from e
