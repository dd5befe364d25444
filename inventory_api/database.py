"""Database engine, sessions and shared query primitives."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import Table, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from inventory_api.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

engine = create_async_engine(settings.async_database_url, pool_pre_ping=True)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()

_INSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

UPDATE_STRATEGIES = ("overwrite", "now")


async def run_in_transaction(
    session_factory: async_sessionmaker,
    work: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """Run ``work`` inside its own session and transaction.

    The transaction commits when ``work`` returns and rolls back when it
    raises; the exception is re-raised unchanged.
    """
    async with session_factory() as session:
        async with session.begin():
            return await work(session)


async def lock_row(session: AsyncSession, model: Type[Any], row_id: Any) -> Optional[Any]:
    """Fetch a row by primary key with an exclusive ``FOR UPDATE`` lock.

    The lock is held until the surrounding transaction ends. Dialects without
    row locks (SQLite) simply read the row.

    Returns:
        The mapped instance, or None if no row matches
    """
    stmt = select(model).where(model.id == row_id).with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def bulk_upsert(
    session: AsyncSession,
    table: Table,
    rows: Sequence[Dict[str, Any]],
    conflict_columns: Sequence[str],
    update_strategies: Dict[str, str],
) -> List[Dict[str, Any]]:
    """Insert rows, updating selected columns when the conflict key already exists.

    Args:
        session: Active session (caller owns the transaction)
        table: Target table
        rows: Row dicts keyed by column name
        conflict_columns: Columns of the unique constraint used as conflict target
        update_strategies: Column -> strategy applied on conflict:
            ``overwrite`` takes the incoming value, ``now`` sets the current timestamp

    Returns:
        All inserted or updated rows as dicts

    Raises:
        ValueError: On an unknown strategy or unsupported dialect
    """
    if not rows:
        return []

    dialect = session.get_bind().dialect.name
    insert_fn = _INSERT_BY_DIALECT.get(dialect)
    if insert_fn is None:
        raise ValueError(f"Bulk upsert not supported for dialect: {dialect}")

    stmt = insert_fn(table).values(list(rows))

    set_ = {}
    for column, strategy in update_strategies.items():
        if strategy == "overwrite":
            set_[column] = stmt.excluded[column]
        elif strategy == "now":
            set_[column] = func.now()
        else:
            raise ValueError(f"Unknown update strategy {strategy!r} for column {column}")

    stmt = stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=set_)
    stmt = stmt.returning(*table.c)

    result = await session.execute(stmt)
    returned = [dict(row) for row in result.mappings().all()]
    logger.debug(f"Upserted {len(returned)} rows into {table.name}")
    return returned
