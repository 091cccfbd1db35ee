"""SQL helpers shared by ledger writers."""
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def insert_if_absent(db: AsyncSession, model: Any, values: dict[str, Any], key: str = "id") -> bool:
    """
    Insert a row unless one with the same key already exists.

    Uses ``INSERT ... ON CONFLICT DO NOTHING``, so two concurrent callers can
    never both create the row.

    Args:
        db: Database session
        model: Mapped class
        values: Column values, including the key
        key: Conflict column

    Returns:
        True if this call created the row
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _DIALECT_INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"insert_if_absent is not supported on {dialect}") from None

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=[key])
    result = await db.execute(stmt)
    return result.rowcount == 1
