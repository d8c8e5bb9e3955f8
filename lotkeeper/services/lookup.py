"""Name → ID resolution against the reference tables.

Lots carry reference data as display names; inbound records carry foreign
keys.  ``resolve_id`` is the single place that turns one into the other;
``ensure_reference`` adds names first seen on a new schedule.
Both run on the caller's session so a miss aborts the caller's whole
transaction.

Table and column names are checked against the ORM metadata, so a typo
fails loudly and nothing user-supplied is ever spliced into SQL.
"""

import logging

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

import lotkeeper.models  # noqa: F401  (registers reference tables)
from lotkeeper.database import Base
from lotkeeper.middleware.exceptions import LookupNotFoundError

logger = logging.getLogger(__name__)

# Lot attribute → reference table, name column, id column (also the Inbound FK)
LOT_REFERENCES = (
    ("commodity", "commodities", "commodity_name", "commodity_id"),
    ("shape", "shapes", "shape_name", "shape_id"),
    ("brand", "brands", "brand_name", "brand_id"),
    ("ex_lme_warehouse", "exlmewarehouses", "ex_lme_warehouse_name", "ex_lme_warehouse_id"),
    ("inbound_warehouse", "inboundwarehouses", "inbound_warehouse_name", "inbound_warehouse_id"),
    ("ex_warehouse_location", "exwarehouselocations", "ex_warehouse_location_name",
     "ex_warehouse_location_id"),
)


def _column(table_name: str, column_name: str):
    table = Base.metadata.tables.get(table_name)
    if table is None:
        raise ValueError(f"Unknown reference table: {table_name}")
    if column_name not in table.c:
        raise ValueError(f"Unknown column {column_name} on {table_name}")
    return table.c[column_name]


async def resolve_id(
    db: AsyncSession,
    table: str,
    name_column: str,
    id_column: str,
    value: str | None,
) -> int:
    """Return the ID whose name matches *value* case-insensitively.

    Raises LookupNotFoundError when nothing matches (including a blank
    value).
    """
    name_col = _column(table, name_column)
    id_col = _column(table, id_column)

    if value is None or not str(value).strip():
        raise LookupNotFoundError(table, value)

    result = await db.execute(
        select(id_col).where(func.lower(name_col) == str(value).strip().lower()).limit(1)
    )
    found = result.scalar_one_or_none()
    if found is None:
        logger.warning("Lookup failed: %s has no row named %r", table, value)
        raise LookupNotFoundError(table, value)
    return found


async def resolve_lot_references(db: AsyncSession, lot) -> dict[str, int]:
    """Resolve all six reference names carried by *lot*.

    Returns a dict of Inbound foreign-key attribute → ID.
    """
    resolved = {}
    for attr, table, name_column, id_column in LOT_REFERENCES:
        resolved[id_column] = await resolve_id(
            db, table, name_column, id_column, getattr(lot, attr)
        )
    return resolved


async def ensure_reference(
    db: AsyncSession,
    table: str,
    name_column: str,
    id_column: str,
    value: str | None,
) -> int | None:
    """Return the ID named *value*, inserting the name when it is new.

    Blank values are ignored and give None.
    """
    name_col = _column(table, name_column)
    id_col = _column(table, id_column)

    if value is None or not str(value).strip():
        return None
    name = str(value).strip()

    found = await db.scalar(select(id_col).where(func.lower(name_col) == name.lower()).limit(1))
    if found is not None:
        return found

    result = await db.execute(insert(name_col.table).values({name_column: name}).returning(id_col))
    logger.info("Added %s %r", table, name)
    return result.scalar_one()
