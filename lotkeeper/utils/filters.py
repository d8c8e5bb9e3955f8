"""Composable WHERE-clause builder for task listings.

Listing endpoints collect ``Predicate`` tuples from whichever query
parameters are present, then hand them to ``build_where``.  Values always
travel as bound parameters, never as SQL text.

    preds = [Predicate(Lot.status, "eq", "Pending")]
    if brand:
        preds.append(Predicate(Lot.brand, "eq", brand))
    if search:
        preds.append(any_of(
            Predicate(Lot.job_no, "ilike", f"%{search}%"),
            Predicate(Lot.ex_warehouse_lot, "ilike", f"%{search}%"),
        ))
    stmt = select(Lot).where(build_where(preds))
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

OPERATORS = {
    "eq": lambda col, v: col == v,
    "ne": lambda col, v: col != v,
    "lt": lambda col, v: col < v,
    "le": lambda col, v: col <= v,
    "gt": lambda col, v: col > v,
    "ge": lambda col, v: col >= v,
    "ilike": lambda col, v: col.ilike(v),
    "in": lambda col, v: col.in_(v),
    "between": lambda col, v: col.between(v[0], v[1]),
    "is_true": lambda col, v: col.is_(True) if v else col.is_not(True),
    "exists": lambda col, v: col if v else ~col,
}


@dataclass(frozen=True)
class Predicate:
    """One ``column <operator> value`` condition."""
    column: Any
    operator: str
    value: Any = None

    def to_clause(self) -> ColumnElement:
        try:
            op = OPERATORS[self.operator]
        except KeyError:
            raise ValueError(f"Unsupported filter operator: {self.operator}") from None
        return op(self.column, self.value)


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of predicates (e.g. a free-text search across columns)."""
    predicates: tuple[Predicate, ...]

    def to_clause(self) -> ColumnElement:
        return or_(*(p.to_clause() for p in self.predicates))


def any_of(*predicates: Predicate) -> AnyOf:
    return AnyOf(tuple(predicates))


def build_where(predicates: list[Predicate | AnyOf]) -> ColumnElement:
    """AND together every predicate; an empty list matches everything."""
    if not predicates:
        return true()
    return and_(*(p.to_clause() for p in predicates))
