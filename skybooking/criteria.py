"""Query conditions and ordering built from entity properties.

A property can be named in three ways: by its qualified name
(``"t_user.email"``), by the bare field name of the criteria's own table
(``"email"``), or as an ``(EntityClass, "field")`` pair.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from skybooking.errors import MapperException
from skybooking.schema import EntityColumn, EntityTable, JoinType, result_map, table_alias

AND = "AND"
OR = "OR"

IS_NULL = "IS NULL"
IS_NOT_NULL = "IS NOT NULL"

EQUAL_TO = "="
NOT_EQUAL_TO = "<>"
LESS_THAN = "<"
LESS_THAN_OR_EQUAL_TO = "<="
GREATER_THAN = ">"
GREATER_THAN_OR_EQUAL_TO = ">="

LIKE = "LIKE"
NOT_LIKE = "NOT LIKE"

IN = "IN"
NOT_IN = "NOT IN"

BETWEEN = "BETWEEN"
NOT_BETWEEN = "NOT BETWEEN"

REGEXP = "REGEXP"
NOT_REGEXP = "NOT REGEXP"

AS = "AS"
DESC = "DESC"
ASC = "ASC"
ON = "ON"

COUNT = "COUNT(1)"
PLACEHOLDER = "?"

Property = Union[str, tuple]

_CONTAINERS = (list, tuple, set, frozenset)


class CriterionKind(Enum):
    """How many values a criterion binds."""

    NO_VALUE = "no_value"
    SINGLE = "single"
    BETWEEN = "between"
    LIST = "list"


@dataclass(frozen=True)
class Criterion:
    """One condition, the values bound to it and how it joins the previous one."""

    condition: str
    values: tuple = ()
    and_or: str = AND
    kind: CriterionKind = CriterionKind.NO_VALUE

    @classmethod
    def with_value(cls, condition: str, value: Any, is_or: bool = False) -> Criterion:
        """A criterion with one value; a collection value becomes a list."""
        and_or = OR if is_or else AND
        if isinstance(value, _CONTAINERS):
            return cls(condition, tuple(value), and_or, CriterionKind.LIST)
        return cls(condition, (value,), and_or, CriterionKind.SINGLE)


def _render(criterion: Criterion) -> str:
    if criterion.kind is CriterionKind.NO_VALUE:
        return criterion.condition
    if criterion.kind is CriterionKind.SINGLE:
        return f"{criterion.condition} {PLACEHOLDER}"
    if criterion.kind is CriterionKind.BETWEEN:
        return f"{criterion.condition} {PLACEHOLDER} {AND} {PLACEHOLDER}"
    placeholders = ", ".join(PLACEHOLDER for _ in criterion.values)
    return f"{criterion.condition} ({placeholders})"


def _resolve(
    property_map: Mapping[str, EntityColumn], prop: Property, default_alias: str | None
) -> EntityColumn:
    if isinstance(prop, tuple) and len(prop) == 2 and isinstance(prop[0], type):
        name = f"{table_alias(prop[0])}.{prop[1]}"
    elif isinstance(prop, str):
        name = prop
        if name not in property_map and "." not in name and default_alias:
            name = f"{default_alias}.{name}"
    else:
        raise MapperException(f"[property]{prop!r} is not a property")
    try:
        return property_map[name]
    except KeyError:
        raise MapperException("[property]" + name + "is not exist!") from None


def _as_collection(values: Iterable[Any]) -> tuple:
    if isinstance(values, (str, bytes)):
        raise TypeError("expected a collection of values, not a string")
    return tuple(values)


class Criteria:
    """A group of criteria for one entity table, rendered as one WHERE group."""

    def __init__(self, property_map: Mapping[str, EntityColumn], table: EntityTable) -> None:
        self.property_map = property_map
        self.table = table
        self.and_or = AND
        self.criteria: list[Criterion] = []

    def _condition(self, prop: Property, compare: str) -> str:
        entity_column = _resolve(self.property_map, prop, self.table.alias)
        return f"{entity_column.column_with_table_alias()} {compare}"

    def _no_value(self, prop: Property, compare: str, is_or: bool) -> Criteria:
        and_or = OR if is_or else AND
        self.criteria.append(Criterion(self._condition(prop, compare), (), and_or))
        return self

    def _single(self, prop: Property, compare: str, value: Any, is_or: bool) -> Criteria:
        self.criteria.append(Criterion.with_value(self._condition(prop, compare), value, is_or))
        return self

    def _list(self, prop: Property, compare: str, values: Iterable[Any], is_or: bool) -> Criteria:
        self.criteria.append(
            Criterion(
                self._condition(prop, compare),
                _as_collection(values),
                OR if is_or else AND,
                CriterionKind.LIST,
            )
        )
        return self

    def _between(
        self, prop: Property, compare: str, value1: Any, value2: Any, is_or: bool
    ) -> Criteria:
        self.criteria.append(
            Criterion(
                self._condition(prop, compare),
                (value1, value2),
                OR if is_or else AND,
                CriterionKind.BETWEEN,
            )
        )
        return self

    def _free(self, condition: str, args: tuple, is_or: bool) -> Criteria:
        if len(args) > 1:
            raise TypeError("a hand-written condition takes at most one value")
        if args:
            self.criteria.append(Criterion.with_value(condition, args[0], is_or))
        else:
            self.criteria.append(Criterion(condition, (), OR if is_or else AND))
        return self

    # and

    def and_is_null(self, prop: Property) -> Criteria:
        return self._no_value(prop, IS_NULL, False)

    def and_is_not_null(self, prop: Property) -> Criteria:
        return self._no_value(prop, IS_NOT_NULL, False)

    def and_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, EQUAL_TO, value, False)

    def and_not_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, NOT_EQUAL_TO, value, False)

    def and_greater_than(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, GREATER_THAN, value, False)

    def and_greater_than_or_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, GREATER_THAN_OR_EQUAL_TO, value, False)

    def and_less_than(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, LESS_THAN, value, False)

    def and_less_than_or_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, LESS_THAN_OR_EQUAL_TO, value, False)

    def and_in(self, prop: Property, values: Iterable[Any]) -> Criteria:
        return self._list(prop, IN, values, False)

    def and_not_in(self, prop: Property, values: Iterable[Any]) -> Criteria:
        return self._list(prop, NOT_IN, values, False)

    def and_between(self, prop: Property, value1: Any, value2: Any) -> Criteria:
        return self._between(prop, BETWEEN, value1, value2, False)

    def and_not_between(self, prop: Property, value1: Any, value2: Any) -> Criteria:
        return self._between(prop, NOT_BETWEEN, value1, value2, False)

    def and_like(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, LIKE, value, False)

    def and_not_like(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, NOT_LIKE, value, False)

    def and_regexp(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, REGEXP, value, False)

    def and_not_regexp(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, NOT_REGEXP, value, False)

    def and_condition(self, condition: str, *args: Any) -> Criteria:
        """Add a hand-written condition, optionally with one bound value."""
        return self._free(condition, args, False)

    def and_equal_to_record(self, record: Any) -> Criteria:
        """Add an equality condition for every own-table field of ``record``."""
        for entity_column in result_map(type(record)).property_map.values():
            if (
                entity_column.join_type is not JoinType.ONE_TO_MANY
                and entity_column.table_alias == self.table.alias
            ):
                self.and_equal_to(entity_column.property_name, entity_column.value_of(record))
        return self

    # or

    def or_is_null(self, prop: Property) -> Criteria:
        return self._no_value(prop, IS_NULL, True)

    def or_is_not_null(self, prop: Property) -> Criteria:
        return self._no_value(prop, IS_NOT_NULL, True)

    def or_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, EQUAL_TO, value, True)

    def or_not_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, NOT_EQUAL_TO, value, True)

    def or_greater_than(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, GREATER_THAN, value, True)

    def or_greater_than_or_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, GREATER_THAN_OR_EQUAL_TO, value, True)

    def or_less_than(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, LESS_THAN, value, True)

    def or_less_than_or_equal_to(self, prop: Property, value: Any) -> Criteria:
        return self._single(prop, LESS_THAN_OR_EQUAL_TO, value, True)

    def or_in(self, prop: Property, values: Iterable[Any]) -> Criteria:
        return self._list(prop, IN, values, True)

    def or_not_in(self, prop: Property, values: Iterable[Any]) -> Criteria:
        return self._list(prop, NOT_IN, values, True)

    def or_between(self, prop: Property, value1: Any, value2: Any) -> Criteria:
        return self._between(prop, BETWEEN, value1, value2, True)

    def or_not_between(self, prop: Property, value1: Any, value2: Any) -> Criteria:
        return self._between(prop, NOT_BETWEEN, value1, value2, True)

    def or_like(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, LIKE, value, True)

    def or_not_like(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, NOT_LIKE, value, True)

    def or_regexp(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, REGEXP, value, True)

    def or_not_regexp(self, prop: Property, value: str) -> Criteria:
        return self._single(prop, NOT_REGEXP, value, True)

    def or_condition(self, condition: str, *args: Any) -> Criteria:
        """Add a hand-written condition joined with OR, optionally with one value."""
        return self._free(condition, args, True)

    # rendering

    def to_sql(self) -> str:
        """The conditions joined by their AND/OR connectives, with placeholders."""
        sql = ""
        for criterion in self.criteria:
            if sql:
                sql += f" {criterion.and_or} "
            sql += _render(criterion)
        return sql

    def values(self) -> list[Any]:
        """The bound values in placeholder order."""
        return [value for criterion in self.criteria for value in criterion.values]


class OrderBy:
    """ORDER BY terms built from entity properties; methods chain."""

    def __init__(self, property_map: Mapping[str, EntityColumn]) -> None:
        self.property_map = property_map
        self.order_bys: list[str] = []
        first = next(iter(property_map.values()), None)
        self._default_alias = first.table_alias if first is not None else None

    def _add(self, prop: Property, direction: str) -> OrderBy:
        entity_column = _resolve(self.property_map, prop, self._default_alias)
        self.order_bys.append(f"{entity_column.column_with_table_alias()} {direction}")
        return self

    def asc(self, prop: Property) -> OrderBy:
        return self._add(prop, ASC)

    def desc(self, prop: Property) -> OrderBy:
        return self._add(prop, DESC)