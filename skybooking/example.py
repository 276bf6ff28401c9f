"""Query-by-example: turns entity criteria into complete SQL statements."""

from __future__ import annotations

import typing
from typing import Any

from skybooking.criteria import AS, COUNT, EQUAL_TO, ON, OR, PLACEHOLDER, Criteria, OrderBy
from skybooking.errors import MapperException
from skybooking.schema import (
    ColumnType,
    EntityColumn,
    EntityTable,
    JoinEntityTable,
    JoinType,
    result_map,
)
from skybooking.sqlbuilder import SQLBuilder


def _walk(record: Any, path: tuple[str, ...]) -> Any:
    for attribute in path:
        record = getattr(record, attribute)
    return record


class Example:
    """Criteria, ordering and paging for one entity class.

    The ``*_context`` methods return the SQL text together with the values
    to bind to its placeholders, in order.
    """

    def __init__(self, entity_cls: type) -> None:
        self.entity_cls = entity_cls
        mapping = result_map(entity_cls)
        self.table: EntityTable = mapping.entity_tables[0]
        self.join_table_map: dict[str, JoinEntityTable] = {
            table.alias: JoinEntityTable(table.table_name, table.class_name, table.alias)
            for table in mapping.entity_tables[1:]
        }
        self.property_map: dict[str, EntityColumn] = dict(mapping.property_map)
        self.entity_property_map: dict[str, EntityColumn] = {}
        self.join_entity_columns: list[EntityColumn] = []
        self.key_entity_column: EntityColumn | None = None
        self.ored_criteria: list[Criteria] = []
        self._order_by: OrderBy | None = None
        self._limit: tuple[int, int] | None = None

        for name, entity_column in self.property_map.items():
            own_table = entity_column.table_alias == self.table.alias
            if entity_column.column_type is ColumnType.ID and own_table:
                self.key_entity_column = entity_column
            if entity_column.join_type is not JoinType.NULL:
                self.join_entity_columns.append(entity_column)
                try:
                    join_table = self.join_table_map[entity_column.join_table_alias]
                except KeyError:
                    raise MapperException(
                        f"joined table {entity_column.join_table_alias} is not mapped"
                    ) from None
                join_table.join_column = entity_column.column_with_table_alias()
                join_table.join_property = entity_column.property_name
                join_table.join_alias = entity_column.table_alias
                join_table.joined_property = entity_column.join_property
            if own_table:
                self.entity_property_map[name] = entity_column

        for join_table in self.join_table_map.values():
            joined = self.property_map[join_table.joined_property]
            join_table.joined_column = joined.column_with_table_alias()

    # criteria, ordering, paging

    def _new_criteria(self) -> Criteria:
        return Criteria(self.property_map, self.table)

    def create_criteria(self) -> Criteria:
        """A new criteria group; only the first one created is added to the example."""
        criteria = self._new_criteria()
        if not self.ored_criteria:
            criteria.and_or = "AND"
            self.ored_criteria.append(criteria)
        return criteria

    def or_criteria(self, criteria: Criteria | None = None) -> Criteria:
        """Add a criteria group joined with OR; a new one is made if none is given."""
        criteria = criteria if criteria is not None else self._new_criteria()
        criteria.and_or = OR
        self.ored_criteria.append(criteria)
        return criteria

    def and_criteria(self, criteria: Criteria | None = None) -> Criteria:
        """Add a criteria group joined with AND; a new one is made if none is given."""
        criteria = criteria if criteria is not None else self._new_criteria()
        criteria.and_or = "AND"
        self.ored_criteria.append(criteria)
        return criteria

    def _ordering(self) -> OrderBy:
        if self._order_by is None:
            self._order_by = OrderBy(self.property_map)
        return self._order_by

    def order_by_desc(self, prop: Any) -> OrderBy:
        return self._ordering().desc(prop)

    def order_by_asc(self, prop: Any) -> OrderBy:
        return self._ordering().asc(prop)

    def limit(self, offset: int, size: int | None = None) -> None:
        """Page the results; ``limit(size)`` starts at offset 0.

        A positive offset with a size that is not positive is ignored.
        """
        if size is None:
            offset, size = 0, offset
        if 0 < offset and 0 >= size:
            return
        self._limit = (offset, size)

    # statement building

    def _build_ored_criteria(self, builder: SQLBuilder) -> None:
        started = False
        for criteria in self.ored_criteria:
            if not criteria.criteria:
                continue
            if started and criteria.and_or == OR:
                builder.or_()
            builder.where(criteria.to_sql())
            started = True

    def _criteria_values(self) -> list[Any]:
        return [value for criteria in self.ored_criteria for value in criteria.values()]

    def _aliased_table(self) -> str:
        return f"{self.table.table_name} {AS} {self.table.alias}"

    def _build_from_where(self, builder: SQLBuilder) -> None:
        builder.from_(self._aliased_table())
        for alias in sorted(self.join_table_map):
            join_table = self.join_table_map[alias]
            builder.left_outer_join(
                f"{join_table.table_name} {AS} {join_table.alias} {ON} "
                f"{join_table.join_column} {EQUAL_TO} {join_table.joined_column}"
            )
        self._build_ored_criteria(builder)

    def _writable_columns(self) -> list[EntityColumn]:
        return [
            entity_column
            for entity_column in self.property_map.values()
            if entity_column.join_type is not JoinType.ONE_TO_MANY
            and entity_column.table_alias == self.table.alias
            and entity_column.column_type is not ColumnType.ID
        ]

    def insert_context(self, record: Any, selective: bool = False) -> tuple[str, list[Any]]:
        """INSERT for ``record``; with ``selective`` empty strings are left out."""
        builder = SQLBuilder().insert_into(self.table.table_name)
        values: list[Any] = []
        for entity_column in self._writable_columns():
            if selective and entity_column.is_null(record):
                continue
            builder.values(entity_column.column, PLACEHOLDER)
            values.append(entity_column.value_of(record))
        return builder.build(), values

    def delete_context(self) -> tuple[str, list[Any]]:
        """DELETE of the rows matching the criteria."""
        builder = SQLBuilder().delete_from(self._aliased_table())
        self._build_ored_criteria(builder)
        return builder.build(), self._criteria_values()

    def update_context(self, record: Any, selective: bool = False) -> tuple[str, list[Any]]:
        """UPDATE of the matching rows with the fields of ``record``.

        With ``selective`` fields holding empty strings are left unchanged.
        """
        builder = SQLBuilder().update(self._aliased_table())
        values: list[Any] = []
        for entity_column in self._writable_columns():
            if selective and entity_column.is_null(record):
                continue
            builder.set(f"{entity_column.column} {EQUAL_TO} {PLACEHOLDER}")
            values.append(entity_column.value_of(record))
        self._build_ored_criteria(builder)
        return builder.build(), values + self._criteria_values()

    def select_count_context(self) -> tuple[str, list[Any]]:
        """SELECT COUNT of the matching rows."""
        builder = SQLBuilder().select(COUNT)
        self._build_from_where(builder)
        return builder.build(), self._criteria_values()

    def select_context(self) -> tuple[str, list[Any]]:
        """SELECT of every mapped column of the matching rows."""
        builder = SQLBuilder()
        for entity_column in self.property_map.values():
            if entity_column.join_type is not JoinType.ONE_TO_MANY:
                builder.select(
                    f"{entity_column.column_with_table_alias()} {AS} {entity_column.alias}"
                )
        self._build_from_where(builder)
        if self._order_by is not None:
            for term in self._order_by.order_bys:
                builder.order_by(term)
        values = self._criteria_values()
        if self._limit is not None:
            offset, size = self._limit
            builder.limit(PLACEHOLDER, PLACEHOLDER)
            values.extend((size, offset))
        return builder.build(), values

    # results

    def column_alias_map(self) -> dict[str, EntityColumn]:
        """Selected columns keyed by their result alias."""
        return {
            entity_column.alias: entity_column
            for entity_column in self.property_map.values()
            if entity_column.join_type is not JoinType.ONE_TO_MANY
        }

    def key_column(self) -> EntityColumn:
        """The primary key column of the entity's own table."""
        if self.key_entity_column is None:
            raise MapperException(f"{self.entity_cls.__name__} has no primary key column")
        return self.key_entity_column

    def _children(self, many_column: EntityColumn, row: dict[str, Any]) -> list[Any]:
        args = typing.get_args(many_column.field_type)
        element = args[0] if args else None
        if not isinstance(element, type):
            return []
        columns = [
            entity_column
            for entity_column in self.property_map.values()
            if entity_column.table_alias == many_column.join_table_alias
            and entity_column.join_type is JoinType.NULL
        ]
        if all(row.get(entity_column.alias) is None for entity_column in columns):
            return []
        child = element()
        for entity_column in columns:
            if entity_column.alias in row:
                entity_column.assign(child, row[entity_column.alias])
        return [child]

    def to_entity(self, row: dict[str, Any]) -> Any:
        """Build an entity from one result row keyed by column alias."""
        record = self.entity_cls()
        one_to_one = sorted(
            (c for c in self.join_entity_columns if c.join_type is JoinType.ONE_TO_ONE),
            key=lambda c: len(c.path),
        )
        for entity_column in one_to_one:
            owner = _walk(record, entity_column.path)
            if getattr(owner, entity_column.attribute, None) is None and isinstance(
                entity_column.field_type, type
            ):
                setattr(owner, entity_column.attribute, entity_column.field_type())
        one_to_many = [
            c for c in self.join_entity_columns if c.join_type is JoinType.ONE_TO_MANY
        ]
        child_aliases = {c.join_table_alias for c in one_to_many}
        for entity_column in self.property_map.values():
            if entity_column.table_alias in child_aliases or entity_column.alias not in row:
                continue
            entity_column.assign(record, row[entity_column.alias])
        for entity_column in one_to_many:
            setattr(
                _walk(record, entity_column.path),
                entity_column.attribute,
                self._children(entity_column, row),
            )
        return record