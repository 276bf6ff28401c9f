"""A small fluent builder for SQL statements."""

from __future__ import annotations

from enum import Enum

from skybooking.errors import MapperException

_AND = ") AND ("
_OR = ") OR ("
_MARKERS = frozenset({_AND, _OR})


class StatementType(Enum):
    """The kind of statement being built."""

    DELETE = "DELETE"
    INSERT = "INSERT"
    SELECT = "SELECT"
    UPDATE = "UPDATE"


def _clause(
    sql: str,
    keyword: str,
    parts: list[str],
    open_: str = "",
    close: str = "",
    conjunction: str = "",
) -> str:
    """Append one clause to ``sql`` and return the result."""
    if not parts:
        return sql
    if sql:
        sql += " "
    sql += keyword + " " + open_
    last = ""
    first = True
    for part in parts:
        if not first and part not in _MARKERS and last not in _MARKERS:
            sql += conjunction
        sql += part
        last = part
        first = False
    return sql + close


def _limit_clause(sql: str, offset: str, limit: str) -> str:
    if limit:
        sql += " LIMIT " + limit
    if offset:
        sql += " OFFSET " + offset
    return sql


class SQLBuilder:
    """Collects the pieces of a statement and renders them as SQL text.

    Every building method returns the builder itself so calls can be chained.
    """

    def __init__(self) -> None:
        self.statement_type: StatementType | None = None
        self._sets: list[str] = []
        self._select: list[str] = []
        self._tables: list[str] = []
        self._join: list[str] = []
        self._inner_join: list[str] = []
        self._outer_join: list[str] = []
        self._left_outer_join: list[str] = []
        self._right_outer_join: list[str] = []
        self._where: list[str] = []
        self._having: list[str] = []
        self._group_by: list[str] = []
        self._order_by: list[str] = []
        self._last_list: list[str] | None = None
        self._columns: list[str] = []
        self._values_list: list[list[str]] = [[]]
        self._distinct = False
        self._offset = ""
        self._limit = ""

    def update(self, table: str) -> SQLBuilder:
        self.statement_type = StatementType.UPDATE
        self._tables.append(table)
        return self

    def set(self, assignment: str) -> SQLBuilder:
        self._sets.append(assignment)
        return self

    def insert_into(self, table: str) -> SQLBuilder:
        self.statement_type = StatementType.INSERT
        self._tables.append(table)
        return self

    def values(self, columns: str, values: str) -> SQLBuilder:
        self.into_columns(columns)
        return self.into_values(values)

    def into_columns(self, columns: str) -> SQLBuilder:
        self._columns.append(columns)
        return self

    def into_values(self, values: str) -> SQLBuilder:
        self._values_list[-1].append(values)
        return self

    def select(self, columns: str) -> SQLBuilder:
        self.statement_type = StatementType.SELECT
        self._select.append(columns)
        return self

    def select_distinct(self, columns: str) -> SQLBuilder:
        self._distinct = True
        return self.select(columns)

    def delete_from(self, table: str) -> SQLBuilder:
        self.statement_type = StatementType.DELETE
        self._tables.append(table)
        return self

    def from_(self, table: str) -> SQLBuilder:
        self._tables.append(table)
        return self

    def join(self, join: str) -> SQLBuilder:
        self._join.append(join)
        return self

    def inner_join(self, join: str) -> SQLBuilder:
        self._inner_join.append(join)
        return self

    def left_outer_join(self, join: str) -> SQLBuilder:
        self._left_outer_join.append(join)
        return self

    def right_outer_join(self, join: str) -> SQLBuilder:
        self._right_outer_join.append(join)
        return self

    def outer_join(self, join: str) -> SQLBuilder:
        self._outer_join.append(join)
        return self

    def where(self, conditions: str) -> SQLBuilder:
        self._where.append(conditions)
        self._last_list = self._where
        return self

    def _conjoin(self, marker: str) -> SQLBuilder:
        if self._last_list is None:
            raise MapperException("AND/OR must follow a WHERE or HAVING condition")
        self._last_list.append(marker)
        return self

    def or_(self) -> SQLBuilder:
        return self._conjoin(_OR)

    def and_(self) -> SQLBuilder:
        return self._conjoin(_AND)

    def group_by(self, columns: str) -> SQLBuilder:
        self._group_by.append(columns)
        return self

    def having(self, conditions: str) -> SQLBuilder:
        self._having.append(conditions)
        self._last_list = self._having
        return self

    def order_by(self, columns: str) -> SQLBuilder:
        self._order_by.append(columns)
        return self

    def limit(self, variable: str, offset: str | None = None) -> SQLBuilder:
        """Set the row limit; the offset defaults to ``0``."""
        self._limit = variable
        self._offset = "0" if offset is None else offset
        return self

    def add_row(self) -> SQLBuilder:
        """Start another row of values for a multi-row insert."""
        self._values_list.append([])
        return self

    def _joins(self, sql: str) -> str:
        sql = _clause(sql, "JOIN", self._join, "", "", " JOIN ")
        sql = _clause(sql, "INNER JOIN", self._inner_join, "", "", " INNER JOIN ")
        sql = _clause(sql, "OUTER JOIN", self._outer_join, "", "", " OUTER JOIN ")
        sql = _clause(
            sql, "LEFT OUTER JOIN", self._left_outer_join, "", "", " LEFT OUTER JOIN "
        )
        return _clause(
            sql, "RIGHT OUTER JOIN", self._right_outer_join, "", "", " RIGHT OUTER JOIN "
        )

    def _delete_sql(self) -> str:
        sql = _clause("", "DELETE FROM", self._tables)
        sql = _clause(sql, "WHERE", self._where, "(", ")", " AND ")
        return _limit_clause(sql, "", self._limit)

    def _update_sql(self) -> str:
        sql = _clause("", "UPDATE", self._tables)
        sql = self._joins(sql)
        sql = _clause(sql, "SET", self._sets, "", "", ", ")
        sql = _clause(sql, "WHERE", self._where, "(", ")", " AND ")
        return _limit_clause(sql, "", self._limit)

    def _insert_sql(self) -> str:
        sql = _clause("", "INSERT INTO", self._tables)
        sql = _clause(sql, "", self._columns, "(", ")", ", ")
        keyword = "VALUES"
        for row in self._values_list:
            sql = _clause(sql, keyword, row, "(", ")", ", ")
            keyword = ","
        return sql

    def _select_sql(self) -> str:
        keyword = "SELECT DISTINCT" if self._distinct else "SELECT"
        sql = _clause("", keyword, self._select, "", "", ", ")
        sql = _clause(sql, "FROM", self._tables, "", "", ", ")
        sql = self._joins(sql)
        sql = _clause(sql, "WHERE", self._where, "(", ")", " AND ")
        sql = _clause(sql, "GROUP BY", self._group_by, "", "", ", ")
        sql = _clause(sql, "HAVING", self._having, "(", ")", " AND ")
        sql = _clause(sql, "ORDER BY", self._order_by, "", "", ", ")
        return _limit_clause(sql, self._offset, self._limit)

    def build(self) -> str:
        """Render the collected pieces as SQL; empty if no statement was begun."""
        renderers = {
            StatementType.DELETE: self._delete_sql,
            StatementType.INSERT: self._insert_sql,
            StatementType.SELECT: self._select_sql,
            StatementType.UPDATE: self._update_sql,
        }
        renderer = renderers.get(self.statement_type)
        return renderer() if renderer else ""

    def __str__(self) -> str:
        return self.build()