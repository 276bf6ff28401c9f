"""Declarative mapping between entity classes and database tables.

Entity classes are dataclasses decorated with :func:`entity`. Their fields are
mapped to columns, either by default (the field name in underscore form) or
through :func:`column`. :func:`result_map` gathers the tables and columns an
entity spans, including the entities it joins to.
"""

from __future__ import annotations

import dataclasses
import re
import typing
from dataclasses import MISSING, dataclass, field
from enum import Enum
from typing import Any

from skybooking.errors import MapperException

_META_KEY = "skybooking.column"
_TABLE_ATTR = "__entity_table__"

_SIMPLE_TYPES: dict[str, type] = {
    "int": int,
    "str": str,
    "float": float,
    "bool": bool,
    "bytes": bytes,
}
_CONTAINER_PATTERN = re.compile(
    r"^(typing\.)?(list|set|tuple|frozenset|List|Set|Tuple|FrozenSet)\["
)


class ColumnType(Enum):
    """Role of a column in its table."""

    NULL = "null"
    ID = "id"


class KeySql(Enum):
    """How a primary key is generated."""

    NULL = "null"
    ID = "id"
    UUID = "uuid"


class JoinType(Enum):
    """Relation between an entity field and another entity's table."""

    NULL = "null"
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"


@dataclass
class EntityTable:
    """The table an entity class is stored in."""

    table_name: str
    class_name: str
    alias: str


@dataclass
class JoinEntityTable(EntityTable):
    """A table reached from the main table through a join."""

    joined_column: str = ""
    joined_property: str = ""
    join_column: str = ""
    join_property: str = ""
    join_alias: str = ""


@dataclass(frozen=True)
class _ColumnSpec:
    name: str | None = None
    primary_key: bool = False
    join_type: JoinType = JoinType.NULL
    join_on: tuple[type, str] | None = None


@dataclass(frozen=True)
class EntityColumn:
    """How one entity field maps to a database column.

    ``property_name`` is the field name qualified with the table alias.
    ``path`` is the chain of one-to-one attributes leading from the root
    record (or from a collection element) to the object that owns the field.
    """

    attribute: str
    property_name: str
    column: str
    alias: str
    table_alias: str
    field_type: Any = None
    column_type: ColumnType = ColumnType.NULL
    key_sql: KeySql = KeySql.NULL
    join_type: JoinType = JoinType.NULL
    join_property: str = ""
    join_table_alias: str = ""
    join_field: str = ""
    container: bool = False
    path: tuple[str, ...] = ()

    def column_with_table_alias(self) -> str:
        """The column qualified with its table alias: ``alias.column``."""
        return f"{self.table_alias}.{self.column}"

    def _owner(self, record: Any) -> Any:
        for attribute in self.path:
            record = getattr(record, attribute)
        return record

    def value_of(self, record: Any) -> Any:
        """Read this column's value from ``record``.

        For a one-to-one join the value is the joined entity's key field.
        """
        value = getattr(self._owner(record), self.attribute)
        if self.join_type is JoinType.ONE_TO_ONE:
            return getattr(value, self.join_field)
        return value

    def assign(self, record: Any, value: Any) -> None:
        """Store ``value`` into the field of ``record``, converted to its type.

        Join fields are left untouched; they are filled through the joined
        entity's own columns.
        """
        if self.join_type is not JoinType.NULL:
            return
        setattr(self._owner(record), self.attribute, self._coerce(value))

    def _coerce(self, value: Any) -> Any:
        kind = self.field_type
        if value is None:
            return {int: 0, str: "", float: 0.0}.get(kind) if kind in (int, str, float) else None
        if kind is str and isinstance(value, (bytes, bytearray)):
            return bytes(value).decode()
        if kind in (int, str, float) and not isinstance(value, kind):
            return kind(value)
        return value

    def is_null(self, record: Any) -> bool:
        """Whether the field counts as unset; only empty strings do."""
        if self.field_type is not str:
            return False
        value = self.value_of(record)
        return value is None or value == ""


@dataclass
class EntityTableMap:
    """All tables and columns an entity spans, keyed by qualified property."""

    entity_tables: list[EntityTable] = field(default_factory=list)
    property_map: dict[str, EntityColumn] = field(default_factory=dict)
    key_property: str = ""
    key_columns: set[str] = field(default_factory=set)

    def key_column(self) -> EntityColumn:
        """The primary key column of the root table."""
        if self.entity_tables:
            root_alias = self.entity_tables[0].alias
            for entity_column in self.property_map.values():
                if (
                    entity_column.column_type is ColumnType.ID
                    and entity_column.table_alias == root_alias
                ):
                    return entity_column
        raise MapperException("entity has no primary key column")


def camel_to_underline(name: str) -> str:
    """Turn ``camelCase`` or ``CamelCase`` into ``camel_case``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def column(
    name: str | None = None,
    *,
    primary_key: bool = False,
    join_type: JoinType = JoinType.NULL,
    join_on: tuple[type, str] | None = None,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """Declare an entity field with explicit column mapping.

    ``join_on`` names the joined entity class and its field, as
    ``(EntityClass, "field")``; it is required when ``join_type`` is set.
    """
    if join_type is not JoinType.NULL:
        if (
            not isinstance(join_on, tuple)
            or len(join_on) != 2
            or not isinstance(join_on[0], type)
            or not isinstance(join_on[1], str)
        ):
            raise MapperException("a joined column needs join_on=(EntityClass, 'field')")
    spec = _ColumnSpec(name, primary_key, join_type, join_on)
    return field(default=default, default_factory=default_factory, metadata={_META_KEY: spec})


def table_alias(entity_cls: type) -> str:
    """The alias used for an entity's table in generated SQL."""
    return "t_" + camel_to_underline(entity_cls.__name__)


def entity(cls: type | None = None, *, table_name: str | None = None) -> Any:
    """Class decorator that makes ``cls`` a dataclass mapped to a table.

    The table name defaults to the class name in underscore form.
    """

    def wrap(target: type) -> type:
        if not dataclasses.is_dataclass(target):
            target = dataclass(target)
        name = table_name or camel_to_underline(target.__name__)
        setattr(target, _TABLE_ATTR, EntityTable(name, target.__name__, table_alias(target)))
        return target

    return wrap if cls is None else wrap(cls)


def _entity_table(entity_cls: Any) -> EntityTable:
    table = getattr(entity_cls, _TABLE_ATTR, None) if isinstance(entity_cls, type) else None
    if not isinstance(table, EntityTable):
        raise MapperException(f"{entity_cls!r} is not an entity class")
    return table


def _is_container(field_type: Any) -> bool:
    if isinstance(field_type, str):
        return bool(_CONTAINER_PATTERN.match(field_type.strip()))
    origin = typing.get_origin(field_type) or field_type
    return origin in (list, set, tuple, frozenset)


def _resolve_type(annotation: Any, spec: _ColumnSpec) -> Any:
    """Turn a field annotation into a usable type without evaluating text."""
    if not isinstance(annotation, str):
        return annotation
    text = annotation.strip()
    if spec.join_on is not None:
        join_cls = spec.join_on[0]
        if spec.join_type is JoinType.ONE_TO_MANY:
            return list[join_cls]
        if spec.join_type is JoinType.ONE_TO_ONE:
            return join_cls
    return _SIMPLE_TYPES.get(text, text)


def _build_column(
    entity_cls: type, entity_field: dataclasses.Field, path: tuple[str, ...]
) -> EntityColumn:
    spec = entity_field.metadata.get(_META_KEY) or _ColumnSpec()
    raw_type = entity_field.type
    field_type = _resolve_type(raw_type, spec)
    alias = table_alias(entity_cls)
    column_name = spec.name or camel_to_underline(entity_field.name)
    join_property = join_table_alias = join_field = ""
    if spec.join_type is not JoinType.NULL:
        join_cls, join_field = spec.join_on
        _entity_table(join_cls)
        if join_field not in {f.name for f in dataclasses.fields(join_cls)}:
            raise MapperException(f"[property]{join_field} is not exist!")
        join_table_alias = table_alias(join_cls)
        join_property = f"{join_table_alias}.{join_field}"
    return EntityColumn(
        attribute=entity_field.name,
        property_name=f"{alias}.{entity_field.name}",
        column=column_name,
        alias=f"{alias}_{column_name}",
        table_alias=alias,
        field_type=field_type,
        column_type=ColumnType.ID if spec.primary_key else ColumnType.NULL,
        key_sql=KeySql.ID if spec.primary_key else KeySql.NULL,
        join_type=spec.join_type,
        join_property=join_property,
        join_table_alias=join_table_alias,
        join_field=join_field,
        container=_is_container(raw_type) or _is_container(field_type),
        path=path,
    )


def _collect(
    entity_cls: type, path: tuple[str, ...], result: EntityTableMap, seen: set[str]
) -> None:
    table = _entity_table(entity_cls)
    if table.alias in seen:
        return
    seen.add(table.alias)
    result.entity_tables.append(table)
    for entity_field in dataclasses.fields(entity_cls):
        entity_column = _build_column(entity_cls, entity_field, path)
        result.property_map[entity_column.property_name] = entity_column
        if entity_column.join_type is JoinType.NULL:
            continue
        join_cls = entity_field.metadata[_META_KEY].join_on[0]
        if entity_column.join_type is JoinType.ONE_TO_ONE:
            _collect(join_cls, path + (entity_field.name,), result, seen)
        else:
            _collect(join_cls, (), result, seen)


def result_map(entity_cls: type) -> EntityTableMap:
    """Gather the tables and columns of ``entity_cls`` and the entities it joins."""
    result = EntityTableMap()
    _collect(entity_cls, (), result, set())
    root_alias = result.entity_tables[0].alias
    for entity_column in result.property_map.values():
        if entity_column.column_type is ColumnType.ID and entity_column.table_alias == root_alias:
            if not result.key_property:
                result.key_property = entity_column.property_name
            result.key_columns.add(entity_column.column)
    return result