# skybooking

A compact query-by-example mapper for SQL databases. Entity classes are
plain dataclasses mapped to tables; conditions are collected as criteria on
an `Example` and rendered as SQL text together with the values to bind to
its `?` placeholders. Statements run on SQLite through a small, thread-safe
connection pool.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module                   | What it holds                                                       |
|--------------------------|---------------------------------------------------------------------|
| `skybooking.schema`      | `entity`, `column`, `result_map`, `EntityColumn`, `EntityTable`, ... |
| `skybooking.criteria`    | `Criteria`, `Criterion`, `OrderBy` and the SQL operator constants    |
| `skybooking.example`     | `Example`, which builds SELECT, COUNT, INSERT, UPDATE and DELETE     |
| `skybooking.sqlbuilder`  | `SQLBuilder`, a fluent builder for SQL text                          |
| `skybooking.database`    | `Connection` and `ConnectionPool` over `sqlite3`                     |
| `skybooking.errors`      | `MapperException` and `SQLException`                                 |

## Declaring entities

```python
from skybooking.schema import column, entity


@entity(table_name="flights")
class Flight:
    id: int = column(primary_key=True, default=0)
    departure: str = ""
    destination: str = ""
    flightNumber: str = ""
    economyClassSeats: int = 0
```

`entity` turns the class into a dataclass if it is not one already. The table
name defaults to the class name in underscore form, and each column name to
the field name in underscore form (`flightNumber` becomes `flight_number`);
`column("name")` gives a column name of its own. Each table gets an alias
derived from the class name (`t_flight` here), and properties are qualified
with it (`t_flight.departure`).

Joins are declared with `column(join_type=JoinType.ONE_TO_ONE, join_on=(Other, "field"))`
or `JoinType.ONE_TO_MANY`; the joined tables are added to selects as
`LEFT OUTER JOIN`s.

## Building queries

```python
from skybooking.example import Example

example = Example(Flight)
example.create_criteria().and_equal_to("departure", "Paris").and_equal_to("destination", "Rome")
example.order_by_asc("flightNumber")
example.limit(0, 10)

sql, values = example.select_context()
```

A property may be named by its bare field name, by its qualified name
(`"t_flight.departure"`) or as a pair `(Flight, "departure")`. An unknown
property raises `MapperException`.

`Criteria` offers `and_*` and `or_*` forms of `is_null`, `is_not_null`,
`equal_to`, `not_equal_to`, `greater_than`, `greater_than_or_equal_to`,
`less_than`, `less_than_or_equal_to`, `in`, `not_in`, `between`,
`not_between`, `like`, `not_like`, `regexp`, `not_regexp` and `condition`
(a hand-written condition with at most one value), plus
`and_equal_to_record(record)`, which adds an equality test for every field of
the record's own table. Further groups are added with `Example.or_criteria()`
and `Example.and_criteria()`.

`Example` also builds the other statements:

- `select_count_context()` — `SELECT COUNT(1)` over the matching rows
- `insert_context(record, selective)` — an INSERT of every non-key column;
  with `selective=True` empty string fields are left out
- `update_context(record, selective)` — an UPDATE of the matching rows
- `delete_context()` — a DELETE of the matching rows

Each returns a pair of SQL text and the list of values to bind.

## Running them

```python
from skybooking.database import ConnectionPool

pool = ConnectionPool("bookings.db", 1, 20, 10)
pool.execute(
    "CREATE TABLE IF NOT EXISTS flights ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, departure TEXT, destination TEXT, "
    "flight_number TEXT, economy_class_seats INTEGER)"
)

sql, values = Example(Flight).insert_context(
    Flight(departure="Paris", destination="Rome", flightNumber="XY100", economyClassSeats=120)
)
affected, new_id = pool.execute(sql, values)

sql, values = example.select_context()
flights = [example.to_entity(row) for row in pool.query(sql, values)]
```

`ConnectionPool.execute` returns the affected row count and the last inserted
id; `ConnectionPool.query` returns rows as dicts keyed by column name, which
`Example.to_entity` turns back into entity instances. `pool.connection()` is a
context manager that borrows a connection for a `with` block. The pool opens
connections on demand up to its maximum, waits up to `max_wait` seconds for
one to be released and raises `SQLException` when none comes back in time.
Database errors are raised as `SQLException` too.

## SQL text on its own

```python
from skybooking.sqlbuilder import SQLBuilder

sql = SQLBuilder().select("id").from_("flights").where("id = ?").build()
# 'SELECT id FROM flights WHERE (id = ?)'
```

## What it does not do

The package is the data layer only. It has no HTTP server, no request
handlers for users, flights or orders, no ready-made entity models or table
definitions, and no command to run: tables are created by the caller, and
the mapping layer stops at producing SQL with bound values and running it
through the pool.