import sqlite3

import pytest

from skybooking.errors import MapperException
from skybooking.sqlbuilder import SQLBuilder, StatementType


@pytest.fixture
def people():
    db = sqlite3.connect(":memory:")
    db.execute("CREATE TABLE people (name TEXT, age INTEGER)")
    yield db
    db.close()


def test_select_with_or_order_and_limit():
    sql = (
        SQLBuilder()
        .select("a")
        .select("b")
        .from_("t AS x")
        .where("x.a = ?")
        .or_()
        .where("x.b = ?")
        .order_by("x.a DESC")
        .limit("?", "?")
        .build()
    )
    assert sql == "SELECT a, b FROM t AS x WHERE (x.a = ?) OR (x.b = ?) ORDER BY x.a DESC LIMIT ? OFFSET ?"


def test_insert_keeps_column_clause_spacing():
    sql = SQLBuilder().insert_into("users").values("name", "?").values("age", "?").build()
    assert sql == "INSERT INTO users  (name, age) VALUES (?, ?)"


def test_update_statement():
    sql = SQLBuilder().update("users AS u").set("u.name = ?").where("u.id = ?").build()
    assert sql == "UPDATE users AS u SET u.name = ? WHERE (u.id = ?)"


def test_empty_builder_renders_nothing():
    builder = SQLBuilder()
    assert builder.statement_type is None
    assert builder.build() == ""


def test_str_matches_build():
    builder = SQLBuilder().select("a").from_("t")
    assert str(builder) == builder.build()


def test_methods_chain_on_same_builder():
    builder = SQLBuilder()
    assert builder.select("a") is builder
    assert builder.where("a = 1") is builder


def test_statement_type_follows_last_starter():
    builder = SQLBuilder().delete_from("t")
    assert builder.statement_type is StatementType.DELETE
    builder.select("a")
    assert builder.statement_type is StatementType.SELECT


def test_select_distinct_prefix():
    sql = SQLBuilder().select_distinct("a").from_("t").build()
    assert sql.startswith("SELECT DISTINCT a")


def test_consecutive_where_joined_with_and():
    sql = SQLBuilder().select("a").from_("t").where("a = ?").where("b = ?").build()
    assert sql.endswith("WHERE (a = ? AND b = ?)")


def test_explicit_and_marker_splits_groups():
    sql = SQLBuilder().select("a").from_("t").where("a = ?").and_().where("b = ?").build()
    assert sql.endswith("WHERE (a = ?) AND (b = ?)")


def test_or_before_condition_raises():
    with pytest.raises(MapperException):
        SQLBuilder().select("a").or_()


def test_and_before_condition_raises():
    with pytest.raises(MapperException):
        SQLBuilder().delete_from("t").and_()


def test_single_argument_limit_uses_zero_offset():
    sql = SQLBuilder().select("a").from_("t").limit("5").build()
    assert sql.endswith("LIMIT 5 OFFSET 0")


def test_delete_limit_has_no_offset():
    sql = SQLBuilder().delete_from("t").where("a = ?").limit("5").build()
    assert sql.endswith("LIMIT 5")
    assert "OFFSET" not in sql


def test_joins_come_between_from_and_where():
    sql = (
        SQLBuilder()
        .select("a")
        .from_("t AS x")
        .left_outer_join("u AS y ON x.id = y.id")
        .where("x.a = ?")
        .build()
    )
    assert sql.index("FROM") < sql.index("LEFT OUTER JOIN") < sql.index("WHERE")


def test_repeated_joins_use_conjunction():
    sql = SQLBuilder().select("a").from_("t").inner_join("u ON 1").inner_join("v ON 1").build()
    assert sql.count("INNER JOIN") == 2


def test_having_and_group_by_order():
    sql = (
        SQLBuilder()
        .select("age")
        .from_("people")
        .where("age > ?")
        .group_by("age")
        .having("COUNT(1) > ?")
        .build()
    )
    assert sql.index("WHERE") < sql.index("GROUP BY") < sql.index("HAVING")


def test_insert_and_select_run_against_sqlite(people):
    insert = SQLBuilder().insert_into("people").values("name", "?").values("age", "?").build()
    people.execute(insert, ("ann", 30))
    select = SQLBuilder().select("p.name AS p_name").from_("people AS p").where("p.age = ?").build()
    assert people.execute(select, (30,)).fetchall() == [("ann",)]


def test_multi_row_insert_runs_against_sqlite(people):
    builder = (
        SQLBuilder()
        .insert_into("people")
        .values("name", "?")
        .values("age", "?")
        .add_row()
        .into_values("?")
        .into_values("?")
    )
    sql = builder.build()
    assert sql.count("(?, ?)") == 2
    people.execute(sql, ("ann", 30, "bob", 40))
    assert people.execute("SELECT name FROM people ORDER BY name").fetchall() == [("ann",), ("bob",)]


def test_delete_runs_against_sqlite(people):
    people.executemany("INSERT INTO people VALUES (?, ?)", [("ann", 30), ("bob", 40)])
    sql = SQLBuilder().delete_from("people").where("age = ?").build()
    people.execute(sql, (30,))
    assert people.execute("SELECT name FROM people").fetchall() == [("bob",)]


def test_grouped_select_runs_against_sqlite(people):
    people.executemany("INSERT INTO people VALUES (?, ?)", [("ann", 30), ("bob", 30), ("cy", 40)])
    sql = (
        SQLBuilder()
        .select("age")
        .select("COUNT(1)")
        .from_("people")
        .group_by("age")
        .having("COUNT(1) > ?")
        .build()
    )
    assert people.execute(sql, (1,)).fetchall() == [(30, 2)]