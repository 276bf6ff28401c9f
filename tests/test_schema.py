import pytest

from skybooking.errors import MapperException
from skybooking.schema import (
    ColumnType,
    EntityTable,
    JoinEntityTable,
    JoinType,
    KeySql,
    camel_to_underline,
    column,
    entity,
    result_map,
    table_alias,
)


@entity
class Team:
    teamId: int = column("id", primary_key=True, default=0)
    teamName: str = ""
    deptId: int = 0


@entity
class Dept:
    deptId: int = column("id", primary_key=True, default=0)
    deptName: str = column("name", default="")
    teams: list[Team] = column(
        "id", join_type=JoinType.ONE_TO_MANY, join_on=(Team, "deptId"), default_factory=list
    )


@entity(table_name="members")
class Member:
    id: int = column(primary_key=True, default=0)
    name: str = ""
    createTime: int = 0
    team: Team = column(
        "team_id", join_type=JoinType.ONE_TO_ONE, join_on=(Team, "teamId"), default_factory=Team
    )


@entity
class Note:
    text: str = ""


@pytest.mark.parametrize(
    "name, expected",
    [
        ("idNumber", "id_number"),
        ("userLevel", "user_level"),
        ("flightNumber", "flight_number"),
        ("departureTime", "departure_time"),
        ("price", "price"),
    ],
)
def test_camel_to_underline(name, expected):
    assert camel_to_underline(name) == expected


def test_entity_default_and_explicit_table_names():
    assert result_map(Team).entity_tables[0].table_name == "team"
    assert result_map(Member).entity_tables[0].table_name == "members"
    assert result_map(Member).entity_tables[0].class_name == "Member"


def test_entity_makes_dataclass_with_defaults():
    member = Member(id=3, name="ann")
    rm = result_map(Member)
    alias = table_alias(Member)
    assert rm.key_column().value_of(member) == 3
    assert rm.property_map[f"{alias}.createTime"].value_of(member) == 0
    assert rm.property_map[f"{alias}.team"].value_of(member) == 0
    assert member.team == Team()


def test_table_alias_is_stable_and_distinct():
    assert table_alias(Team) == table_alias(Team)
    assert table_alias(Team) != table_alias(Dept)


def test_columns_are_qualified_by_alias():
    alias = table_alias(Member)
    col = result_map(Member).property_map[f"{alias}.createTime"]
    assert col.column == "create_time"
    assert col.alias == f"{alias}_create_time"
    assert col.column_with_table_alias() == f"{alias}.create_time"


def test_key_column_and_key_properties():
    rm = result_map(Member)
    key = rm.key_column()
    assert key.attribute == "id"
    assert key.column_type is ColumnType.ID
    assert key.key_sql is KeySql.ID
    assert rm.key_property == f"{table_alias(Member)}.id"
    assert rm.key_columns == {"id"}


def test_key_column_missing_raises():
    with pytest.raises(MapperException):
        result_map(Note).key_column()


def test_one_to_one_join_includes_joined_table():
    rm = result_map(Member)
    assert [t.alias for t in rm.entity_tables] == [table_alias(Member), table_alias(Team)]
    join_col = rm.property_map[f"{table_alias(Member)}.team"]
    assert join_col.join_type is JoinType.ONE_TO_ONE
    assert join_col.join_table_alias == table_alias(Team)
    assert join_col.join_property == f"{table_alias(Team)}.teamId"
    nested = rm.property_map[f"{table_alias(Team)}.teamName"]
    assert nested.path == ("team",)


def test_value_of_follows_join():
    rm = result_map(Member)
    member = Member(id=3, team=Team(teamId=7, teamName="blue"))
    assert rm.property_map[f"{table_alias(Member)}.team"].value_of(member) == 7
    assert rm.property_map[f"{table_alias(Team)}.teamName"].value_of(member) == "blue"


def test_assign_converts_and_follows_path():
    rm = result_map(Member)
    member = Member()
    rm.property_map[f"{table_alias(Team)}.teamName"].assign(member, "red")
    rm.property_map[f"{table_alias(Member)}.createTime"].assign(member, "5")
    assert member.team.teamName == "red"
    assert member.createTime == 5


def test_assign_none_gives_zero_values():
    rm = result_map(Member)
    member = Member(id=4, name="bob")
    rm.property_map[f"{table_alias(Member)}.id"].assign(member, None)
    rm.property_map[f"{table_alias(Member)}.name"].assign(member, None)
    assert member.id == 0
    assert member.name == ""


def test_assign_ignores_join_column():
    rm = result_map(Member)
    member = Member(team=Team(teamId=2))
    rm.property_map[f"{table_alias(Member)}.team"].assign(member, 9)
    assert member.team.teamId == 2


def test_is_null_only_for_empty_strings():
    rm = result_map(Member)
    alias = table_alias(Member)
    member = Member()
    assert rm.property_map[f"{alias}.name"].is_null(member) is True
    assert rm.property_map[f"{alias}.id"].is_null(member) is False
    member.name = "x"
    assert rm.property_map[f"{alias}.name"].is_null(member) is False


def test_one_to_many_column():
    rm = result_map(Dept)
    teams = rm.property_map[f"{table_alias(Dept)}.teams"]
    assert teams.container is True
    assert teams.join_type is JoinType.ONE_TO_MANY
    assert teams.join_property == f"{table_alias(Team)}.deptId"
    assert rm.property_map[f"{table_alias(Team)}.teamName"].path == ()
    dept = Dept(teams=[Team(teamId=1)])
    assert teams.value_of(dept) == [Team(teamId=1)]


def test_result_map_rejects_non_entity():
    with pytest.raises(MapperException):
        result_map(int)


def test_join_without_target_raises():
    with pytest.raises(MapperException):
        column("x_id", join_type=JoinType.ONE_TO_ONE)


def test_join_on_missing_field_raises():
    @entity
    class Broken:
        id: int = column(primary_key=True, default=0)
        team: Team = column(
            join_type=JoinType.ONE_TO_ONE, join_on=(Team, "nope"), default_factory=Team
        )

    with pytest.raises(MapperException):
        result_map(Broken)


def test_join_entity_table_defaults():
    joined = JoinEntityTable("team", "Team", table_alias(Team))
    joined.join_column = "m.team_id"
    assert isinstance(joined, EntityTable)
    assert joined.table_name == "team"
    assert joined.joined_column == ""
    assert joined.join_column == "m.team_id"