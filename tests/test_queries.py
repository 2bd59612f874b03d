import pytest

from sqlset import queries
from sqlset.queries import Q
from tests import fixtures


@pytest.mark.parametrize(
    "fields,filters,orderby",
    [
        (None, None, None),
        (["a", "b"], None, None),
        (None, ["a = :a", "b < :b"], None),
        (None, None, "a"),
        ([], [], []),
        (["a", "b"], [], []),
        ([], ["a = :a", "b < :b"], []),
        ([], [], "a DESC"),
    ],
)
def test_select(fields, filters, orderby):
    tablename = "tablename"
    kwargs = {
        name: value
        for name, value in {
            "fields": fields,
            "filters": filters,
            "orderby": orderby,
        }.items()
        if value
    }
    q = queries.SELECT(tablename, **kwargs)
    print(q)
    assert isinstance(q, str)
    assert f"FROM {tablename}" in q
    # The presence of certain clauses is based on the inclusion of those clauses
    assert ("SELECT *" not in q) is bool(fields)
    assert ("WHERE" in q) is bool(filters)
    assert (f"ORDER BY {orderby}" in q) is bool(orderby)


def test_select_filters_are_anded():
    q = queries.SELECT("t", filters=["a = :a", "(b = 1)"])
    assert q == "SELECT * FROM t WHERE a = :a AND (b = 1)"


@pytest.mark.parametrize("fields", fixtures.fields)
def test_insert(fields):
    tablename = "tablename"
    q = queries.INSERT(tablename, fields)
    print(q)
    assert isinstance(q, str)
    assert f"INSERT INTO {tablename}" in q
    assert q.count(",") == (len(fields) - 1) * 2


def test_insert_quoted():
    q = queries.INSERT('"users"', {"user name": "alice"}, quote=lambda k: f'"{k}"')
    assert q == 'INSERT INTO "users" ("user name") VALUES (:user_name)'


@pytest.mark.parametrize(
    "fields,filters,expected",
    [
        (["a"], ["id = :id"], "UPDATE t SET a = :a WHERE id = :id"),
        (
            {"a": 1, "b": 2},
            ["id = :id", "k = :k"],
            "UPDATE t SET a = :a, b = :b WHERE id = :id AND k = :k",
        ),
    ],
)
def test_update(fields, filters, expected):
    assert queries.UPDATE("t", fields, filters) == expected


def test_update_quoted():
    """
    The way a Table updates a record: quoted field names, filters on the key.
    """
    quote = lambda name: f'"{name}"'  # noqa: E731
    q = queries.UPDATE(
        quote("users"),
        {"status": "x", "user name": "y"},
        [Q.filter("id", quote=quote)],
        quote=quote,
    )
    assert q == (
        'UPDATE "users" SET "status" = :status, "user name" = :user_name'
        ' WHERE "id" = :id'
    )


def test_delete():
    q = queries.DELETE("t", ["a = :a", "b = :b"])
    assert q == "DELETE FROM t WHERE a = :a AND b = :b"


def test_q_param_name():
    """
    Parameter names are the field names with non-word characters replaced, so that
    they can be rendered as :name parameters.
    """
    assert Q.param_name("id") == "id"
    assert Q.param_name("first name") == "first_name"
    assert Q.param_name("a-b.c") == "a_b_c"
    assert Q.data({"first name": "Mark", "id": 1}) == {"first_name": "Mark", "id": 1}
    q = Q.filter("first name", quote=lambda k: f"[{k}]")
    assert q == "[first name] = :first_name"
