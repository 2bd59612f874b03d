import pytest

from sqlset import DatasetEvent, DatasetState, DataSource, Query, Table
from sqlset.errors import (
    EmptyDataset,
    EmptyStatement,
    InvalidArgument,
    NoConnection,
    NotActive,
    NotEditing,
)


@pytest.fixture
def users(connection):
    query = Query(connection, "SELECT * FROM users", order_field="id")
    query.open()
    return query


def test_query_navigation(users):
    """
    Over [alice, bob, charlie] ordered by id:
    - first() => alice; next() => bob
    - move_by(2) from bob => eof, one past the last record
    - prior() from eof => charlie; last() => charlie
    """
    users.first()
    assert users.bof
    assert users.username == "alice"
    users.next()
    assert users.username == "bob"
    assert not users.bof and not users.eof
    users.move_by(2)
    assert users.eof
    assert users.rec_no == 3
    assert users.fields == {}
    users.prior()
    assert users.username == "charlie"
    users.first()
    users.last()
    assert users.rec_no == 2
    assert users.field_by_name("username") == "charlie"
    users.move_by(-10)
    assert users.rec_no == 0
    users.move_to(1)
    assert users["username"] == "bob"


def test_query_round_trip(users):
    """
    first() then n * next() then n * prior() returns to the first record.
    """
    users.first()
    first = users.fields
    for _ in range(users.record_count - 1):
        users.next()
    for _ in range(users.record_count - 1):
        users.prior()
    assert users.fields == first


def test_query_empty(connection):
    query = Query(connection, "SELECT * FROM users WHERE id < 0")
    query.open()
    assert query.record_count == 0
    assert query.bof and query.eof
    query.first()
    query.last()
    assert query.bof and query.eof
    assert query.fields == {}


def test_query_fields(users):
    assert users.field_names == ["id", "username", "status"]
    assert users.field_count == 3
    assert users.field_values == [1, "alice", "active"]
    assert users.field_by_name("nonexistent") is None
    with pytest.raises(KeyError):
        users["nonexistent"]
    with pytest.raises(AttributeError):
        users.nonexistent


def test_query_iterate(users):
    assert [record["username"] for record in users] == ["alice", "bob", "charlie"]
    assert users.eof


def test_query_filter(connection):
    query = Query(connection, "SELECT * FROM users", filter="status = 'active'")
    records = query.fetch_all()
    assert len(records) == 2
    assert all(record["status"] == "active" for record in records)

    # the filter is ANDed into an existing WHERE clause
    query = Query(
        connection,
        ["SELECT * FROM users", "where username <> :username"],
        {"username": "alice"},
        filter="status = 'active'",
    )
    assert query.build_query() == (
        "SELECT * FROM users where username <> :username AND (status = 'active')"
    )
    assert [record["username"] for record in query.fetch_all()] == ["bob"]


@pytest.mark.parametrize(
    "value,expected",
    [
        ("desc", "DESC"),
        ("DESC", "DESC"),
        (" Desc ", "DESC"),
        ("asc", "ASC"),
        ("x", "ASC"),
    ],
)
def test_query_order(connection, value, expected):
    query = Query(connection, "SELECT * FROM users", order_field="username")
    query.order = value
    assert query.order == expected
    query.open()
    usernames = [record["username"] for record in query]
    assert usernames == sorted(usernames, reverse=(expected == "DESC"))


def test_query_limit(connection):
    query = Query(connection, "SELECT * FROM users", order_field="id", limit_count=2)
    assert [r["username"] for r in query.fetch_all()] == ["alice", "bob"]

    query = Query(connection, "SELECT * FROM users", order_field="id", limit_start=1)
    assert [r["username"] for r in query.fetch_all()] == ["bob", "charlie"]

    with pytest.raises(InvalidArgument):
        query.limit_count = 0
    with pytest.raises(InvalidArgument):
        query.limit_start = -1


def test_query_open_errors(connection):
    with pytest.raises(EmptyStatement):
        Query(connection, " ").open()
    with pytest.raises(NoConnection):
        Query(None, "SELECT 1").open()

    # a filter or a master-detail predicate does not make blank SQL a statement
    with pytest.raises(EmptyStatement):
        Query(connection, "", filter="id = 1").open()
    products = Table(connection, "products")
    detail = Query(
        connection,
        " ",
        master_source=DataSource(products),
        master_fields={"product_id": "id"},
    )
    assert detail.build_query() == ""
    with pytest.raises(EmptyStatement):
        detail.exec_sql()


def test_query_fetch_one_exec_sql(connection):
    query = Query(connection, "SELECT * FROM users WHERE id = :id", {"id": 2})
    assert query.fetch_one()["username"] == "bob"
    query = Query(connection, "SELECT * FROM users WHERE id = :id", {"id": 99})
    assert query.fetch_one() is None

    count = Query(connection, "DELETE FROM users WHERE status = 'active'").exec_sql()
    assert count == 2
    assert len(Query(connection, "SELECT * FROM users").fetch_all()) == 1


def test_query_state_machine(users):
    """
    - Writing a field while browsing starts an edit.
    - post() replaces the current record in the fetched records (not in the database).
    - post() while browsing raises NotEditing; while inactive raises NotActive.
    """
    assert users.state == DatasetState.BROWSE
    assert users.active
    with pytest.raises(NotEditing):
        users.post()

    users.status = "away"
    assert users.state == DatasetState.EDIT
    assert users.modified
    users.post()
    assert users.state == DatasetState.BROWSE
    assert not users.modified
    users.next()
    users.first()
    assert users.status == "away"

    users.close()
    assert users.state == DatasetState.INACTIVE
    assert users.record_count == 0
    with pytest.raises(NotActive):
        users.post()
    with pytest.raises(NotActive):
        users.edit()
    with pytest.raises(AttributeError):
        users.status = "x"


def test_query_edit_cancel(users):
    """
    edit() then field changes then cancel() restores the record as it was.
    """
    before = users.fields
    users.edit()
    users["username"] = "mallory"
    users.status = "inactive"
    users.edit()  # already editing: no-op, keeps the snapshot
    users.cancel()
    assert users.state == DatasetState.BROWSE
    assert users.fields == before


def test_query_insert(users):
    """
    - insert() starts an empty record with the same fields.
    - post() appends it to the fetched records and makes it current.
    - cancel() of an insert returns to the current record.
    """
    users.next()
    users.insert()
    assert users.state == DatasetState.INSERT
    assert users.fields == {"id": None, "username": None, "status": None}
    users.cancel()
    assert users.username == "bob"

    users.insert()
    users.username = "dave"
    users.post()
    assert users.record_count == 4
    assert users.rec_no == 3
    assert users.username == "dave"


def test_query_navigation_posts_pending_changes(users):
    users.username = "alicia"
    users.next()
    assert users.state == DatasetState.BROWSE
    users.first()
    assert users.username == "alicia"


def test_query_delete(users):
    """
    - delete() removes the current record; the following record becomes current.
    - deleting the last record leaves the cursor on the new last record.
    - deleting every record leaves the dataset empty at eof.
    - deleting while inserting only cancels the insert.
    """
    users.delete()
    assert users.record_count == 2
    assert users.username == "bob"

    users.insert()
    users.delete()
    assert users.state == DatasetState.BROWSE
    assert users.record_count == 2

    users.last()
    users.delete()
    assert users.record_count == 1
    assert users.username == "bob"

    users.delete()
    assert users.record_count == 0
    assert users.eof
    assert users.fields == {}
    with pytest.raises(EmptyDataset):
        users.delete()


def test_query_events(users):
    """
    - Callbacks are called in order with the dataset and event info.
    - An exception raised by a BEFORE callback aborts the operation.
    - Callbacks can be unregistered.
    """
    events = []

    def record(event):
        def callback(dataset, **info):
            events.append((event, dataset.username))

        return callback

    for event in [
        DatasetEvent.BEFORE_EDIT,
        DatasetEvent.AFTER_EDIT,
        DatasetEvent.BEFORE_POST,
        DatasetEvent.AFTER_POST,
        DatasetEvent.AFTER_SCROLL,
    ]:
        users.on(event, record(event))

    users.username = "alicia"
    users.post()
    users.next()
    assert events == [
        (DatasetEvent.BEFORE_EDIT, "alice"),
        (DatasetEvent.AFTER_EDIT, "alice"),
        (DatasetEvent.BEFORE_POST, "alicia"),
        (DatasetEvent.AFTER_POST, "alicia"),
        (DatasetEvent.AFTER_SCROLL, "bob"),
    ]

    def refuse(dataset, **info):
        raise RuntimeError("no deleting")

    users.on("before_delete", refuse)
    with pytest.raises(RuntimeError):
        users.delete()
    assert users.record_count == 3

    users.off(DatasetEvent.BEFORE_DELETE, refuse)
    users.delete()
    assert users.record_count == 2


def test_query_open_close_events(connection):
    events = []
    query = Query(connection, "SELECT * FROM users")
    for event in DatasetEvent:
        query.on(event, lambda dataset, event=event, **info: events.append(event))
    query.active = True
    query.active = False
    assert events == [
        DatasetEvent.BEFORE_OPEN,
        DatasetEvent.AFTER_OPEN,
        DatasetEvent.BEFORE_CLOSE,
        DatasetEvent.AFTER_CLOSE,
    ]


def test_query_attributes_before_fields(connection):
    """
    A Query's attributes take precedence over fields with the same name.
    """
    query = Query(connection, "SELECT 1 AS filter, 'x' AS state, 'y' AS other")
    query.open()
    assert query.filter == ""
    assert query.state == DatasetState.BROWSE
    assert query["filter"] == 1
    assert query.other == "y"


def test_query_refresh(connection):
    query = Query(connection, "SELECT * FROM users")
    query.open()
    connection.execute_statement("DELETE FROM users WHERE id = 1")
    assert query.record_count == 3
    query.refresh()
    assert query.record_count == 2


def test_query_master_detail(connection):
    """
    With the master on "Laptop" (id 1), the detail has its 2 orders; on "Phone", 1.
    The master is opened if it isn't.
    """
    products = Table(connection, "products", order_field="id")
    orders = Query(
        connection,
        "SELECT * FROM orders",
        master_source=DataSource(products),
        master_fields={"product_id": "id"},
    )
    orders.open()
    assert products.active
    assert products.name == "Laptop"
    assert orders.record_count == 2
    assert all(record["product_id"] == 1 for record in orders)

    products.next()
    orders.refresh()
    assert orders.record_count == 1
    assert orders.quantity == 5

    products.next()
    orders.refresh()
    assert orders.record_count == 0



def test_query_master_detail_or_filter(connection):
    """
    The filter and the master-detail predicate are each parenthesized, so a filter
    with OR doesn't let in the records of other masters.
    """
    products = Query(connection, "SELECT * FROM products", order_field="id")
    orders = Query(
        connection,
        "SELECT * FROM orders",
        filter="quantity = 5 OR quantity = 2",
        master_source=DataSource(products),
        master_fields={"product_id": "id"},
    )
    orders.open()
    assert orders.build_query() == (
        "SELECT * FROM orders"
        " WHERE (quantity = 5 OR quantity = 2) AND (product_id = '1')"
    )
    assert orders.record_count == 1
    assert orders.product_id == 1
    assert orders.quantity == 2
