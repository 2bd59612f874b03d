import os

from sqlset import Connection

POSTGRESQL_URL = os.getenv("POSTGRESQL_URL")

fields = [
    # list
    (["a", "b", "c"]),
    # set
    ({"a", "b", "c"}),
    # dict
    ({"a": 1, "b": 2, "c": "%three%"}),
]

valid_dialect_names = [
    "sqlite",
    "psycopg",
    "mysql",
    "oracle",
]

# adaptors that are installed with the test extra
installed_dialect_names = [
    "sqlite",
    "psycopg",
]

invalid_dialect_names = [None, "", "foo"]

test_databases = [
    # dialect, url
    ("sqlite", ":memory:"),
]
if POSTGRESQL_URL:
    test_databases.append(("psycopg", POSTGRESQL_URL))

TABLES = ["users", "products", "orders", "notes", "settings"]

SCHEMA = {
    "sqlite": [
        """
        CREATE TABLE users (
            id integer primary key autoincrement,
            username varchar,
            status varchar
        )
        """,
        "CREATE TABLE products (id integer primary key autoincrement, name varchar)",
        """
        CREATE TABLE orders (
            id integer primary key autoincrement,
            product_id int,
            quantity int
        )
        """,
        "CREATE TABLE notes (body varchar)",
        "CREATE TABLE settings (id integer primary key, state varchar)",
    ],
    "psycopg": [
        "CREATE TABLE users (id serial primary key, username varchar, status varchar)",
        "CREATE TABLE products (id serial primary key, name varchar)",
        "CREATE TABLE orders (id serial primary key, product_id int, quantity int)",
        "CREATE TABLE notes (body varchar)",
        "CREATE TABLE settings (id integer primary key, state varchar)",
    ],
}

users = [
    {"username": "alice", "status": "active"},
    {"username": "bob", "status": "active"},
    {"username": "charlie", "status": "inactive"},
]

products = [
    {"name": "Laptop"},
    {"name": "Phone"},
]

orders = [
    {"product_id": 1, "quantity": 2},
    {"product_id": 1, "quantity": 1},
    {"product_id": 2, "quantity": 5},
]

notes = [
    {"body": "no key"},
]

settings = [
    {"id": 1, "state": "on"},
]


def create_tables(connection: Connection):
    """Create the test tables and insert the seed records into them."""
    for statement in SCHEMA[connection.dialect.value]:
        connection.execute_statement(statement)
    for table, records in [
        ("users", users),
        ("products", products),
        ("orders", orders),
        ("notes", notes),
        ("settings", settings),
    ]:
        for record in records:
            columns = ", ".join(record)
            params = ", ".join(f":{key}" for key in record)
            connection.execute_statement(
                f"INSERT INTO {table} ({columns}) VALUES ({params})", record
            )


def drop_tables(connection: Connection):
    for table in TABLES:
        connection.execute_statement(f"DROP TABLE IF EXISTS {table}")
