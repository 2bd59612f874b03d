"""
The `sqlset.__main__` module provides the `sqlset` command line command, which opens a
query, a table or a stored procedure and prints its records as YAML.

Every command takes the database to use as `-u/--database-url` and `-d/--dialect`,
which default to the environment variables `$DATABASE_URL` and `$DATABASE_DIALECT`.
"""
import logging
import os
import sys

import click
import yaml

from .connection import Connection
from .query import Query
from .storedproc import StoredProc
from .table import Table

database_url_option = click.option(
    "-u",
    "--database-url",
    required=False,
    help="Database to use; default = env $DATABASE_URL",
)
dialect_option = click.option(
    "-d",
    "--dialect",
    required=False,
    help="Database dialect; default = env $DATABASE_DIALECT",
)
limit_options = [
    click.option("--limit", type=int, help="Fetch at most this many records"),
    click.option("--offset", type=int, default=0, help="Skip this many records"),
]


def with_options(*options):
    def decorator(f):
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log the SQL that is executed")
def sqlset(verbose=False):  # pragma: no cover
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


def connect(database_url, dialect) -> Connection:
    database_url = database_url or os.getenv("DATABASE_URL")
    dialect = dialect or os.getenv("DATABASE_DIALECT")
    if not database_url:
        print("--database-url or env $DATABASE_URL must be set", file=sys.stderr)
        sys.exit(1)
    if not dialect:
        print("--dialect or env $DATABASE_DIALECT must be set", file=sys.stderr)
        sys.exit(1)

    return Connection.connect(database_url, dialect)


def parse_params(params) -> dict:
    data = {}
    for param in params:
        name, sep, value = param.partition("=")
        if not sep:
            raise click.BadParameter(f"{param!r} is not name=value", param_hint="-p")
        data[name] = value
    return data


def dump(records):
    print(yaml.dump(records, sort_keys=False, allow_unicode=True), end="")


@sqlset.command()
@click.argument("sql")
@click.option("-p", "--param", "params", multiple=True, help="name=value parameter")
@with_options(database_url_option, dialect_option, *limit_options)
def query(sql, params, database_url=None, dialect=None, limit=None, offset=0):
    """
    Run the query SQL and print its records.
    """
    connection = connect(database_url, dialect)
    dataset = Query(
        connection,
        sql,
        parse_params(params),
        limit_count=limit,
        limit_start=offset,
    )
    dump(dataset.fetch_all())


@sqlset.command()
@click.argument("name")
@click.option("-f", "--filter", "filter_", help="WHERE expression")
@click.option("-o", "--order-field", help="Field to order by")
@click.option("--desc", is_flag=True, help="Order descending")
@with_options(database_url_option, dialect_option, *limit_options)
def table(
    name,
    filter_=None,
    order_field=None,
    desc=False,
    database_url=None,
    dialect=None,
    limit=None,
    offset=0,
):
    """
    Print the records of the table NAME.
    """
    connection = connect(database_url, dialect)
    dataset = Table(
        connection,
        name,
        filter=filter_,
        order_field=order_field,
        order="DESC" if desc else "ASC",
        limit_count=limit,
        limit_start=offset,
    )
    dataset.open()
    dump(list(dataset))


@sqlset.command(name="exec")
@click.argument("sql")
@click.option("-p", "--param", "params", multiple=True, help="name=value parameter")
@with_options(database_url_option, dialect_option)
def exec_(sql, params, database_url=None, dialect=None):
    """
    Execute the statement SQL and print the number of affected rows.
    """
    connection = connect(database_url, dialect)
    count = Query(connection, sql, parse_params(params)).exec_sql()
    print(f"{count} rows affected")


@sqlset.command()
@click.argument("name")
@click.argument("args", nargs=-1)
@with_options(database_url_option, dialect_option)
def proc(name, args, database_url=None, dialect=None):
    """
    Call the stored procedure NAME with ARGS and print its records.
    """
    connection = connect(database_url, dialect)
    dataset = StoredProc(connection, name, args)
    dataset.execute_proc()
    if dataset.active:
        dump(list(dataset))


if __name__ == "__main__":  # pragma: no cover
    sqlset()
