"""
The `Connection` wraps a DB-API 2.0 database connection and provides the services that
datasets and the query builder need: running queries written with `:name` parameters,
limiting them to a window of rows, transactions, and a little schema introspection.

Examples:
    >>> import sqlite3
    >>> conn = Connection(sqlite3.connect(":memory:"), "sqlite")
    >>> conn.execute_statement("CREATE TABLE widgets (id integer primary key, sku)")
    -1
    >>> conn.execute_statement("INSERT INTO widgets (sku) VALUES (:sku)", {"sku": "C"})
    1
    >>> conn.last_insert_id()
    1
    >>> conn.execute("SELECT * FROM widgets")
    [{'id': 1, 'sku': 'C'}]
    >>> conn.list_primary_key_columns("widgets")
    ['id']
"""
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional

from .dialect import Dialect
from .errors import ExecutionFailure
from .sql import SQL

log = logging.getLogger("sqlset.connection")


@dataclass
class Connection:
    """
    A database connection for a given dialect.

    Outside of an explicit transaction every statement is committed when it succeeds
    and rolled back when it fails, so that the connection is never left in an unusable
    state. Inside a transaction (`begin_transaction()` or `with conn.transaction():`)
    nothing is committed or rolled back until the transaction is completed.

    Arguments:
        connection (Any): A DB-API 2.0 compliant database connection.
        dialect (Dialect): The SQL [dialect](sqlset.dialect.md) of the database.
    """

    connection: Any
    dialect: Dialect
    _depth: int = field(default=0, init=False, repr=False)
    _cursor: Any = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.dialect, Dialect):
            self.dialect = Dialect(self.dialect)
        self.sql = SQL(dialect=self.dialect)

    @classmethod
    def connect(cls, url: str, dialect: Dialect | str) -> "Connection":
        """
        Open a connection to the database at `url` using the adaptor of the dialect.

        Arguments:
            url (str): The database url, passed to the adaptor's `connect()`. For
                sqlite, a `file:` url is opened as an sqlite URI.
            dialect (Dialect | str): The SQL dialect of the database.

        Returns:
            (Connection): The connected Connection.
        """
        dialect = Dialect(dialect)
        adaptor = dialect.adaptor()
        if dialect == Dialect.SQLITE and url.startswith("file:"):
            connection = adaptor.connect(url, uri=True)
        else:
            connection = adaptor.connect(url)
        log.debug("connected to %s database", dialect.value)
        return cls(connection, dialect)

    def close(self):
        self.connection.close()

    # -- queries --

    def _run(self, query: str | Iterator, data: Optional[Mapping] = None):
        query_str, params = self.sql.render(query, data)
        log.debug("%s %r", query_str, params)
        cursor = self.connection.cursor()
        try:
            cursor.execute(query_str, params)
        except Exception as exc:
            if not self._depth:
                self.connection.rollback()
            raise ExecutionFailure(query_str, exc) from exc

        self._cursor = cursor
        return cursor

    def _autocommit(self):
        if not self._depth:
            self.connection.commit()

    @staticmethod
    def _records(cursor) -> list[dict]:
        # the last result set with a description wins (e.g. CALL proc; SELECT ...)
        records = []
        while True:
            if cursor.description:
                keys = [d[0] for d in cursor.description]
                records = [dict(zip(keys, row)) for row in cursor.fetchall()]
            nextset = getattr(cursor, "nextset", None)
            if nextset is None or not nextset():
                break
        return records

    def execute(
        self, query: str | Iterator, data: Optional[Mapping] = None
    ) -> list[dict]:
        """
        Execute the given query and return the resulting records.

        Parameters:
            query (str | Iterator): A query that will be rendered with the given data.
            data (Optional[Mapping]): A data mapping that will be rendered as params
                with the query. Optional, but required if the query contains parameters.

        Returns:
            records (list[dict]): One dict per row, keyed by column name.

        Raises:
            ExecutionFailure: if the database rejects the query.
        """
        cursor = self._run(query, data)
        records = self._records(cursor)
        self._autocommit()
        return records

    def execute_statement(
        self, query: str | Iterator, data: Optional[Mapping] = None
    ) -> int:
        """
        Execute a statement that returns no records (INSERT, UPDATE, DELETE, DDL...).

        Returns:
            (int): The number of affected rows, as reported by the adaptor (-1 if the
                adaptor can't tell).
        """
        cursor = self._run(query, data)
        self._autocommit()
        return cursor.rowcount

    def execute_limit(
        self,
        query: str,
        limit: Optional[int] = None,
        offset: int = 0,
        data: Optional[Mapping] = None,
    ) -> list[dict]:
        """
        Execute the query limited to at most `limit` rows starting at row `offset`.
        """
        return self.execute(self.dialect.limit_query(query, limit, offset), data)

    def last_insert_id(self) -> Any:
        """
        The id generated by the last INSERT on this connection, or None if the adaptor
        doesn't provide one.
        """
        if self.dialect == Dialect.PSYCOPG:
            records = self.execute("SELECT lastval() AS id")
            return records[0]["id"] if records else None
        elif self.dialect == Dialect.ORACLE:
            return None
        else:
            return getattr(self._cursor, "lastrowid", None)

    # -- transactions --

    def begin_transaction(self):
        """
        Start a transaction. Transactions nest: only the outermost transaction is
        committed or rolled back.
        """
        self._depth += 1
        log.debug("begin transaction (depth=%d)", self._depth)

    def commit(self):
        self._depth = max(0, self._depth - 1)
        if not self._depth:
            log.debug("commit")
            self.connection.commit()

    def rollback(self):
        self._depth = 0
        log.debug("rollback")
        self.connection.rollback()

    def complete_transaction(self, commit: bool = True) -> bool:
        """
        Commit (or roll back, if `commit` is False) the current transaction.

        Returns:
            (bool): True if the transaction was committed; False if it was rolled back
                or the commit failed (in which case it has been rolled back).
        """
        if not commit:
            self.rollback()
            return False
        try:
            self.commit()
        except Exception as exc:
            log.warning("commit failed, rolling back: %s", exc)
            self.rollback()
            return False
        return True

    @contextmanager
    def transaction(self):
        """
        Run the enclosed statements in a transaction: commit on success, roll back and
        re-raise on failure.

        Examples:
            >>> import sqlite3
            >>> conn = Connection(sqlite3.connect(":memory:"), "sqlite")
            >>> with conn.transaction():
            ...     conn.execute_statement("CREATE TABLE t (x int)")
            -1
        """
        self.begin_transaction()
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit()

    # -- quoting --

    def quote_identifier(self, name: str) -> str:
        """
        Quote a (possibly schema-qualified) identifier for this dialect.

        Examples:
            >>> import sqlite3
            >>> Connection(sqlite3.connect(":memory:"), "sqlite").quote_identifier(
            ...     "main.users"
            ... )
            '"main"."users"'
        """
        quote = self.dialect.identifier_quote
        return ".".join(
            f"{quote}{part.replace(quote, quote * 2)}{quote}"
            for part in str(name).split(".")
        )

    def quote_string(self, value: Any) -> str:
        """
        Render a value as an SQL literal. None is NULL, booleans are 1 / 0, everything
        else is a quoted string. Colons are escaped so that the literal is never read
        as a query parameter.

        Examples:
            >>> import sqlite3
            >>> conn = Connection(sqlite3.connect(":memory:"), "sqlite")
            >>> conn.quote_string("O'Reilly")
            "'O''Reilly'"
            >>> conn.quote_string(None)
            'NULL'
        """
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            value = int(value)
        text = str(value).replace("'", "''")
        if self.dialect == Dialect.MYSQL:
            text = text.replace("\\", "\\\\")
        text = re.sub(r":(?=\w)", r"\\:", text)
        return f"'{text}'"

    # -- introspection --

    def list_column_names(self, table: str) -> list[str]:
        """The names of the columns of the table, in table order."""
        if self.dialect == Dialect.SQLITE:
            records = self.execute(f"PRAGMA table_info({self.quote_identifier(table)})")
            return [record["name"] for record in records]
        elif self.dialect == Dialect.ORACLE:
            records = self.execute(
                """
                SELECT column_name FROM user_tab_columns
                WHERE table_name = :table ORDER BY column_id
                """,
                {"table": table.upper()},
            )
        else:
            schema = (
                "DATABASE()" if self.dialect == Dialect.MYSQL else "current_schema()"
            )
            records = self.execute(
                f"""
                SELECT column_name FROM information_schema.columns
                WHERE table_schema = {schema} AND table_name = :table
                ORDER BY ordinal_position
                """,
                {"table": table},
            )
        return [list(record.values())[0] for record in records]

    def list_primary_key_columns(self, table: str) -> list[str]:
        """The names of the primary key columns of the table, in key order."""
        if self.dialect == Dialect.SQLITE:
            records = self.execute(f"PRAGMA table_info({self.quote_identifier(table)})")
            return [
                record["name"]
                for record in sorted(records, key=lambda r: r["pk"])
                if record["pk"]
            ]
        for index in self.list_indexes(table, primary_only=True).values():
            return index["columns"]
        return []

    def list_indexes(self, table: str, primary_only: bool = False) -> dict:
        """
        The indexes of the table.

        Arguments:
            table (str): The name of the table.
            primary_only (bool): Only include the primary key index.

        Returns:
            (dict): index name => {"unique": bool, "primary": bool, "columns": list}
        """
        indexes = {}
        if self.dialect == Dialect.SQLITE:
            quoted_table = self.quote_identifier(table)
            columns = [
                record["name"]
                for record in sorted(
                    self.execute(f"PRAGMA table_info({quoted_table})"),
                    key=lambda r: r["pk"],
                )
                if record["pk"]
            ]
            if columns:
                indexes["PRIMARY"] = {
                    "unique": True,
                    "primary": True,
                    "columns": columns,
                }
            if not primary_only:
                for record in self.execute(f"PRAGMA index_list({quoted_table})"):
                    if record.get("origin") == "pk":
                        continue
                    quoted_index = self.quote_identifier(record["name"])
                    info = sorted(
                        self.execute(f"PRAGMA index_info({quoted_index})"),
                        key=lambda i: i["seqno"],
                    )
                    indexes[record["name"]] = {
                        "unique": bool(record["unique"]),
                        "primary": False,
                        "columns": [i["name"] for i in info],
                    }
            return indexes

        if self.dialect == Dialect.PSYCOPG:
            query = """
                SELECT i.relname AS index_name, a.attname AS column_name,
                    ix.indisunique AS is_unique, ix.indisprimary AS is_primary
                FROM pg_class t
                JOIN pg_index ix ON t.oid = ix.indrelid
                JOIN pg_class i ON i.oid = ix.indexrelid
                JOIN pg_attribute a
                    ON a.attrelid = t.oid AND a.attnum = ANY(CAST(ix.indkey AS int2[]))
                WHERE t.relname = :table AND pg_table_is_visible(t.oid)
                ORDER BY i.relname, array_position(CAST(ix.indkey AS int2[]), a.attnum)
                """
        elif self.dialect == Dialect.MYSQL:
            query = """
                SELECT index_name, column_name, non_unique = 0 AS is_unique,
                    index_name = 'PRIMARY' AS is_primary
                FROM information_schema.statistics
                WHERE table_schema = DATABASE() AND table_name = :table
                ORDER BY index_name, seq_in_index
                """
        else:
            query = """
                SELECT i.index_name, c.column_name,
                    CASE WHEN i.uniqueness = 'UNIQUE' THEN 1 ELSE 0 END AS is_unique,
                    CASE WHEN k.constraint_type = 'P' THEN 1 ELSE 0 END AS is_primary
                FROM user_indexes i
                JOIN user_ind_columns c ON c.index_name = i.index_name
                LEFT JOIN user_constraints k
                    ON k.index_name = i.index_name AND k.constraint_type = 'P'
                WHERE i.table_name = :table
                ORDER BY i.index_name, c.column_position
                """
            table = table.upper()

        for record in self.execute(query, {"table": table}):
            # oracle reports upper-case column labels
            record = {key.lower(): value for key, value in record.items()}
            if primary_only and not record["is_primary"]:
                continue
            index = indexes.setdefault(
                record["index_name"],
                {
                    "unique": bool(record["is_unique"]),
                    "primary": bool(record["is_primary"]),
                    "columns": [],
                },
            )
            index["columns"].append(record["column_name"])
        return indexes
