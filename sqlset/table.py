"""
A [Table](./#sqlset.table.Table) is a [Dataset](../sqlset.dataset) over the records of
one database table. Posting and deleting records issue the corresponding INSERT, UPDATE
and DELETE statements, using the table's primary key to identify the record.

Examples:
    >>> import sqlite3
    >>> from sqlset import Connection
    >>> conn = Connection(sqlite3.connect(":memory:"), "sqlite")
    >>> conn.execute_statement(
    ...     "CREATE TABLE users (id integer primary key autoincrement, username text)"
    ... )
    -1
    >>> users = Table(conn, "users")
    >>> users.open()
    >>> users.insert()
    >>> users.username = "alice"
    >>> users.post()
    >>> users.id, users.record_count
    (1, 1)
"""
import inspect
import logging
from typing import Any

from . import queries
from .dataset import Dataset, DatasetState
from .errors import DatabaseError
from .lib import is_blank
from .queries import Q

log = logging.getLogger("sqlset.table")


class Table(Dataset):
    """
    A dataset over a database table.

    Arguments:
        connection (Connection): The [Connection](../sqlset.connection) of the table.
        table_name (str): The name of the table. A table with a blank name opens empty.
        auto_increment (bool): If true (the default), the first key field is generated
            by the database on insert and read back with `last_insert_id()`.
        **kwargs: The [Dataset](../sqlset.dataset/#sqlset.dataset.Dataset) options.

    The fields of the current record shadow the properties of the table: while the
    table is open, `table.name` is the "name" field if the table has one. Methods are
    never shadowed.
    """

    def __init__(
        self,
        connection: Any = None,
        table_name: str = "",
        *,
        auto_increment: bool = True,
        **kwargs,
    ):
        self._table_name = table_name or ""
        self._auto_increment = auto_increment
        self._key_fields = []
        super().__init__(connection, **kwargs)

    def _shadows(self, name: str) -> bool:
        attrs = object.__getattribute__(self, "__dict__")
        return (
            not name.startswith("_")
            and attrs.get("_state", DatasetState.INACTIVE) != DatasetState.INACTIVE
            and name in attrs.get("_buffer", {})
            and not inspect.isroutine(getattr(type(self), name, None))
        )

    def __getattribute__(self, name):
        if name[:1] != "_" and Table._shadows(self, name):
            return object.__getattribute__(self, "_buffer")[name]
        return object.__getattribute__(self, name)

    def __setattr__(self, name, value):
        if self._shadows(name):
            self.set_field(name, value)
        else:
            super().__setattr__(name, value)

    @property
    def table_name(self) -> str:
        return self._table_name

    @table_name.setter
    def table_name(self, value: str):
        self._table_name = value or ""

    @property
    def auto_increment(self) -> bool:
        return self._auto_increment

    @auto_increment.setter
    def auto_increment(self, value: bool):
        self._auto_increment = bool(value)

    @property
    def key_fields(self) -> list[str]:
        """The primary key fields of the table, discovered when it is opened."""
        return list(self._key_fields)

    def _quoted_name(self) -> str:
        return self._connection.quote_identifier(self._table_name)

    def build_query(self) -> str:
        """
        `SELECT * FROM table`, filtered by the filter and the master-detail predicate,
        and ordered by the order_field.
        """
        self._check_connection()
        filters = [self._filter] if self._filter else []
        predicate = self._master_predicate()
        if predicate:
            filters.append(predicate)
        if len(filters) > 1:
            filters = [f"({f})" for f in filters]
        orderby = f"{self._order_field} {self._order}" if self._order_field else None
        return queries.SELECT(self._quoted_name(), filters=filters, orderby=orderby)

    def _discover_key_fields(self) -> list[str]:
        keys = self._connection.list_primary_key_columns(self._table_name)
        if not keys:
            indexes = self._connection.list_indexes(
                self._table_name, primary_only=False
            )
            keys = next(iter(indexes.values()), {}).get("columns", [])
        return list(keys)

    def _fetch_rows(self) -> list[dict]:
        if is_blank(self._table_name):
            self._key_fields = []
            return []
        self._check_connection()
        self._key_fields = self._discover_key_fields()
        log.debug("%s key fields: %s", self._table_name, self._key_fields)
        query = self.build_query()
        if self._is_paged():
            return self._connection.execute_limit(
                query, self._limit_count, self._limit_start
            )
        return self._connection.execute(query)

    def _empty_record(self) -> dict:
        if is_blank(self._table_name):
            return super()._empty_record()
        names = self._connection.list_column_names(self._table_name)
        return {name: None for name in names} or super()._empty_record()

    def _post_edit(self):
        where = {}
        for key in self._key_fields:
            value = self._snapshot.get(key)
            if value is None:
                value = self._buffer.get(key)
            elif self._buffer.get(key) != value:
                # key fields are not updated: the record keeps its stored key
                log.debug("%s: key field %s is not updated", self._table_name, key)
                self._buffer[key] = value
            if not is_blank(value):
                where[key] = value
        values = {
            key: value
            for key, value in self._buffer.items()
            if key not in self._key_fields
        }
        if not where or not values or self._buffer == self._snapshot:
            log.debug("%s: nothing to update", self._table_name)
            return

        quote = self._connection.quote_identifier
        query = queries.UPDATE(
            self._quoted_name(),
            values,
            [Q.filter(key, quote=quote) for key in where],
            quote=quote,
        )
        self._connection.execute_statement(query, Q.data({**values, **where}))

    def _post_insert(self):
        record = dict(self._buffer)
        generated_key = None
        if self._auto_increment and self._key_fields:
            for key in self._key_fields:
                if not record.get(key):
                    record.pop(key, None)
            if not self._buffer.get(self._key_fields[0]):
                generated_key = self._key_fields[0]
        record = {
            key: value
            for key, value in record.items()
            if value is not None and value != ""
        }

        if record:
            query = queries.INSERT(
                self._quoted_name(), record, quote=self._connection.quote_identifier
            )
        else:
            default_values = self._connection.dialect.default_values
            if default_values is None:
                raise DatabaseError(
                    f"Cannot insert an empty record into {self._table_name}"
                )
            query = f"INSERT INTO {self._quoted_name()} {default_values}"
        self._connection.execute_statement(query, Q.data(record))

        if generated_key:
            last_id = self._connection.last_insert_id()
            if last_id:
                self._buffer[generated_key] = last_id

    def _delete_record(self):
        where = {
            key: self._buffer.get(key)
            for key in self._key_fields
            if not is_blank(self._buffer.get(key))
        }
        if not where:
            raise DatabaseError(
                f"Cannot delete from {self._table_name}:"
                " no key values identify the record"
            )
        query = queries.DELETE(
            self._quoted_name(),
            [Q.filter(key, quote=self._connection.quote_identifier) for key in where],
        )
        self._connection.execute_statement(query, Q.data(where))
