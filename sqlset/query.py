"""
A [Query](./#sqlset.query.Query) is a [Dataset](../sqlset.dataset) over the results of
an arbitrary SQL statement.

Examples:
    >>> import sqlite3
    >>> from sqlset import Connection
    >>> conn = Connection(sqlite3.connect(":memory:"), "sqlite")
    >>> query = Query(conn, "SELECT 1 AS one UNION SELECT 2 ORDER BY 1")
    >>> query.open()
    >>> query.one
    1
    >>> query.next()
    >>> query.one, query.eof
    (2, False)
    >>> query.next()
    >>> query.eof
    True
"""
import logging
from typing import Any, Iterable, Mapping, Optional

from .dataset import Dataset, DatasetState
from .errors import EmptyStatement
from .lib import is_blank

log = logging.getLogger("sqlset.query")


class Query(Dataset):
    """
    A dataset over the results of an SQL statement.

    Arguments:
        connection (Connection): The [Connection](../sqlset.connection) to query.
        sql (str | Iterable[str]): The statement, as a string or a list of fragments
            that are joined with spaces.
        params (Mapping): Values for the `:name` parameters of the statement.
        **kwargs: The [Dataset](../sqlset.dataset/#sqlset.dataset.Dataset) options.

    `post()` and `delete()` only change the fetched records; use
    [exec_sql()](./#sqlset.query.Query.exec_sql) or a [Table](../sqlset.table) to
    change the database.
    """

    def __init__(
        self,
        connection: Any = None,
        sql: Optional[str | Iterable[str]] = None,
        params: Optional[Mapping] = None,
        **kwargs,
    ):
        super().__init__(connection, **kwargs)
        self.sql = sql
        self.params = params

    @property
    def sql(self) -> list[str]:
        return self._sql

    @sql.setter
    def sql(self, value: Optional[str | Iterable[str]]):
        if value is None:
            self._sql = []
        elif isinstance(value, str):
            self._sql = [value]
        else:
            self._sql = list(value)

    @property
    def params(self) -> dict:
        return self._params

    @params.setter
    def params(self, value: Optional[Mapping]):
        self._params = dict(value or {})

    def _bind_params(self) -> Mapping:
        return self._params

    def build_query(self) -> str:
        """
        The statement that `open()` executes: the SQL fragments with the filter and the
        master-detail predicate added to the WHERE clause, and the ORDER BY. Blank SQL
        stays blank.
        """
        query = " ".join(str(fragment) for fragment in self._sql).strip()
        if not query:
            return ""
        query = self._where(query, self._filter)
        query = self._where(query, self._master_predicate())
        if self._order_field:
            query += f" ORDER BY {self._order_field} {self._order}"
        return query

    def _fetch_rows(self) -> list[Mapping]:
        query = self.build_query()
        if is_blank(query):
            raise EmptyStatement("Missing SQL query to execute")
        self._check_connection()
        if self._is_paged():
            return self._connection.execute_limit(
                query, self._limit_count, self._limit_start, self._bind_params()
            )
        return self._connection.execute(query, self._bind_params())

    def fetch_all(self) -> list[dict]:
        """All of the records, opening the query if necessary."""
        if self._state == DatasetState.INACTIVE:
            self.open()
        return [dict(row) for row in self._rows]

    def fetch_one(self) -> Optional[dict]:
        """The first record, opening the query if necessary; None if there is none."""
        if self._state == DatasetState.INACTIVE:
            self.open()
        return dict(self._rows[0]) if self._rows else None

    def exec_sql(self) -> int:
        """
        Execute the statement without fetching records (INSERT, UPDATE, DELETE, DDL...).

        Returns:
            (int): The number of affected rows.
        """
        query = self.build_query()
        if is_blank(query):
            raise EmptyStatement("Missing SQL query to execute")
        self._check_connection()
        log.debug("exec_sql: %s", query)
        return self._connection.execute_statement(query, self._bind_params())
