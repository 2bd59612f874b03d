"""
The [QueryBuilder](./#sqlset.builder.QueryBuilder) assembles SELECT, INSERT, UPDATE and
DELETE statements with a fluent interface. Every value given to the builder becomes a
`:pN` parameter; the values are kept in the builder and sent with the statement.

Examples:
    >>> import sqlite3
    >>> from sqlset import Connection
    >>> conn = Connection(sqlite3.connect(":memory:"), "sqlite")
    >>> qb = (
    ...     QueryBuilder(conn)
    ...     .select("u.id", "u.username")
    ...     .from_("users", "u")
    ...     .where("u.status", "=", "active")
    ...     .and_where("u.id", "in", [1, 2, 3])
    ...     .order_by("u.username")
    ...     .limit(10)
    ... )
    >>> print(qb.get_sql())  # doctest: +NORMALIZE_WHITESPACE
    SELECT u.id, u.username FROM users u
    WHERE (u.status = :p1) AND (u.id IN (:p2, :p3, :p4))
    ORDER BY u.username ASC LIMIT 10
    >>> qb.get_parameters()
    {'p1': 'active', 'p2': 1, 'p3': 2, 'p4': 3}
"""
from typing import Any, Optional

from .errors import InvalidArgument


def _render(expression) -> str:
    # expression = str | (conjunction, [expression, ...])
    if isinstance(expression, tuple):
        conjunction, parts = expression
        return f" {conjunction} ".join(f"({_render(part)})" for part in parts)
    return expression


def _compose(current, conjunction: str, condition: str):
    if current is None:
        return condition
    if isinstance(current, tuple) and current[0] == conjunction:
        return (conjunction, current[1] + [condition])
    return (conjunction, [current, condition])


class QueryBuilder:
    """
    A fluent SQL statement builder bound to a [Connection](../sqlset.connection).

    Arguments:
        connection (Connection): The connection that the statement is executed on. Its
            dialect is used to LIMIT / OFFSET SELECT statements.
        prefix (str): Prepended to the names of the placeholders (sub-queries).
    """

    def __init__(self, connection: Any, prefix: str = ""):
        self._connection = connection
        self._prefix = prefix
        self._sub_queries = 0
        self.reset()

    def __repr__(self):
        return f"{type(self).__name__}({self.get_sql()!r})"

    def reset(self) -> "QueryBuilder":
        """Clear the statement, its parameters and the parameter counter."""
        self._type = "select"
        self._select = []
        self._distinct = False
        self._table = None
        self._alias = None
        self._joins = []
        self._where = None
        self._group_by = []
        self._having = None
        self._order_by = []
        self._limit = None
        self._offset = 0
        self._values = []
        self._params = {}
        self._counter = 0
        return self

    def create_sub_query(self) -> "QueryBuilder":
        """
        A new, empty builder on the same connection. Its placeholders are prefixed
        (`:s1_p1`, ...) so that its SQL and parameters can be merged into this builder
        with `where_raw()` and `set_parameters()`.
        """
        self._sub_queries += 1
        prefix = f"{self._prefix}s{self._sub_queries}_"
        return type(self)(self._connection, prefix=prefix)

    # -- parameters --

    def _param(self, value: Any) -> str:
        self._counter += 1
        name = f"{self._prefix}p{self._counter}"
        self._params[name] = value
        return f":{name}"

    def _condition(self, column: str, operator: str, value: Any = None) -> str:
        operator = " ".join(operator.split()).upper()
        if operator in {"IS NULL", "IS NOT NULL"}:
            return f"{column} {operator}"
        elif operator in {"IN", "NOT IN"}:
            if not isinstance(value, (list, tuple, set)):
                value = [value]
            placeholders = ", ".join(self._param(v) for v in value)
            return f"{column} {operator} ({placeholders})"
        elif operator == "BETWEEN":
            if not isinstance(value, (list, tuple)) or len(value) < 2:
                raise InvalidArgument("BETWEEN requires a sequence of 2 values")
            low, high = self._param(value[0]), self._param(value[1])
            return f"{column} BETWEEN {low} AND {high}"
        else:
            return f"{column} {operator} {self._param(value)}"

    def set_parameter(self, name: str, value: Any) -> "QueryBuilder":
        """Set the value of a `:name` parameter used in a raw expression."""
        self._params[name] = value
        return self

    def set_parameters(self, params: dict) -> "QueryBuilder":
        self._params.update(params)
        return self

    def get_parameters(self) -> dict:
        return dict(self._params)

    # -- SELECT --

    def select(self, *columns: str) -> "QueryBuilder":
        """Start a SELECT of the given columns (replacing any selected columns)."""
        self._type = "select"
        self._select = list(columns)
        return self

    def add_select(self, *columns: str) -> "QueryBuilder":
        self._type = "select"
        self._select.extend(columns)
        return self

    def distinct(self, distinct: bool = True) -> "QueryBuilder":
        self._distinct = distinct
        return self

    def from_(self, table: str, alias: Optional[str] = None) -> "QueryBuilder":
        self._table = table
        self._alias = alias
        return self

    def join(self, table: str, alias: str, condition: str) -> "QueryBuilder":
        return self.inner_join(table, alias, condition)

    def inner_join(self, table: str, alias: str, condition: str) -> "QueryBuilder":
        self._joins.append(f"INNER JOIN {table} {alias} ON {condition}")
        return self

    def left_join(self, table: str, alias: str, condition: str) -> "QueryBuilder":
        self._joins.append(f"LEFT JOIN {table} {alias} ON {condition}")
        return self

    def right_join(self, table: str, alias: str, condition: str) -> "QueryBuilder":
        self._joins.append(f"RIGHT JOIN {table} {alias} ON {condition}")
        return self

    def where(self, column: str, operator: str, value: Any = None) -> "QueryBuilder":
        """
        Set (replace) the WHERE condition to `column operator value`. Operators:

        * `IS NULL`, `IS NOT NULL`: the value is ignored.
        * `IN`, `NOT IN`: one parameter per element of the value (a single value is a
          list of one).
        * `BETWEEN`: the value is a sequence of (low, high).
        * anything else (`=`, `<>`, `LIKE`, ...): one parameter.
        """
        self._where = self._condition(column, operator, value)
        return self

    def and_where(
        self, column: str, operator: str, value: Any = None
    ) -> "QueryBuilder":
        condition = self._condition(column, operator, value)
        self._where = _compose(self._where, "AND", condition)
        return self

    def or_where(self, column: str, operator: str, value: Any = None) -> "QueryBuilder":
        condition = self._condition(column, operator, value)
        self._where = _compose(self._where, "OR", condition)
        return self

    def where_raw(self, expression: str) -> "QueryBuilder":
        self._where = expression
        return self

    def and_where_raw(self, expression: str) -> "QueryBuilder":
        self._where = _compose(self._where, "AND", expression)
        return self

    def or_where_raw(self, expression: str) -> "QueryBuilder":
        self._where = _compose(self._where, "OR", expression)
        return self

    def group_by(self, *columns: str) -> "QueryBuilder":
        self._group_by = list(columns)
        return self

    def add_group_by(self, *columns: str) -> "QueryBuilder":
        self._group_by.extend(columns)
        return self

    def having(self, condition: str) -> "QueryBuilder":
        self._having = condition
        return self

    def and_having(self, condition: str) -> "QueryBuilder":
        self._having = _compose(self._having, "AND", condition)
        return self

    def or_having(self, condition: str) -> "QueryBuilder":
        self._having = _compose(self._having, "OR", condition)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        self._order_by = [f"{column} {direction.upper()}"]
        return self

    def add_order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        self._order_by.append(f"{column} {direction.upper()}")
        return self

    def limit(self, limit: int) -> "QueryBuilder":
        self._limit = limit
        return self

    def offset(self, offset: int) -> "QueryBuilder":
        self._offset = offset
        return self

    # -- INSERT / UPDATE / DELETE --

    def insert(self, table: str) -> "QueryBuilder":
        self._type = "insert"
        self._table = table
        self._alias = None
        return self

    def set_value(self, column: str, value: Any) -> "QueryBuilder":
        """Add a column value to an INSERT."""
        self._values.append((column, self._param(value)))
        return self

    def set_values(self, values: dict) -> "QueryBuilder":
        for column, value in values.items():
            self.set_value(column, value)
        return self

    def update(self, table: str, alias: Optional[str] = None) -> "QueryBuilder":
        self._type = "update"
        self._table = table
        self._alias = alias
        return self

    def set(self, column: str, value: Any) -> "QueryBuilder":
        """Add a `column = value` assignment to an UPDATE."""
        self._values.append((column, self._param(value)))
        return self

    def delete(self, table: str, alias: Optional[str] = None) -> "QueryBuilder":
        self._type = "delete"
        self._table = table
        self._alias = alias
        return self

    # -- rendering --

    def _relation(self) -> str:
        return f"{self._table} {self._alias}" if self._alias else str(self._table)

    def _where_clause(self) -> list[str]:
        return [f"WHERE {_render(self._where)}"] if self._where else []

    def get_sql(self) -> str:
        """The statement, with `:name` parameters."""
        if self._type == "insert":
            columns = ", ".join(column for column, _ in self._values)
            params = ", ".join(param for _, param in self._values)
            return f"INSERT INTO {self._table} ({columns}) VALUES ({params})"

        if self._type == "update":
            assigns = ", ".join(f"{column} = {param}" for column, param in self._values)
            query = [f"UPDATE {self._relation()}", f"SET {assigns}"]
            return " ".join(query + self._where_clause())

        if self._type == "delete":
            return " ".join([f"DELETE FROM {self._relation()}"] + self._where_clause())

        query = [
            "SELECT DISTINCT" if self._distinct else "SELECT",
            ", ".join(self._select or ["*"]),
        ]
        if self._table:
            query += [f"FROM {self._relation()}"] + self._joins
        query += self._where_clause()
        if self._group_by:
            query.append(f"GROUP BY {', '.join(self._group_by)}")
        if self._having:
            query.append(f"HAVING {_render(self._having)}")
        if self._order_by:
            query.append(f"ORDER BY {', '.join(self._order_by)}")
        sql = " ".join(query)
        if self._limit is not None or self._offset:
            sql = self._connection.dialect.limit_query(sql, self._limit, self._offset)
        return sql

    # -- execution --

    def execute(self) -> list[dict]:
        """Execute the SELECT and return its records."""
        return self._connection.execute(self.get_sql(), self._params)

    def fetch_all(self) -> list[dict]:
        return self.execute()

    def fetch_one(self) -> Optional[dict]:
        records = self.execute()
        return records[0] if records else None

    def fetch_column(self) -> list:
        """The values of the first column of every record."""
        return [next(iter(record.values())) for record in self.execute()]

    def fetch_scalar(self) -> Any:
        """The value of the first column of the first record, or None."""
        record = self.fetch_one()
        return next(iter(record.values())) if record else None

    def execute_statement(self) -> int:
        """Execute the INSERT, UPDATE or DELETE; return the number of affected rows."""
        return self._connection.execute_statement(self.get_sql(), self._params)
