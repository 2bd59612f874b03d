"""
Definitions for different dialects of SQL databases. Each
[Dialect](./#sqlset.dialect.Dialect):

* is named for its database adaptor (driver module).
* defines a [ParamFormat](./#sqlset.dialect.ParamFormat) that the Dialect uses to
  render queries with parameters.
* defines a [ProcCall](./#sqlset.dialect.ProcCall) style for calling stored
  procedures.
* knows how to quote identifiers and how to limit a query to a window of rows.
* has an [`adaptor()`](./#sqlset.dialect.Dialect.adaptor) method that imports and
  returns the adaptor itself.

Examples:
    List the supported Dialects:
    >>> for dialect in Dialect.__members__.values(): print(repr(dialect))
    <Dialect.PSYCOPG: 'psycopg'>
    <Dialect.SQLITE: 'sqlite'>
    <Dialect.MYSQL: 'mysql'>
    <Dialect.ORACLE: 'oracle'>

    Interact with one of the Dialects:
    >>> from sqlset import Dialect
    >>> dialect = Dialect("sqlite")
    >>> dialect.param_format
    <ParamFormat.QMARK: '?'>
    >>> dialect.param_format.is_keyed
    False
    >>> dialect.adaptor_name
    'sqlite3'
    >>> dialect.proc_call
    <ProcCall.SELECT: 'select'>
    >>> dialect.adaptor() # doctest:+ELLIPSIS
    <module 'sqlite3' from '.../sqlite3/__init__.py'>
"""
from enum import Enum
from importlib import import_module
from typing import Any, Optional


class ParamFormat(Enum):
    """
    The parameter format for a given database dialect.
    """

    # -- positional --
    QMARK = "?"
    FORMAT = "%s"
    NUMBERED = "$i"

    # -- keyed --
    NAMED = ":field"
    PYFORMAT = "%(field)s"

    @property
    def is_keyed(self) -> bool:
        """If true, this `ParamFormat` uses keyword parameters."""
        return self in {self.NAMED, self.PYFORMAT}

    @property
    def is_positional(self) -> bool:
        """If true, this `ParamFormat` uses positional parameters."""
        return not self.is_keyed

    @property
    def escapes_percent(self) -> bool:
        """If true, a literal `%` in a query must be doubled."""
        return self in {self.FORMAT, self.PYFORMAT}


class ProcCall(Enum):
    """
    How a dialect calls a stored procedure.

    * BLOCK: an anonymous block, `BEGIN name(args); END;`. No result set.
    * CALL: the `CALL name(args)` statement.
    * SELECT: a table function, `SELECT * FROM name(args)`.
    """

    BLOCK = "block"
    CALL = "call"
    SELECT = "select"


class Dialect(Enum):
    """
    Each Dialect is named for the adaptor (driver) interface that it uses and
    encapsulates the options that adaptor uses for such things as query parameter
    formatting.
    """

    PSYCOPG = "psycopg"
    SQLITE = "sqlite"
    MYSQL = "mysql"
    ORACLE = "oracle"

    @property
    def param_format(self) -> ParamFormat:
        """The [ParamFormat](./#sqlset.dialect.ParamFormat) for this Dialect."""
        return {
            "psycopg": ParamFormat.PYFORMAT,
            "sqlite": ParamFormat.QMARK,
            "mysql": ParamFormat.FORMAT,
            "oracle": ParamFormat.NAMED,
        }[self.value]

    @property
    def adaptor_name(self) -> str:
        """The name of the adaptor (driver module) to import for this Dialect."""
        return {
            "psycopg": "psycopg",
            "sqlite": "sqlite3",
            "mysql": "MySQLdb",
            "oracle": "oracledb",
        }[self.value]

    @property
    def proc_call(self) -> ProcCall:
        """The [ProcCall](./#sqlset.dialect.ProcCall) style of this Dialect."""
        return {
            "oracle": ProcCall.BLOCK,
            "mysql": ProcCall.CALL,
        }.get(self.value, ProcCall.SELECT)

    @property
    def identifier_quote(self) -> str:
        """The character used to quote identifiers."""
        return "`" if self == Dialect.MYSQL else '"'

    @property
    def default_values(self) -> Optional[str]:
        """
        The tail of an INSERT statement that inserts a row of default values, or None
        if the dialect has no such form.
        """
        return {
            "psycopg": "DEFAULT VALUES",
            "sqlite": "DEFAULT VALUES",
            "mysql": "() VALUES ()",
        }.get(self.value)

    def adaptor(self) -> Any:
        """The adaptor (driver module) itself for this Dialect.

        Returns:
            (Any): A database adaptor (driver module).
        """
        return import_module(self.adaptor_name)

    def limit_query(
        self, query: str, limit: Optional[int] = None, offset: int = 0
    ) -> str:
        """
        Wrap a query so that it returns at most `limit` rows starting at `offset`.

        Arguments:
            query (str): The query to limit.
            limit (Optional[int]): The maximum number of rows; None = no maximum.
            offset (int): The number of rows to skip.

        Returns:
            (str): The query with this dialect's limiting clause.

        Examples:
            >>> Dialect("sqlite").limit_query("SELECT * FROM t", 10, 20)
            'SELECT * FROM t LIMIT 10 OFFSET 20'
            >>> Dialect("sqlite").limit_query("SELECT * FROM t", offset=5)
            'SELECT * FROM t LIMIT -1 OFFSET 5'
            >>> Dialect("oracle").limit_query("SELECT * FROM t", 10)
            'SELECT * FROM t FETCH NEXT 10 ROWS ONLY'
        """
        offset = max(0, int(offset or 0))
        if self == Dialect.ORACLE:
            clauses = []
            if offset:
                clauses.append(f"OFFSET {offset} ROWS")
            if limit is not None:
                clauses.append(f"FETCH NEXT {int(limit)} ROWS ONLY")
        else:
            clauses = []
            if limit is not None:
                clauses.append(f"LIMIT {int(limit)}")
            elif offset and self == Dialect.SQLITE:
                # sqlite only accepts OFFSET after a LIMIT
                clauses.append("LIMIT -1")
            elif offset and self == Dialect.MYSQL:
                clauses.append("LIMIT 18446744073709551615")
            if offset:
                clauses.append(f"OFFSET {offset}")

        return " ".join([query] + clauses)
