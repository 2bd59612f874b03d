"""
A [StoredProc](./#sqlset.storedproc.StoredProc) calls a stored procedure (or a table
function) in the style of the connection's dialect (see
[ProcCall](../sqlset.dialect/#sqlset.dialect.ProcCall)):

| ProcCall | Statement                                  |
| -------- | ------------------------------------------ |
| BLOCK    | `BEGIN name(p1, p2); END;`                 |
| CALL     | `CALL name(p1, p2)[; fetch_query]`         |
| SELECT   | `SELECT * FROM name(p1, p2)`               |

The parameters are rendered inline as quoted literals.
"""
from typing import Any, Iterable, Mapping, Optional

from .dialect import ProcCall
from .lib import is_blank
from .query import Query


class StoredProc(Query):
    """
    A dataset over the results of a stored procedure.

    Arguments:
        connection (Connection): The [Connection](../sqlset.connection) to call on.
        proc_name (str): The name of the procedure.
        params (Iterable): The arguments of the procedure, in order.
        fetch_query (str): For CALL dialects, a query that fetches the results of the
            procedure (e.g. `SELECT @total`), run after the CALL.
        **kwargs: The [Dataset](../sqlset.dataset/#sqlset.dataset.Dataset) options.
    """

    def __init__(
        self,
        connection: Any = None,
        proc_name: str = "",
        params: Optional[Iterable] = None,
        fetch_query: str = "",
        **kwargs,
    ):
        super().__init__(connection, **kwargs)
        self.proc_name = proc_name
        self.params = params
        self.fetch_query = fetch_query

    @property
    def proc_name(self) -> str:
        return self._proc_name

    @proc_name.setter
    def proc_name(self, value: str):
        self._proc_name = value or ""

    @property
    def params(self) -> list:
        return self._params

    @params.setter
    def params(self, value: Optional[Iterable]):
        self._params = list(value or [])

    @property
    def fetch_query(self) -> str:
        return self._fetch_query

    @fetch_query.setter
    def fetch_query(self, value: str):
        self._fetch_query = value or ""

    def _bind_params(self) -> Mapping:
        return {}

    def build_query(self) -> str:
        """
        The statement that calls the procedure, in the style of the dialect.

        Raises:
            NoConnection: if no connection is bound (the dialect is unknown).
        """
        self._check_connection()
        if is_blank(self._proc_name):
            return ""

        args = ", ".join(self._connection.quote_string(p) for p in self._params)
        call = f"{self._proc_name}({args})" if self._params else self._proc_name
        proc_call = self._connection.dialect.proc_call
        if proc_call == ProcCall.BLOCK:
            return f"BEGIN {call}; END;"
        elif proc_call == ProcCall.CALL:
            query = f"CALL {call}"
            if self._fetch_query:
                query += f"; {self._fetch_query}"
            return query
        else:
            return f"SELECT * FROM {self._proc_name}({args})"

    def execute_proc(self):
        """
        Call the procedure. BLOCK dialects execute it as a statement; the others
        (re)open the dataset on its results.
        """
        self._check_connection()
        if self._connection.dialect.proc_call == ProcCall.BLOCK:
            self.exec_sql()
        else:
            self.close()
            self.open()
