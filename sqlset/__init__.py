from . import errors, queries
from .builder import QueryBuilder
from .connection import Connection
from .dataset import Dataset, DatasetEvent, DatasetState, DataSource
from .dialect import Dialect, ParamFormat, ProcCall
from .queries import Q
from .query import Query
from .sql import SQL
from .storedproc import StoredProc
from .table import Table

__all__ = [
    "errors",
    "queries",
    "Connection",
    "Dataset",
    "DatasetEvent",
    "DatasetState",
    "DataSource",
    "Dialect",
    "ParamFormat",
    "ProcCall",
    "Q",
    "Query",
    "QueryBuilder",
    "SQL",
    "StoredProc",
    "Table",
]
