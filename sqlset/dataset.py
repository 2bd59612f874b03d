"""
A [Dataset](./#sqlset.dataset.Dataset) is a stateful, in-memory cursor over the records
of a query. The whole result set is fetched when the dataset is opened; navigation
(`first()`, `next()`, `prior()`, `last()`, `move_by()`) moves the cursor through the
fetched records, and the current record is held in a field buffer that can be read and
written by name.

Editing follows a small state machine:

```
INACTIVE --open()--> BROWSE --edit()---> EDIT ---post()|cancel()--> BROWSE
                     BROWSE --insert()-> INSERT -post()|cancel()--> BROWSE
          BROWSE | EDIT | INSERT --close()--> INACTIVE
```

Writing a field while browsing starts an edit. Subclasses decide what `post()` and
`delete()` do in the database: [Query](../sqlset.query) only changes the fetched
records, [Table](../sqlset.table) issues INSERT / UPDATE / DELETE statements.

Observers can be registered for the events of a dataset:

```python
def log_post(dataset, **info):
    print("posted", dataset.fields)

dataset.on(DatasetEvent.AFTER_POST, log_post)
```
"""
import logging
import re
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional

from .errors import (
    EmptyDataset,
    InvalidArgument,
    NoConnection,
    NotActive,
    NotEditing,
)

log = logging.getLogger("sqlset.dataset")


class DatasetState(Enum):
    """The state of a [Dataset](./#sqlset.dataset.Dataset)."""

    INACTIVE = "inactive"
    BROWSE = "browse"
    EDIT = "edit"
    INSERT = "insert"

    @property
    def is_editing(self) -> bool:
        """If true, the field buffer holds changes that have not been posted."""
        return self in {self.EDIT, self.INSERT}


class DatasetEvent(Enum):
    """The events that a [Dataset](./#sqlset.dataset.Dataset) notifies observers of."""

    BEFORE_OPEN = "before_open"
    AFTER_OPEN = "after_open"
    BEFORE_CLOSE = "before_close"
    AFTER_CLOSE = "after_close"
    BEFORE_INSERT = "before_insert"
    AFTER_INSERT = "after_insert"
    BEFORE_EDIT = "before_edit"
    AFTER_EDIT = "after_edit"
    BEFORE_POST = "before_post"
    AFTER_POST = "after_post"
    BEFORE_CANCEL = "before_cancel"
    AFTER_CANCEL = "after_cancel"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"
    AFTER_SCROLL = "after_scroll"
    DELETE_ERROR = "delete_error"


class DataSource:
    """
    Links a dataset to the datasets that depend on it. A detail dataset uses a
    DataSource as its `master_source`; the DataSource's `dataset` is the master.
    """

    def __init__(self, dataset: Optional["Dataset"] = None):
        self.dataset = dataset

    def __repr__(self):
        return f"{type(self).__name__}(dataset={self.dataset!r})"


class Dataset:
    """
    The base class of all datasets. Subclasses provide `_fetch_rows()`, and can add
    persistence to `post()` and `delete()` by overriding `_post_edit()`,
    `_post_insert()` and `_delete_record()`.

    Arguments:
        connection (Connection): The [Connection](../sqlset.connection) that queries
            are executed on.
        filter (str): A boolean SQL expression ANDed into the WHERE clause.
        order_field (str): The field (or expression) to ORDER BY.
        order (str): "ASC" or "DESC".
        limit_start (int): The number of records to skip (>= 0).
        limit_count (Optional[int]): The maximum number of records to fetch (>= 1), or
            None for all of them.
        master_source (DataSource): The source of the master dataset.
        master_fields (Mapping): detail field => master field.

    The fields of the current record are also available as attributes and items:
    `dataset.username`, `dataset["username"]`. When a field name is also the name of an
    attribute of the dataset, the attribute wins (see [Table](../sqlset.table) for the
    opposite rule).
    """

    def __init__(
        self,
        connection: Any = None,
        *,
        filter: str = "",
        order_field: str = "",
        order: str = "ASC",
        limit_start: int = 0,
        limit_count: Optional[int] = None,
        master_source: Optional[DataSource] = None,
        master_fields: Optional[Mapping] = None,
    ):
        self._connection = connection
        self._state = DatasetState.INACTIVE
        self._rows = []
        self._index = 0
        self._buffer = {}
        self._snapshot = {}
        self._modified = False
        self._listeners = {event: [] for event in DatasetEvent}
        self.filter = filter
        self.order_field = order_field
        self.order = order
        self.limit_start = limit_start
        self.limit_count = limit_count
        self.master_source = master_source
        self.master_fields = master_fields

    def __repr__(self):
        return (
            f"<{type(self).__name__} state={self._state.value}"
            f" rec_no={self._index} record_count={len(self._rows)}>"
        )

    # -- field access --

    def __getattr__(self, name):
        # only called when normal attribute lookup fails
        if not name.startswith("_"):
            attrs = self.__dict__
            if attrs.get("_state", DatasetState.INACTIVE) != DatasetState.INACTIVE:
                buffer = attrs["_buffer"]
                if name in buffer:
                    return buffer[name]
        raise AttributeError(
            f"{type(self).__name__!r} object has no attribute or field {name!r}"
        )

    def __setattr__(self, name, value):
        if name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        elif self._state != DatasetState.INACTIVE:
            self.set_field(name, value)
        else:
            raise AttributeError(
                f"Cannot set field {name!r}: {type(self).__name__} is not active"
            )

    def __getitem__(self, name: str) -> Any:
        return self._buffer[name]

    def __setitem__(self, name: str, value: Any):
        self.set_field(name, value)

    def __iter__(self) -> Iterator[dict]:
        self.first()
        while self._index < len(self._rows):
            yield dict(self._buffer)
            self.next()

    def field_by_name(self, name: str) -> Any:
        """The value of the named field of the current record, or None."""
        return self._buffer.get(name)

    def set_field(self, name: str, value: Any):
        """
        Write a field of the current record. Writing while browsing starts an edit.

        Raises:
            NotActive: if the dataset is not open.
        """
        self._check_active()
        if self._state == DatasetState.BROWSE:
            self.edit()
        self._buffer[name] = value
        self._modified = True

    @property
    def fields(self) -> dict:
        """A copy of the field buffer: the current record."""
        return dict(self._buffer)

    @property
    def field_names(self) -> list[str]:
        return list(self._buffer or (self._rows[0] if self._rows else {}))

    @property
    def field_values(self) -> list:
        return list(self._buffer.values())

    @property
    def field_count(self) -> int:
        return len(self.field_names)

    # -- configuration --

    @property
    def connection(self):
        return self._connection

    @connection.setter
    def connection(self, value):
        self._connection = value

    @property
    def filter(self) -> str:
        return self._filter

    @filter.setter
    def filter(self, value: str):
        self._filter = value or ""

    @property
    def order_field(self) -> str:
        return self._order_field

    @order_field.setter
    def order_field(self, value: str):
        self._order_field = value or ""

    @property
    def order(self) -> str:
        """The sort direction: "DESC" if set to "desc" (in any case), else "ASC"."""
        return self._order

    @order.setter
    def order(self, value: str):
        self._order = "DESC" if str(value).strip().lower() == "desc" else "ASC"

    @property
    def limit_start(self) -> int:
        return self._limit_start

    @limit_start.setter
    def limit_start(self, value: int):
        value = int(value or 0)
        if value < 0:
            raise InvalidArgument(f"limit_start must be >= 0, not {value}")
        self._limit_start = value

    @property
    def limit_count(self) -> Optional[int]:
        return self._limit_count

    @limit_count.setter
    def limit_count(self, value: Optional[int]):
        if value is not None:
            value = int(value)
            if value < 1:
                raise InvalidArgument(f"limit_count must be >= 1 or None, not {value}")
        self._limit_count = value

    @property
    def master_source(self) -> Optional[DataSource]:
        return self._master_source

    @master_source.setter
    def master_source(self, value: Optional[DataSource]):
        self._master_source = value

    @property
    def master_fields(self) -> dict:
        return self._master_fields

    @master_fields.setter
    def master_fields(self, value: Optional[Mapping]):
        self._master_fields = dict(value or {})

    # -- state --

    @property
    def state(self) -> DatasetState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state != DatasetState.INACTIVE

    @active.setter
    def active(self, value: bool):
        if value and self._state == DatasetState.INACTIVE:
            self.open()
        elif not value and self._state != DatasetState.INACTIVE:
            self.close()

    @property
    def modified(self) -> bool:
        """If true, a field has been written since the last edit or insert."""
        return self._modified

    @property
    def record_count(self) -> int:
        return len(self._rows)

    @property
    def rec_no(self) -> int:
        """The zero-based index of the current record."""
        return self._index

    @property
    def bof(self) -> bool:
        return self._index <= 0

    @property
    def eof(self) -> bool:
        return self._index >= len(self._rows)

    # -- events --

    def on(self, event: DatasetEvent | str, callback: Callable) -> Callable:
        """
        Register `callback(dataset, **info)` to be called when `event` occurs.
        Callbacks are called in the order they were registered. An exception raised by
        a BEFORE_* callback aborts the operation.
        """
        self._listeners[DatasetEvent(event)].append(callback)
        return callback

    def off(self, event: DatasetEvent | str, callback: Callable):
        """Unregister a callback registered with `on()`."""
        self._listeners[DatasetEvent(event)].remove(callback)

    def _notify(self, event: DatasetEvent, **info):
        for callback in list(self._listeners[event]):
            callback(self, **info)

    # -- open / close --

    def open(self):
        """
        Execute the dataset's query, fetch all of its records, and move to the first.

        Raises:
            NoConnection: if no connection is bound.
            EmptyStatement: if the query is blank.
            ExecutionFailure: if the database rejects the query.
        """
        self._notify(DatasetEvent.BEFORE_OPEN)
        rows = self._fetch_rows()
        self._rows = [dict(row) for row in rows]
        self._index = 0
        self._snapshot = {}
        self._modified = False
        self._state = DatasetState.BROWSE
        self._load()
        log.debug("%s opened with %d records", type(self).__name__, len(self._rows))
        self._notify(DatasetEvent.AFTER_OPEN)

    def close(self):
        """Discard the fetched records and any pending changes."""
        if self._state == DatasetState.INACTIVE:
            return
        self._notify(DatasetEvent.BEFORE_CLOSE)
        self._rows = []
        self._index = 0
        self._buffer = {}
        self._snapshot = {}
        self._modified = False
        self._state = DatasetState.INACTIVE
        log.debug("%s closed", type(self).__name__)
        self._notify(DatasetEvent.AFTER_CLOSE)

    def refresh(self):
        """Re-run the query of an open dataset."""
        if self._state != DatasetState.INACTIVE:
            self.close()
            self.open()

    def _fetch_rows(self) -> list[Mapping]:
        raise NotImplementedError

    # -- navigation --

    def _load(self):
        if self._index < len(self._rows):
            self._buffer = dict(self._rows[self._index])
        else:
            self._buffer = {}

    def _check_active(self):
        if self._state == DatasetState.INACTIVE:
            raise NotActive(f"{type(self).__name__} is not active")

    def _check_browse(self):
        # post pending changes before leaving the current record
        if self._state.is_editing:
            self.post()

    def _scroll_to(self, index: int):
        self._index = index
        self._load()
        self._notify(DatasetEvent.AFTER_SCROLL)

    def first(self):
        if self._state != DatasetState.INACTIVE and self._rows:
            self._check_browse()
            self._scroll_to(0)

    def last(self):
        if self._state != DatasetState.INACTIVE and self._rows:
            self._check_browse()
            self._scroll_to(len(self._rows) - 1)

    def move_by(self, distance: int):
        """
        Move the cursor `distance` records (negative = backwards). The cursor stops at
        the first record, and one past the last record (`eof`).
        """
        if self._state == DatasetState.INACTIVE:
            return
        self._check_browse()
        self._scroll_to(min(max(self._index + distance, 0), len(self._rows)))

    def move_to(self, index: int):
        self.move_by(index - self._index)

    def next(self):
        self.move_by(1)

    def prior(self):
        self.move_by(-1)

    # -- editing --

    def edit(self):
        """
        Start editing the current record. Does nothing if already editing or inserting.

        Raises:
            NotActive: if the dataset is not open.
            EmptyDataset: if there is no current record.
        """
        self._check_active()
        if self._state.is_editing:
            return
        if self._index >= len(self._rows):
            raise EmptyDataset(f"{type(self).__name__} has no current record to edit")
        self._notify(DatasetEvent.BEFORE_EDIT)
        self._snapshot = dict(self._buffer)
        self._modified = False
        self._state = DatasetState.EDIT
        self._notify(DatasetEvent.AFTER_EDIT)

    def insert(self):
        """Start a new record, posting pending changes to the current record first."""
        self._check_active()
        self._check_browse()
        self._notify(DatasetEvent.BEFORE_INSERT)
        self._buffer = self._empty_record()
        self._snapshot = {}
        self._modified = False
        self._state = DatasetState.INSERT
        self._notify(DatasetEvent.AFTER_INSERT)

    def _empty_record(self) -> dict:
        return {name: None for name in self.field_names}

    def post(self):
        """
        Save the pending edit or insert. The fetched records are updated: an edited
        record is replaced, an inserted record is appended and becomes current.

        Raises:
            NotActive: if the dataset is not open.
            NotEditing: if there is nothing to post.
        """
        self._check_active()
        if not self._state.is_editing:
            raise NotEditing(f"{type(self).__name__} is not in edit or insert state")
        self._notify(DatasetEvent.BEFORE_POST)
        if self._state == DatasetState.EDIT:
            self._post_edit()
            self._rows[self._index] = dict(self._buffer)
        else:
            self._post_insert()
            self._rows.append(dict(self._buffer))
            self._index = len(self._rows) - 1
        log.debug("%s posted %s", type(self).__name__, self._state.value)
        self._snapshot = {}
        self._modified = False
        self._state = DatasetState.BROWSE
        self._notify(DatasetEvent.AFTER_POST)

    def _post_edit(self):
        pass

    def _post_insert(self):
        pass

    def cancel(self):
        """
        Discard the pending edit (restoring the record as it was) or insert (returning
        to the current record). Does nothing while browsing.
        """
        self._check_active()
        if not self._state.is_editing:
            return
        self._notify(DatasetEvent.BEFORE_CANCEL)
        if self._state == DatasetState.EDIT:
            self._buffer = dict(self._snapshot)
        else:
            self._load()
        self._snapshot = {}
        self._modified = False
        self._state = DatasetState.BROWSE
        self._notify(DatasetEvent.AFTER_CANCEL)

    def delete(self):
        """
        Delete the current record. The cursor stays at the same position, which is now
        the following record (or the new last record). Deleting while inserting cancels
        the insert.

        Raises:
            NotActive: if the dataset is not open.
            EmptyDataset: if there is no current record.
        """
        self._check_active()
        if self._state == DatasetState.INSERT:
            self.cancel()
            return
        if self._state == DatasetState.EDIT:
            self.cancel()
        if self._index >= len(self._rows):
            raise EmptyDataset(f"{type(self).__name__} has no current record to delete")

        self._notify(DatasetEvent.BEFORE_DELETE)
        try:
            self._delete_record()
        except Exception as exc:
            self._notify(DatasetEvent.DELETE_ERROR, error=exc)
            raise

        del self._rows[self._index]
        if self._index >= len(self._rows) and self._rows:
            self._index = len(self._rows) - 1
        self._load()
        log.debug("%s deleted record %d", type(self).__name__, self._index)
        self._notify(DatasetEvent.AFTER_DELETE)

    def _delete_record(self):
        pass

    # -- query building --

    def _check_connection(self):
        if self._connection is None:
            raise NoConnection(f"No connection assigned to {type(self).__name__}")

    def _is_paged(self) -> bool:
        return self._limit_start != 0 or self._limit_count is not None

    def _master_predicate(self) -> str:
        """
        The filter that restricts this (detail) dataset to the current record of its
        master: `detail_field = 'master value'` for each of the master_fields.
        """
        source = self._master_source
        if source is None or source.dataset is None or not self._master_fields:
            return ""
        self._check_connection()
        master = source.dataset
        if master._state == DatasetState.INACTIVE:
            master.open()
        return " AND ".join(
            f"{detail} = {self._connection.quote_string(master.field_by_name(field))}"
            for detail, field in self._master_fields.items()
        )

    @staticmethod
    def _where(query: str, predicate: str) -> str:
        """
        Add a predicate to the WHERE clause of the query. The predicate is
        parenthesized so that an OR in it can't escape the predicates ANDed after it.

        Examples:
            >>> Dataset._where("SELECT * FROM t", "a = 1")
            'SELECT * FROM t WHERE (a = 1)'
            >>> Dataset._where("SELECT * FROM t where b = 2", "a = 1")
            'SELECT * FROM t where b = 2 AND (a = 1)'
        """
        if not predicate:
            return query
        if re.search(r"\bWHERE\b", query, flags=re.I):
            return f"{query} AND ({predicate})"
        return f"{query} WHERE ({predicate})"
