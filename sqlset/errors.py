"""
The exceptions raised by sqlset. They live in their own module so that the dataset,
connection and builder modules can share them without importing each other.
"""


class DatabaseError(Exception):
    """Base class of all the errors raised by sqlset."""


class NoConnection(DatabaseError):
    """An operation that executes SQL was called with no Connection bound."""


class EmptyStatement(DatabaseError):
    """The statement to execute resolved to blank SQL."""


class InvalidArgument(DatabaseError, ValueError):
    """An argument can't be turned into valid SQL (e.g. BETWEEN with one value)."""


class ExecutionFailure(DatabaseError):
    """
    The database rejected a statement. The message includes the offending SQL and the
    driver exception is chained as `__cause__`.
    """

    def __init__(self, sql, error):
        self.sql = sql
        self.error = error
        super().__init__(f"Error executing query: {sql} [{error}]")


class NotActive(DatabaseError):
    """The dataset must be open for this operation."""


class NotEditing(DatabaseError):
    """The dataset is not in edit or insert mode."""


class EmptyDataset(DatabaseError):
    """There is no current record to operate on."""
