"""
Helpers for building dynamic queries, and a set of basic CRUD queries built with them.
The [Table](../sqlset.table) dataset uses these to turn its Insert / Edit / Delete
operations into SQL.

The names of the queries are all caps (SELECT, etc.) to remind users that we are just
constructing SQL strings representing queries of the same names - SELECT, etc. are
capitalized in SQL. It also helps them to stand out in code, making it a little easier
to audit where in the codebase queries are being constructed.

Every helper takes an optional `quote` callable, which is applied to field names (e.g.
`Connection.quote_identifier`). Parameter names are always the bare
[param_name](./#sqlset.queries.Q.param_name) of the field.
"""
import re
from typing import Callable, Iterable, Optional


def _identity(name: str) -> str:
    return name


class Q:
    """
    Convenience methods for building dynamic queries.

    Examples:
        >>> d = {"name": "Cheeseshop"}
        >>> f"INSERT INTO tablename ({Q.fields(d)}) VALUES ({Q.params(d)})"
        'INSERT INTO tablename (name) VALUES (:name)'
        >>> f"SELECT ({Q.fields(d)}) FROM tablename WHERE {Q.filter('name')}"
        'SELECT (name) FROM tablename WHERE name = :name'
        >>> " ".join([
        ...     "UPDATE tablename SET",
        ...     Q.assigns(['name']),
        ...     "WHERE",
        ...     Q.filter('id'),
        ... ])
        'UPDATE tablename SET name = :name WHERE id = :id'
        >>> f"DELETE FROM tablename WHERE {Q.filter('name', quote=repr)}"
        "DELETE FROM tablename WHERE 'name' = :name"
    """

    @classmethod
    def keys(cls, fields: Iterable) -> list:
        """
        Return a list of field names from the given iterator.

        Arguments:
            fields (Iterable): An iterable of field names. (Can be a Mapping with field
                names as keys.)

        Returns:
            (list): A list of field names

        Examples:
            >>> Q.keys({'id': 1, 'name': 'Mark'})
            ['id', 'name']
        """
        return list(fields)

    @classmethod
    def param_name(cls, field: str) -> str:
        """
        The parameter name for a field: the field name with every non-word character
        replaced by an underscore, so that it can be rendered as `:name`.

        Examples:
            >>> Q.param_name('first name')
            'first_name'
        """
        return re.sub(r"\W", "_", str(field))

    @classmethod
    def data(cls, record) -> dict:
        """
        Re-key a record by [param_name](./#sqlset.queries.Q.param_name) so that it can
        be used as the data for a query built with these helpers.

        Examples:
            >>> Q.data({'first name': 'Mark'})
            {'first_name': 'Mark'}
        """
        return {cls.param_name(key): value for key, value in record.items()}

    @classmethod
    def fields(cls, fields: Iterable, quote: Optional[Callable] = None) -> str:
        """
        Render a comma-separated string of field names from the given fields. Use: E.g.,
        for dynamically specifying SELECT or INSERT field lists.

        Arguments:
            fields (Iterable): An iterable of field names. (Can be a Mapping with field
                names as keys.)
            quote (Optional[Callable]): Applied to each field name.

        Returns:
            (str): A comma-separated string of field names

        Examples:
            >>> Q.fields({'id': 1, 'name': 'Mark'})
            'id, name'
        """
        quote = quote or _identity
        return ", ".join(quote(key) for key in cls.keys(fields))

    @classmethod
    def params(cls, fields: Iterable) -> str:
        """
        Render a comma-separated list of parameters from the given fields. Use: E.g.,
        dynamically specifying INSERT parameter lists.

        Arguments:
            fields (Iterable): An iterable of field names. (Can be a Mapping with field
                names as keys.)

        Returns:
            (str): A comma-separated string of field names

        Examples:
            >>> Q.params({'id': 1, 'name': 'Mark'})
            ':id, :name'
        """
        return ", ".join(f":{cls.param_name(key)}" for key in cls.keys(fields))

    @classmethod
    def assigns(cls, fields: Iterable, quote: Optional[Callable] = None) -> str:
        """
        Render a comma-separated list of assignments from the given fields. Use: E.g.,
        for dynamically specifying UPDATE field lists.

        Arguments:
            fields (Iterable): An iterable of field names. (Can be a Mapping with field
                names as keys.)
            quote (Optional[Callable]): Applied to each field name.

        Returns:
            (str): A comma-separated string of field `key = :key` assignments

        Examples:
            >>> Q.assigns({'id': 1, 'name': 'Mark'})
            'id = :id, name = :name'
        """
        return ", ".join(cls.filter(key, quote=quote) for key in cls.keys(fields))

    @classmethod
    def filter(
        cls, field: str, *, op: Optional[str] = "=", quote: Optional[Callable] = None
    ) -> str:
        """
        Render a filter from the given field and optional operator.

        Arguments:
            field (str): The name of the field.
            op (str): The operator to use in the filter.
            quote (Optional[Callable]): Applied to the field name.

        Returns:
            (str): The filter expression

        Examples:
            >>> Q.filter('id', op='>')
            'id > :id'
        """
        quote = quote or _identity
        return f"{quote(field)} {op} :{cls.param_name(field)}"


def SELECT(
    relation: str,
    fields: Optional[Iterable] = None,
    filters: Optional[list[str]] = None,
    orderby: Optional[str] = None,
) -> str:
    """
    Build a SELECT query with the following form:
    ```sql
    SELECT fields FROM relation
        [WHERE filters]
        [ORDER BY orderby]
    ```
    Limiting the query is left to the
    [Dialect](../sqlset.dialect/#sqlset.dialect.Dialect.limit_query).

    Arguments:
        relation (str): The name of the table or view from which to SELECT.
        fields (Iterable[str]): An iterable of field names to include in the SELECT.
        filters (Iterable[str]): An iterable of WHERE filters to apply (ANDed).
        orderby (str): A string representing which fields to ORDER BY.

    Returns:
        sql (str): The string representing the SELECT query.
    """
    fields = fields or ["*"]
    query = [
        f"SELECT {Q.fields(fields)}",
        f"FROM {relation}",
    ]
    if filters:
        query.append(f"WHERE {' AND '.join(filters)}")
    if orderby:
        query.append(f"ORDER BY {orderby}")

    return " ".join(query)


def INSERT(relation: str, data: Iterable, quote: Optional[Callable] = None) -> str:
    """
    Build an INSERT query with the following form:
    ```sql
    INSERT INTO relation (fields(data))
    VALUES (params(data))
    ```
    Arguments:
        relation (str): The name of the table to INSERT INTO.
        data (Iterable): An iterable representing field names to insert.
        quote (Optional[Callable]): Applied to each field name.

    Returns:
        sql (str): The string representing the INSERT query.
    """
    query = [
        f"INSERT INTO {relation}",
        f"({Q.fields(data, quote=quote)})",
        f"VALUES ({Q.params(data)})",
    ]
    return " ".join(query)


def UPDATE(
    relation: str,
    fields: Iterable,
    filters: Iterable[str],
    quote: Optional[Callable] = None,
) -> str:
    """
    Build an UPDATE query with the following form:
    ```sql
    UPDATE relation
    SET (assigns(fields))
    WHERE (filters)
    ```
    Arguments:
        relation (str): The name of the table to UPDATE.
        fields (Iterable): An iterable representing field names to update.
        filters (Iterable): An iterable of strings represent WHERE filters. At least one
            filter is required.
        quote (Optional[Callable]): Applied to each field name.

    Returns:
        sql (str): The string representing the UPDATE query.
    """
    query = [
        f"UPDATE {relation}",
        f"SET {Q.assigns(fields, quote=quote)}",
        f"WHERE {' AND '.join(filters)}",
    ]
    return " ".join(query)


def DELETE(relation: str, filters: Iterable[str]) -> str:
    """
    Build a DELETE query with the following form:
    ```sql
    DELETE FROM relation
    WHERE (filters)
    ```
    Arguments:
        relation (str): The name of the table to DELETE FROM.
        filters (Iterable): An iterable of strings represent WHERE filters. At least one
            filter is required.

    Returns:
        sql (str): The string representing the DELETE query.
    """
    query = [
        f"DELETE FROM {relation}",
        f"WHERE {' AND '.join(filters)}",
    ]
    return " ".join(query)
