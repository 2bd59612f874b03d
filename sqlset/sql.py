import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from .dialect import Dialect, ParamFormat
from .errors import InvalidArgument
from .lib import walk

# a colon + word that is not escaped (\:word) and not a cast (::type)
PARAMETER = re.compile(r"(?<![\\:]):(\w+)\b")
ESCAPED_COLON = re.compile(r"\\:(\w+)\b")


@dataclass
class SQL:
    """
    Render SQL queries for a given database dialect. Queries are written with the
    "named" parameter format (`:key`) and rendered to the parameter format that the
    dialect's adaptor expects. A colon that is not a parameter is escaped with a
    backslash (`\\:word`); casts (`::type`) are left alone.

    Arguments:
        dialect (Dialect): The SQL [dialect](sqlset.dialect.md) of the database.

    Examples:
        >>> sql = SQL(dialect="sqlite")
        >>> sql.render("SELECT * FROM widgets WHERE sku like :sku", {"sku": "COG-%"})
        ('SELECT * FROM widgets WHERE sku like ?', ['COG-%'])
        >>> SQL(dialect="psycopg").render("SELECT :a, :b, :a", {"a": 1, "b": 2})
        ('SELECT %(a)s, %(b)s, %(a)s', {'a': 1, 'b': 2})
    """

    dialect: Dialect

    def __post_init__(self):
        if not isinstance(self.dialect, Dialect):
            self.dialect = Dialect(self.dialect)

    @property
    def param_format(self) -> ParamFormat:
        return self.dialect.param_format

    def placeholder(self, name: str, position: int) -> str:
        """
        The placeholder for the parameter `name`, which is the `position`-th (1-based)
        parameter of the rendered query.
        """
        return {
            ParamFormat.NAMED: f":{name}",
            ParamFormat.PYFORMAT: f"%({name})s",
            ParamFormat.QMARK: "?",
            ParamFormat.NUMBERED: f"${position}",
            ParamFormat.FORMAT: "%s",
        }[self.param_format]

    @staticmethod
    def adapt(value: Any, keyed: bool = False) -> Any:
        # adaptors don't take containers: send them as JSON
        containers = (dict, list, tuple) if keyed else dict
        return json.dumps(value) if isinstance(value, containers) else value

    def render(self, query: str | Iterator, data: Optional[Mapping] = None):
        """
        Render a query string and its parameters for this SQL dialect.

        Arguments:
            query (str | Iterator): a string, or a (nested) iterator of strings that are
                joined with newlines.
            data (Mapping): the values of the query parameters.

        Returns:
            (str): the rendered query string.
            (list | dict): the parameter values, as the adaptor takes them:

                - positional param formats (QMARK, FORMAT, NUMBERED): a list in query
                  order, repeated parameters repeated
                - keyed param formats (NAMED, PYFORMAT): a dict

        Raises:
            InvalidArgument: if the query uses a parameter that is not in the data.
        """
        data = data or {}
        if isinstance(query, str):
            query_str = query
        elif hasattr(query, "__iter__"):
            query_str = "\n".join(str(q) for q in walk(query))
        else:
            raise ValueError(f"Query has unsupported type: {type(query)}")

        if self.param_format.escapes_percent:
            # a literal % would be read as a placeholder
            query_str = query_str.replace("%", "%%")

        names = []

        def substitute(match):
            name = match.group(1)
            if name not in data:
                raise InvalidArgument(f"Query parameter {name!r} has no value")
            if self.param_format.is_positional or name not in names:
                names.append(name)
            return self.placeholder(name, len(names))

        query_str = PARAMETER.sub(substitute, query_str).strip()
        query_str = ESCAPED_COLON.sub(r":\1", query_str)

        if self.param_format.is_positional:
            return (query_str, [self.adapt(data[name]) for name in names])
        return (query_str, {name: self.adapt(data[name], keyed=True) for name in names})
