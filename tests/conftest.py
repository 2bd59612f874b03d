import pytest

from sqlset import Connection
from tests import fixtures


@pytest.fixture(params=fixtures.test_databases, ids=lambda database: database[0])
def connection(request):
    """
    A Connection to each of the test databases, with the test tables created and
    seeded; the tables are dropped afterwards.
    """
    dialect_name, database_url = request.param
    connection = Connection.connect(database_url, dialect_name)
    fixtures.drop_tables(connection)
    fixtures.create_tables(connection)
    yield connection
    connection.rollback()
    fixtures.drop_tables(connection)
    connection.close()
