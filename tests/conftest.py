import sys
from pathlib import Path

import pytest
from mysql.connector.conversion import MySQLConverter

# Ensure project root on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from mysql_helper import DatabaseHelper, close_default  # noqa: E402


class FakeCursor:
    """Stands in for a mysql.connector dictionary cursor."""

    def __init__(self, conn):
        self.conn = conn
        self.lastrowid = None
        self.closed = False
        self._rows = []

    def execute(self, operation, params=None):
        self.conn.executed.append((operation, params))
        for i, (needle, exc) in enumerate(self.conn.failures):
            if needle in operation:
                del self.conn.failures[i]
                raise exc
        if operation.lstrip().upper().startswith("INSERT"):
            self.conn.last_id += 1
            self.lastrowid = self.conn.last_id
        self._rows = list(self.conn.rows)

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def fetchone(self):
        if not self._rows:
            return None
        return self._rows.pop(0)

    def close(self):
        self.closed = True


class FakeConnection:
    """Records every statement run through it instead of talking to a server."""

    def __init__(self):
        self.executed = []
        self.failures = []
        self.rows = []
        self.cursors = []
        self.cursor_kwargs = []
        self.last_id = 0
        self.closed = False
        self.charset = "utf8"
        self.sql_mode = ""
        self.converter = MySQLConverter()

    def fail_on(self, needle, exc):
        """The next statement containing ``needle`` raises ``exc``."""
        self.failures.append((needle, exc))

    def cursor(self, **kwargs):
        self.cursor_kwargs.append(kwargs)
        cur = FakeCursor(self)
        self.cursors.append(cur)
        return cur

    def close(self):
        self.closed = True


@pytest.fixture()
def conn():
    return FakeConnection()


@pytest.fixture()
def db(conn):
    return DatabaseHelper(connection=conn)


@pytest.fixture(autouse=True)
def _reset_default():
    yield
    close_default()
