"""
Small fakes mimicking the psycopg AsyncConnection / AsyncCursor surface the
row store gateway touches.

Each ``execute`` consumes the next entry of ``results``: a list of dict rows,
or an exception instance to raise. ``errors`` are raised first, in order.
"""


class FakeCursor:

    def __init__(self, conn):
        self._conn = conn
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._conn.closed_cursors += 1
        return False

    async def execute(self, query, params=None):
        self._conn.executed.append((query, params))
        if self._conn.errors:
            raise self._conn.errors.pop(0)
        result = self._conn.results.pop(0) if self._conn.results else []
        if isinstance(result, BaseException):
            raise result
        self._rows = result

    async def fetchone(self):
        return self._rows[0] if self._rows else None

    async def fetchall(self):
        return list(self._rows)


class FakeTransaction:

    def __init__(self, conn):
        self._conn = conn

    async def __aenter__(self):
        self._conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self._conn.rollbacks += 1
        return False


class FakeConnection:

    def __init__(self, results=None, errors=None):
        self.results = list(results or [])
        self.errors = list(errors or [])
        self.executed = []
        self.transactions = 0
        self.rollbacks = 0
        self.closed_cursors = 0

    def cursor(self, row_factory=None):
        return FakeCursor(self)

    def transaction(self):
        return FakeTransaction(self)
