"""Connection handling of the Postgres repository, checked with fake connections."""

import pytest

from posegen.repository.postgres import PostgresRepository


class FakeCursor:
    def __init__(self, row=None):
        self._row = row
        self.rowcount = 1

    def fetchone(self):
        return self._row

    def fetchall(self):
        return []


class FakeConnection:
    """Records statements; acts as a context manager like a psycopg connection."""

    def __init__(self, storyboard_exists=True, fail_on_insert=False):
        self.statements: list[tuple[str, tuple]] = []
        self.storyboard_exists = storyboard_exists
        self.fail_on_insert = fail_on_insert
        self.committed = False
        self.rolled_back = False

    def execute(self, sql, params=()):
        self.statements.append((" ".join(sql.split()), params))
        if sql.lstrip().startswith("INSERT") and self.fail_on_insert:
            raise RuntimeError("foreign key violation")
        if "FROM storyboards" in sql:
            return FakeCursor((1,) if self.storyboard_exists else None)
        return FakeCursor()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.committed = True
        else:
            self.rolled_back = True
        return False


def _repository(dedicated: FakeConnection):
    repo = PostgresRepository.__new__(PostgresRepository)
    repo._url = "postgresql://test"
    repo._conn = FakeConnection()
    opened = []

    def _open(autocommit=True):
        opened.append(autocommit)
        return dedicated

    repo._open = _open
    return repo, opened


def test_storyboard_association_uses_its_own_transaction():
    dedicated = FakeConnection()
    repo, opened = _repository(dedicated)

    assert repo.set_storyboard_poses(3, [5, 6, 5]) is True

    assert opened == [False]
    assert repo._conn.statements == []
    inserts = [p for sql, p in dedicated.statements if sql.startswith("INSERT")]
    assert inserts == [(3, 5), (3, 6)]
    assert dedicated.committed


def test_unknown_storyboard_touches_nothing():
    dedicated = FakeConnection(storyboard_exists=False)
    repo, _ = _repository(dedicated)

    assert repo.set_storyboard_poses(3, [5]) is False
    assert not any(sql.startswith("DELETE") for sql, _ in dedicated.statements)
    assert repo._conn.statements == []


def test_failed_association_rolls_back_only_its_connection():
    dedicated = FakeConnection(fail_on_insert=True)
    repo, _ = _repository(dedicated)

    with pytest.raises(RuntimeError):
        repo.set_storyboard_poses(3, [5])

    assert dedicated.rolled_back
    assert repo._conn.statements == []
