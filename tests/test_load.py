"""Tests for the database helper utilities."""

from __future__ import annotations

from datetime import date

from ingest import load
from ingest.config import DatabaseSettings


class DummyResult:
    def __init__(self, value=None, rows=None, rowcount=0):
        self.value = value
        self.rows = rows or []
        self.rowcount = rowcount

    def scalar(self):
        return self.value

    def scalars(self):
        return iter(self.rows)


class DummyContext:
    def __init__(self, log, result=None):
        self.log = log
        self.result = result

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, stmt, params=None):
        self.log.append((stmt, params))
        return self.result


class DummyEngine:
    def __init__(self, result=None):
        self.log = []
        self.disposed = False
        self._result = result

    def begin(self):
        return DummyContext(self.log, self._result)

    def dispose(self):
        self.disposed = True


def test_get_engine_uses_settings_url(monkeypatch):
    """`get_engine` should build a pre-pinging engine from the settings URL."""

    fake_engine = object()
    settings = DatabaseSettings("db.local", 6543, "carbon", "alice", "secret")

    def fake_create_engine(url, pool_pre_ping):
        assert url.host == "db.local"
        assert url.port == 6543
        assert url.database == "carbon"
        assert url.drivername == "postgresql+psycopg2"
        assert pool_pre_ping is True
        return fake_engine

    monkeypatch.setattr(load, "create_engine", fake_create_engine)

    assert load.get_engine(settings) is fake_engine


def test_ping_returns_server_time():
    engine = DummyEngine(result=DummyResult(value="now"))

    assert load.Datastore(engine).ping() == "now"
    assert "SELECT NOW()" in engine.log[0][0].text


def test_init_db_executes_sql():
    """Initialising the DB should emit the DDL to the engine."""

    engine = DummyEngine()

    load.Datastore(engine).init_db()

    stmt, params = engine.log[0]
    assert params is None
    assert "CREATE TABLE IF NOT EXISTS public.live" in stmt.text
    assert "CREATE TABLE IF NOT EXISTS public.day" in stmt.text


def test_insert_live_targets_live_table():
    engine = DummyEngine()
    row = {"region": 1, "wind": 40.0, "from": "12:00"}

    load.Datastore(engine).insert_live(row)

    stmt, params = engine.log[0]
    assert stmt.table.name == "live"
    assert params == row


def test_insert_day_targets_day_table():
    engine = DummyEngine()
    row = {"region": 2, "date": "01/01/2024"}

    load.Datastore(engine).insert_day(row)

    stmt, params = engine.log[0]
    assert stmt.table.name == "day"
    assert params == row


def test_distinct_regions_returns_list():
    engine = DummyEngine(result=DummyResult(rows=[1, 2, 3]))

    regions = load.Datastore(engine).distinct_regions()

    assert regions == [1, 2, 3]
    sql = " ".join(engine.log[0][0].text.split())
    assert "SELECT DISTINCT region FROM public.live ORDER BY region ASC" in sql


def test_rollup_region_binds_region_and_day():
    engine = DummyEngine(result=DummyResult(rowcount=1))

    written = load.Datastore(engine).rollup_region(7, date(2024, 3, 1))

    assert written == 1
    stmt, params = engine.log[0]
    sql = " ".join(stmt.text.split())
    assert "INSERT INTO public.day" in sql
    assert "ROUND(AVG(cleaner_total)::NUMERIC) AS cleaner_total" in sql
    assert "+ INTERVAL '1 day') AT TIME ZONE 'Europe/London' AS created" in sql
    assert "WHERE CAST(created AT TIME ZONE 'Europe/London' AS DATE) = :day" in sql
    assert "GROUP BY region, date, CAST(created AT TIME ZONE 'Europe/London' AS DATE)" in sql
    assert params == {"region": 7, "day": date(2024, 3, 1)}


def test_rollup_region_without_rows_writes_nothing():
    engine = DummyEngine(result=DummyResult(rowcount=0))

    assert load.Datastore(engine).rollup_region(7, date(2024, 3, 1)) == 0


def test_close_disposes_engine():
    engine = DummyEngine()

    load.Datastore(engine).close()

    assert engine.disposed is True


def test_main_init_db(monkeypatch, capsys):
    """CLI `--init-db` flag should trigger database initialisation."""

    engine = DummyEngine()
    monkeypatch.setattr(load, "get_engine", lambda settings: engine)

    code = load.main(["--init-db"])

    assert code == 0
    assert engine.log, "DDL should be executed"
    assert engine.disposed is True
    assert "DB initialised." in capsys.readouterr().out


def test_main_no_args(monkeypatch, capsys):
    """Without CLI flags the command should report that nothing was done."""

    engine = DummyEngine()
    monkeypatch.setattr(load, "get_engine", lambda settings: engine)

    code = load.main([])

    assert code == 0
    assert engine.log == []
    assert "Nothing to do" in capsys.readouterr().out
