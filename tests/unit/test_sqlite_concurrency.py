from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from poggit.infrastructure.db.sqlite import get_connection, transaction


def test_connection_enables_wal_and_busy_timeout(db_path: Path) -> None:
    with get_connection(db_path) as conn:
        journal_mode = conn.execute("PRAGMA journal_mode;").fetchone()[0]
        busy_timeout = conn.execute("PRAGMA busy_timeout;").fetchone()[0]
        foreign_keys = conn.execute("PRAGMA foreign_keys;").fetchone()[0]

    assert str(journal_mode).lower() == "wal"
    assert int(busy_timeout) >= 30_000
    assert int(foreign_keys) == 1


def test_schema_seeds_null_resource(db_path: Path) -> None:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM resources WHERE resource_id = 1").fetchone()
    assert row is not None
    assert row["type"] == ""


def test_transaction_rolls_back_on_error(db_path: Path) -> None:
    with pytest.raises(RuntimeError):
        with transaction(db_path) as conn:
            conn.execute(
                "INSERT INTO repos (repo_id, owner, name) VALUES (?, ?, ?)",
                (7, "octo", "demo"),
            )
            raise RuntimeError("abort")

    with get_connection(db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM repos").fetchone()[0] == 0


def test_second_writer_waits_for_immediate_transaction(db_path: Path) -> None:
    out: dict[str, object] = {}
    holding = threading.Event()
    release = threading.Event()

    def _writer_1() -> None:
        with transaction(db_path) as conn:
            conn.execute("INSERT INTO repos (repo_id, owner, name) VALUES (1, 'a', 'one')")
            holding.set()
            release.wait(timeout=5)

    def _writer_2() -> None:
        started = time.perf_counter()
        try:
            with transaction(db_path) as conn:
                conn.execute("INSERT INTO repos (repo_id, owner, name) VALUES (2, 'b', 'two')")
            out["ok"] = True
        except Exception as exc:  # pragma: no cover
            out["ok"] = False
            out["error"] = str(exc)
        finally:
            out["elapsed"] = time.perf_counter() - started

    t1 = threading.Thread(target=_writer_1)
    t1.start()
    assert holding.wait(timeout=5)
    t2 = threading.Thread(target=_writer_2)
    t2.start()
    time.sleep(0.25)
    release.set()
    t1.join(timeout=5)
    t2.join(timeout=5)

    assert out.get("ok") is True, str(out.get("error"))
    assert float(out.get("elapsed", 0.0)) >= 0.2

    with get_connection(db_path) as conn:
        count = conn.execute("SELECT COUNT(*) FROM repos").fetchone()[0]
    assert int(count) == 2
