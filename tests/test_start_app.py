import os
import subprocess
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import start_app  # noqa: E402
from start_app import main  # noqa: E402


def _capture_uvicorn(monkeypatch) -> dict:
    called: dict = {}

    def fake_uvicorn_run(app, **kwargs):
        called["app"] = app
        called.update(kwargs)

    monkeypatch.setattr(
        start_app, "uvicorn", type("U", (), {"run": staticmethod(fake_uvicorn_run)})
    )
    return called


def test_failed_migration_surfaces_output(monkeypatch, capsys):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(2, cmd, output="out\n", stderr="err\n")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        main([])

    captured = capsys.readouterr()
    assert "out" in captured.out
    assert "err" in captured.err
    assert "exit code 2" in captured.err
    assert excinfo.value.code == 2


def test_skip_db_migrations(monkeypatch):
    def fake_run(*args, **kwargs):
        raise AssertionError("migrations should be skipped")

    monkeypatch.setattr(subprocess, "run", fake_run)
    called = _capture_uvicorn(monkeypatch)
    main(["--skip-db-migrations", "--port", "9001"])
    assert called["app"] == "api.tableorder.main:app"
    assert called["port"] == 9001


def test_migrations_disable_startup_schema_creation(monkeypatch):
    commands = []

    def fake_run(cmd, **kwargs):
        commands.append(cmd)

    monkeypatch.delenv("AUTO_CREATE_SCHEMA", raising=False)
    monkeypatch.delenv("SKIP_DB_MIGRATIONS", raising=False)
    monkeypatch.setattr(subprocess, "run", fake_run)
    _capture_uvicorn(monkeypatch)
    main([])
    assert commands[0][-3:] == ["api/alembic.ini", "upgrade", "head"]
    assert os.environ["AUTO_CREATE_SCHEMA"] == "false"
    start_app.config.get_settings.cache_clear()
