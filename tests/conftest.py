import io
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from datetime import date, datetime

import pytest

from agenda import config, db
from agenda.lib import ansi, clock


@dataclass
class Result:
    exit_code: int
    stdout: str
    stderr: str


class FnCLIRunner:
    """Runs `agenda <args>` in-process, capturing output and the exit code."""

    def invoke(self, args: list[str]) -> Result:
        from agenda.cli import run

        out, err = io.StringIO(), io.StringIO()
        code = 0
        try:
            with redirect_stdout(out), redirect_stderr(err):
                code = run(args)
        except SystemExit as e:
            code = int(e.code) if isinstance(e.code, int) else 1
        return Result(code, out.getvalue(), err.getvalue())


@pytest.fixture(autouse=True)
def plain_output():
    ansi.use(ansi.PLAIN)
    yield
    ansi.use(ansi.DEFAULT)


@pytest.fixture
def tmp_agenda_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "AGENDA_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "agenda.db")
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.yaml")
    monkeypatch.setattr(config, "LOG_PATH", tmp_path / "agenda.log")
    monkeypatch.setattr(config, "BACKUP_DIR", tmp_path / "backups")
    monkeypatch.setattr(config._config, "_data", {})
    db.init()
    return tmp_path


@pytest.fixture
def frozen_today(monkeypatch):
    """Pins clock.today() to Wednesday 2024-06-12."""
    today = date(2024, 6, 12)
    monkeypatch.setattr(clock, "today", lambda: today)
    monkeypatch.setattr(clock, "now", lambda: datetime(2024, 6, 12, 9, 0))
    return today
