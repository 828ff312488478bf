import sqlite3

import pytest

from agenda import db
from agenda.db import MIGRATIONS_TABLE, load_migrations


def test_init_creates_schema(tmp_agenda_dir):
    """db.init() creates the database and the expected tables."""
    with db.get_db() as conn:
        tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    table_names = {t[0] for t in tables}
    assert {"tasks", "subtasks", "groups", MIGRATIONS_TABLE} <= table_names


def test_init_creates_indexes(tmp_agenda_dir):
    with db.get_db() as conn:
        indexes = conn.execute("SELECT name FROM sqlite_master WHERE type='index'").fetchall()
    index_names = {i[0] for i in indexes}
    assert "idx_tasks_due_date" in index_names
    assert "idx_subtasks_position" in index_names
    assert "idx_tasks_recurring" in index_names


def test_recurrence_columns_present(tmp_agenda_dir):
    with db.get_db() as conn:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}
    assert {"is_recurring", "recurrence_pattern", "recurrence_days", "parent_task_id"} <= columns


def test_builtin_groups_seeded(tmp_agenda_dir):
    with db.get_db() as conn:
        rows = dict(conn.execute("SELECT id, name FROM groups").fetchall())
    assert rows == {"default": "General", "completed": "Completed"}


def test_migrations_recorded_once(tmp_agenda_dir):
    db.init()
    with db.get_db() as conn:
        names = [r[0] for r in conn.execute(f"SELECT name FROM {MIGRATIONS_TABLE}").fetchall()]  # noqa: S608
    assert names == [name for name, _ in load_migrations()]


def test_apply_migrations_is_noop_when_current(tmp_agenda_dir):
    with db.get_db() as conn:
        assert db.apply_migrations(conn) == []


def test_get_db_auto_commit(tmp_agenda_dir):
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO tasks (id, title, created_at) VALUES (?, ?, datetime('now'))",
            ("test_id", "test title"),
        )

    with db.get_db() as conn:
        result = conn.execute("SELECT title, scope FROM tasks WHERE id = ?", ("test_id",)).fetchone()
    assert result == ("test title", "date")


def test_get_db_auto_rollback(tmp_agenda_dir):
    with pytest.raises(sqlite3.IntegrityError):
        with db.get_db() as conn:
            conn.execute(
                "INSERT INTO tasks (id, title, created_at) VALUES (?, ?, datetime('now'))",
                ("first", "kept only if committed"),
            )
            conn.execute("INSERT INTO tasks (id, title, created_at) VALUES (?, ?, datetime('now'))", ("x", "  "))

    with db.get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM tasks").fetchone()[0] == 0


def test_subtask_positions_unique_per_task(tmp_agenda_dir):
    with pytest.raises(sqlite3.IntegrityError):
        with db.get_db() as conn:
            conn.execute("INSERT INTO tasks (id, title, created_at) VALUES ('t', 'x', datetime('now'))")
            conn.execute("INSERT INTO subtasks (id, task_id, title, position) VALUES ('a', 't', 'one', 0)")
            conn.execute("INSERT INTO subtasks (id, task_id, title, position) VALUES ('b', 't', 'two', 0)")


def test_scope_check_constraint(tmp_agenda_dir):
    with pytest.raises(sqlite3.IntegrityError):
        with db.get_db() as conn:
            conn.execute(
                "INSERT INTO tasks (id, title, created_at, scope) VALUES ('t', 'x', datetime('now'), 'year')"
            )


def test_db_init_creates_file(tmp_agenda_dir):
    assert (tmp_agenda_dir / "agenda.db").exists()
