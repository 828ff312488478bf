import logging
import shutil
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from fncli import cli

from . import config

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "_migrations"
MIGRATIONS_DIR = Path(__file__).parent / "migrations"

Migration = tuple[str, str]


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_db(db_path: Path | None = None):
    conn = _connect(db_path if db_path else config.DB_PATH)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def load_migrations() -> list[Migration]:
    return [(f.stem, f.read_text()) for f in sorted(MIGRATIONS_DIR.glob("*.sql"))]


def _table_counts(conn: sqlite3.Connection) -> dict[str, int]:
    tables = [
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' AND name != ?",
            (MIGRATIONS_TABLE,),
        ).fetchall()
    ]
    return {t: conn.execute(f'SELECT COUNT(*) FROM "{t}"').fetchone()[0] for t in tables}  # noqa: S608


def _backup(db_path: Path) -> Path:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config.BACKUP_DIR.mkdir(parents=True, exist_ok=True)
    backup_path = config.BACKUP_DIR / f"agenda.{timestamp}.backup"
    src = sqlite3.connect(db_path, timeout=30)
    dst = sqlite3.connect(backup_path)
    try:
        src.backup(dst)
    finally:
        dst.close()
        src.close()
    return backup_path


def apply_migrations(conn: sqlite3.Connection, db_path: Path | None = None) -> list[str]:
    """Apply pending SQL migrations in name order. Returns the names applied.

    A migration that shrinks any table is treated as a failure; when db_path
    points at a file, the pre-migration backup is restored.
    """
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} "
        "(id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE, applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
    )
    conn.commit()
    applied = {row[0] for row in conn.execute(f"SELECT name FROM {MIGRATIONS_TABLE}").fetchall()}  # noqa: S608
    pending = [(n, sql) for n, sql in load_migrations() if n not in applied]
    if not pending:
        return []

    backup_path = _backup(db_path) if db_path and db_path.exists() else None
    done: list[str] = []
    for name, sql in pending:
        before = _table_counts(conn)
        try:
            conn.executescript(sql)
            after = _table_counts(conn)
            for table, count in before.items():
                if after.get(table, 0) < count:
                    raise ValueError(f"migration {name} lost rows in {table}: {count} -> {after.get(table, 0)}")
            conn.execute(f"INSERT INTO {MIGRATIONS_TABLE} (name) VALUES (?)", (name,))  # noqa: S608
            conn.commit()
        except Exception:
            conn.rollback()
            logger.exception("migration %s failed", name)
            if backup_path and db_path:
                conn.close()
                shutil.copy2(backup_path, db_path)
            raise
        logger.info("applied migration %s", name)
        done.append(name)

    if backup_path and backup_path.exists():
        backup_path.unlink()
    return done


def init(db_path: Path | None = None) -> None:
    db_path = db_path if db_path else config.DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(db_path)
    try:
        apply_migrations(conn, db_path)
    finally:
        conn.close()


@cli("agenda db", name="migrate")
def db_migrate():
    """Run pending database migrations"""
    init()
    print("migrations applied")


@cli("agenda db", name="backup")
def db_backup():
    """Copy the database into the backup directory"""
    path = _backup(config.DB_PATH)
    print(str(path))
