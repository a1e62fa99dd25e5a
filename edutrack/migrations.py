"""Plain SQL migrations for existing SQLite databases.

``create_all`` builds fresh schemas; files under ``migrations/sql`` patch
databases created by earlier releases. Applied versions are recorded in
``schema_migrations``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations" / "sql"


def run_migrations(engine: Engine, migrations_dir: Optional[Path] = None) -> list[str]:
    """Apply pending migrations; returns the versions applied by this call."""

    if engine.url.drivername != "sqlite":
        return []

    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE IF NOT EXISTS schema_migrations ("
                "version TEXT PRIMARY KEY, "
                "applied_at DATETIME DEFAULT CURRENT_TIMESTAMP"
                ")"
            )
        )
        applied = {
            row[0]
            for row in conn.execute(text("SELECT version FROM schema_migrations")).fetchall()
        }

    pending = [
        path
        for path in _iter_migration_files(migrations_dir or MIGRATIONS_DIR)
        if _version(path) not in applied
    ]
    if pending:
        _backup_sqlite_db(engine)

    done: list[str] = []
    for path in pending:
        version = _version(path)
        with engine.begin() as conn:
            for stmt in _split_sql(path.read_text(encoding="utf-8")):
                try:
                    conn.execute(text(stmt))
                except OperationalError as exc:
                    if _is_ignorable_sqlite_error(exc):
                        continue
                    raise
            conn.execute(
                text("INSERT INTO schema_migrations (version) VALUES (:version)"),
                {"version": version},
            )
        logger.info("Applied migration %s", path.name)
        done.append(version)
    return done


def _version(path: Path) -> str:
    return path.stem.split("_", 1)[0]


def _iter_migration_files(directory: Path) -> Iterable[Path]:
    if not directory.exists():
        return []
    return sorted(directory.glob("*.sql"))


def _split_sql(sql: str) -> list[str]:
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


def _is_ignorable_sqlite_error(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return "duplicate column name" in message or "already exists" in message


def _backup_sqlite_db(engine: Engine) -> None:
    db_path = engine.url.database
    if not db_path or db_path == ":memory:":
        return
    source = Path(db_path)
    if source.exists():
        shutil.copy2(source, source.with_suffix(source.suffix + ".bak"))
