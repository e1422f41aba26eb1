"""Schema migrations for the SQLite graph store.

Each ``m_NNN_<name>.py`` module beside this one defines
``async def upgrade(db: aiosqlite.Connection)``. Applied versions are kept
in ``schema_version``. ``apply_migrations`` runs the missing ones in version
order over a single connection and commits after each, so a failing
migration is never recorded and every earlier version stays applied.
"""

from __future__ import annotations

import importlib
import logging
import re
from pathlib import Path
from typing import NamedTuple

import aiosqlite

_logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_MODULE_NAME = re.compile(r"^m_(\d{3})_\w+$")

_VERSION_TABLE = (
    "CREATE TABLE IF NOT EXISTS schema_version "
    "(version INTEGER PRIMARY KEY, applied_at TEXT DEFAULT CURRENT_TIMESTAMP)"
)


class Migration(NamedTuple):
    version: int
    name: str


def discover_migrations() -> list[Migration]:
    """Migration modules in this package, sorted by version."""
    found: list[Migration] = []
    for path in MIGRATIONS_DIR.glob("m_*.py"):
        match = _MODULE_NAME.match(path.stem)
        if match:
            found.append(Migration(int(match.group(1)), path.stem))
    return sorted(found)


async def _current_version(db: aiosqlite.Connection) -> int:
    await db.execute(_VERSION_TABLE)
    async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
        row = await cursor.fetchone()
    return row[0] or 0


async def get_schema_version(db_path: str) -> int:
    async with aiosqlite.connect(db_path) as db:
        version = await _current_version(db)
        await db.commit()
    return version


async def apply_migrations(db_path: str) -> list[int]:
    """Bring ``db_path`` up to the newest schema. Returns the versions applied."""
    applied: list[int] = []
    async with aiosqlite.connect(db_path) as db:
        current = await _current_version(db)
        await db.commit()

        for migration in discover_migrations():
            if migration.version <= current:
                continue
            module = importlib.import_module(f"{__package__}.{migration.name}")
            try:
                await module.upgrade(db)
                await db.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (migration.version,),
                )
                await db.commit()
            except aiosqlite.Error:
                await db.rollback()
                _logger.error("Migration %03d (%s) failed on %s", migration.version, migration.name, db_path)
                raise
            _logger.info("Applied migration %03d (%s) to %s", migration.version, migration.name, db_path)
            applied.append(migration.version)

    return applied
