from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# Columns added to ``users`` after the first bot releases, with their DDL.
_USER_COLUMNS: dict[str, str] = {
    "monthly_budget": "NUMERIC(10, 2) NOT NULL DEFAULT 0",
    "pin_hash": "VARCHAR(64)",
    "currency_symbol": "VARCHAR(8) NOT NULL DEFAULT '$'",
}


def _ensure_user_columns(engine: Engine) -> list[str]:
    inspector = inspect(engine)
    try:
        columns = {column["name"] for column in inspector.get_columns("users")}
    except SQLAlchemyError as exc:
        logger.error("Failed to inspect users table: %s", exc)
        return []

    added: list[str] = []
    for name, ddl in _USER_COLUMNS.items():
        if name in columns:
            continue
        logger.info("Adding %s column to users table.", name)
        try:
            with engine.begin() as connection:
                connection.execute(text(f"ALTER TABLE users ADD COLUMN {name} {ddl}"))
        except SQLAlchemyError as exc:
            logger.error("Failed to add %s column: %s", name, exc)
            continue
        added.append(name)
    return added


def run_migrations(engine: Engine) -> list[str]:
    """Execute lightweight, idempotent migrations on application start."""
    return _ensure_user_columns(engine)
