from __future__ import annotations

import logging

from sqlalchemy import inspect

from app.core.config import get_settings
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "is_active"},
    "terms": {"id", "academic_year_id", "is_active", "status"},
    "courses": {"id", "teacher_id", "term_id", "status"},
    "course_students": {"course_id", "student_id"},
    "schedule_slots": {"id", "course_id", "teacher_id", "term_id", "day_of_week", "period", "status"},
}


def missing_schema(connection) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            missing_tables.append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema() -> None:
    """Create missing tables on startup when ``auto_create_schema`` is enabled.

    Production databases are managed with Alembic; this only helps local
    SQLite setups and demos.
    """
    if not get_settings().auto_create_schema:
        return
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    with engine.connect() as connection:
        missing_tables, missing_columns = missing_schema(connection)
    if missing_tables or missing_columns:
        logger.warning(
            "Database schema is outdated (missing tables: %s, missing columns: %s). Run `alembic upgrade head`.",
            missing_tables,
            missing_columns,
        )
