from __future__ import annotations

import logging

from sqlalchemy import inspect

from labslot.core.config import get_settings
from labslot.db.base import Base
from labslot.db.session import engine
import labslot.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "calendar_events": {"id", "state", "proposed_slots", "accepted_slots", "last_state_change"},
    "rooms": {"id", "name"},
    "activity_logs": {"id", "actor_id", "actor_role", "action", "details"},
}


def _assert_required_columns() -> None:
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        problems: list[str] = []
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                problems.append(f"missing table {table_name}")
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(columns - existing)
            if missing:
                problems.append(f"{table_name} missing {', '.join(missing)}")
        if problems:
            raise RuntimeError("; ".join(problems))


def ensure_schema() -> None:
    settings = get_settings()
    try:
        if settings.auto_create_schema:
            Base.metadata.create_all(bind=engine)
        _assert_required_columns()
    except Exception as exc:
        logger.exception("Schema bootstrap failed")
        raise RuntimeError("Schema bootstrap failed") from exc
