"""Database layer - engine, base classes, types, and append-only listeners."""

from pipeline_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from pipeline_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from pipeline_kernel.db.types import LongText, Score, ShortText, StageKey

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "Score",
    "StageKey",
    "ShortText",
    "LongText",
]
