"""Database layer - engine, base class, storage port."""

from budget_kernel.db.base import Base
from budget_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)
from budget_kernel.db.storage import SqlStorage, Storage

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Storage",
    "SqlStorage",
]
