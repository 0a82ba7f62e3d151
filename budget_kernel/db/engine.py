"""
Engine and session plumbing for ``budget_kernel.db``.

Nothing here is process-wide: ``build_engine`` returns an engine the caller
owns (``KernelRuntime`` in an application, fixtures in tests), and
``session_scope`` runs against whichever session factory it is handed.

PostgreSQL is the production dialect.  SQLite URLs are accepted for local
runs and the test suite; they skip pool sizing and the isolation level.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Table, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from budget_kernel.logging_config import get_logger

logger = get_logger("db.engine")

POSTGRES_POOL = {
    "pool_size": 10,
    "max_overflow": 10,
    "pool_pre_ping": True,
    "pool_recycle": 300,
    "isolation_level": "READ COMMITTED",
}


def build_engine(database_url: str, echo: bool = False, **pool_options: Any) -> Engine:
    """Engine for ``database_url``; ``pool_options`` override the server pool settings."""
    if make_url(database_url).get_backend_name() == "sqlite":
        engine = create_engine(database_url, echo=echo)
    else:
        engine = create_engine(database_url, echo=echo, **{**POSTGRES_POOL, **pool_options})
    logger.info("engine_built", extra={"dialect": engine.dialect.name, "echo": echo})
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Services keep reading their DTO sources after commit
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    ``with session_scope(factory) as session:`` commits when the block exits
    normally and rolls back (then re-raises) when it raises.
    """
    with factory() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            logger.warning("transaction_rolled_back", exc_info=True)
            raise
        session.commit()


def _schema_tables(include_usage_history: bool) -> list[Table]:
    from budget_kernel.db.base import Base
    from budget_kernel.models import import_all_models
    from budget_kernel.models.usage_history import BudgetUsageHistory

    import_all_models()
    return [
        table
        for table in Base.metadata.sorted_tables
        if include_usage_history or table is not BudgetUsageHistory.__table__
    ]


def create_tables(engine: Engine, include_usage_history: bool = True) -> None:
    """
    Create the budget schema.

    ``include_usage_history=False`` leaves out ``budget_usage_history``;
    that is how a deployment without usage tracking looks to the kernel.
    """
    tables = _schema_tables(include_usage_history)
    tables[0].metadata.create_all(engine, tables=tables)
    logger.info("tables_created", extra={"tables": [t.name for t in tables]})


def drop_tables(engine: Engine) -> None:
    """Drop the whole budget schema. Tests only."""
    tables = _schema_tables(include_usage_history=True)
    tables[0].metadata.drop_all(engine, tables=tables)
    logger.warning("tables_dropped", extra={"tables": [t.name for t in tables]})
