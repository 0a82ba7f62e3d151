"""
Module: budget_kernel.db.storage
Responsibility: The narrow storage port used by side-channel services:
    ``execute(statement, params) -> rows`` and ``table_exists(name)``.
    ``SqlStorage`` implements it on a SQLAlchemy engine.
Architecture position: Kernel > DB.  Consumed by services/revalidation.py.

Invariants enforced:
    - Statements are always parameterised (``text()`` with bind params);
      values are never interpolated into SQL.
    - Each ``execute`` runs in its own short transaction on its own
      connection, independent of any ORM session the caller holds.  The
      primary mutation has already committed by the time side channels run.

Failure modes:
    - StorageUnavailableError when the driver cannot reach the database
      (OperationalError / InterfaceError from SQLAlchemy).
    - StorageError for every other SQLAlchemy failure.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from budget_kernel.exceptions import StorageError, StorageUnavailableError
from budget_kernel.logging_config import get_logger

logger = get_logger("db.storage")


class Storage(Protocol):
    """Storage port consumed by the revalidation trigger."""

    def execute(
        self, statement: TextClause | str, params: Mapping[str, Any] | None = None
    ) -> Sequence[Row]:
        ...

    def table_exists(self, name: str) -> bool:
        ...


def _operation_name(statement: TextClause | str) -> str:
    sql = statement.text if isinstance(statement, TextClause) else statement
    words = sql.split(None, 1)
    return words[0].upper() if words else "EMPTY"


class SqlStorage:
    """
    ``Storage`` backed by a SQLAlchemy engine.

    Guarantees:
        - ``execute`` returns the fetched rows for row-returning statements
          and an empty list otherwise.
        - Errors are translated into the kernel's storage exceptions with the
          original SQLAlchemy error chained as ``__cause__``.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    def execute(
        self, statement: TextClause | str, params: Mapping[str, Any] | None = None
    ) -> list[Row]:
        stmt = statement if isinstance(statement, TextClause) else text(statement)
        operation = _operation_name(stmt)
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt, dict(params or {}))
                rows = list(result) if result.returns_rows else []
        except (OperationalError, InterfaceError) as exc:
            raise StorageUnavailableError(operation, str(exc.orig or exc)) from exc
        except SQLAlchemyError as exc:
            raise StorageError(operation, str(exc)) from exc

        logger.debug(
            "storage_statement_executed",
            extra={"operation": operation, "row_count": len(rows)},
        )
        return rows

    def table_exists(self, name: str) -> bool:
        try:
            return inspect(self._engine).has_table(name)
        except (OperationalError, InterfaceError) as exc:
            raise StorageUnavailableError("HAS_TABLE", str(exc.orig or exc)) from exc
        except SQLAlchemyError as exc:
            raise StorageError("HAS_TABLE", str(exc)) from exc
