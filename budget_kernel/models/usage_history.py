"""
BudgetUsageHistory model -- optional, best-effort usage log.

Deployments may omit this table (``create_tables(engine, include_usage_history=False)``);
writers check for it before inserting and readers raise SchemaMissingError.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import Base


class BudgetUsageHistory(Base):
    """One row per expense recorded against a budget."""

    __tablename__ = "budget_usage_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    budget_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("budgets.id"), nullable=False
    )
    expense_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("expenses.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)
