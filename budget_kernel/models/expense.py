"""Expense model -- a recorded outflow against a budget, with its receipt."""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_kernel.db.base import Base

if TYPE_CHECKING:
    from budget_kernel.models.budget import Budget


class Expense(Base):
    """An expense (pengeluaran). All expenses are approved on submission."""

    __tablename__ = "expenses"

    __table_args__ = (
        Index("idx_expense_budget", "budget_id"),
        Index("idx_expense_allocation", "additional_allocation_id"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    budget_id: Mapped[str] = mapped_column(ForeignKey("budgets.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(255), nullable=False)
    submitted_at: Mapped[dt.datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    additional_allocation_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    budget: Mapped["Budget"] = relationship("Budget", back_populates="expenses")

    def __repr__(self) -> str:
        return f"<Expense {self.id} budget={self.budget_id} amount={self.amount}>"
