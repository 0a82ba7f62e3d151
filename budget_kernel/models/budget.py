"""
Budget model -- a financial allocation envelope.

``updated_at`` is written only by the revalidation trigger and never moves
backwards; the ``last_expense_*`` columns record the most recent expense the
trigger saw.  Spent and available amounts are derived, never stored.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_kernel.db.base import Base

if TYPE_CHECKING:
    from budget_kernel.models.allocation import AdditionalAllocation
    from budget_kernel.models.expense import Expense


class Budget(Base):
    """A budget (anggaran) with its owning start date."""

    __tablename__ = "budgets"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_expense_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    last_expense_date: Mapped[datetime | None] = mapped_column(nullable=True)

    expenses: Mapped[list["Expense"]] = relationship(
        "Expense",
        back_populates="budget",
    )
    additional_allocations: Mapped[list["AdditionalAllocation"]] = relationship(
        "AdditionalAllocation",
        back_populates="original_budget",
    )

    def __repr__(self) -> str:
        return f"<Budget {self.id} {self.name!r} amount={self.amount}>"
