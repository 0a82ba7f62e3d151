"""AdditionalAllocation model -- extra money granted on top of a budget."""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_kernel.db.base import Base

if TYPE_CHECKING:
    from budget_kernel.models.budget import Budget


class AdditionalAllocation(Base):
    """
    An additional allocation (anggaran tambahan).

    Created by operators, or automatically when an expense exceeds the
    budget's available amount; in that case ``related_expense_id`` points at
    the expense and the allocation is approved by the submitter.
    """

    __tablename__ = "additional_allocations"

    __table_args__ = (
        Index("idx_allocation_budget", "original_budget_id"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    original_budget_id: Mapped[str] = mapped_column(
        ForeignKey("budgets.id"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    requested_by: Mapped[str] = mapped_column(String(255), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    related_expense_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    original_budget: Mapped["Budget"] = relationship(
        "Budget", back_populates="additional_allocations"
    )

    def __repr__(self) -> str:
        return (
            f"<AdditionalAllocation {self.id} budget={self.original_budget_id} "
            f"amount={self.amount}>"
        )
