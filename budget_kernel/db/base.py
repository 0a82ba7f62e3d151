"""
Module: budget_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models and the
    column type conventions they share.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel; MUST NOT import from models/ or services/.

Invariants enforced:
    - Decimal maps to Numeric(15, 2): amounts are stored as exact decimals
      with two places.  NEVER use float for monetary amounts.
    - datetime maps to DateTime(timezone=True).
    - Entity ids are application-generated strings (see domain/ids.py), so
      Base declares no primary key of its own.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to Numeric(15, 2).
        - datetime maps to DateTime(timezone=True).
        - str maps to String(255) unless a model says otherwise.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(15, 2),
        datetime: DateTime(timezone=True),
        str: String(255),
    }
