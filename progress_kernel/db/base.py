"""
Declarative base shared by every progress kernel model.

Nothing here imports from models, services or selectors; every model module
imports from here.

Column conventions, applied through ``type_annotation_map``:
    - ``id`` is a uuid4 primary key stored as String(36) (``UUIDString``),
      so SQLite and PostgreSQL hold the same representation.
    - ``Mapped[Decimal]`` is Numeric(5, 2): percent complete, 0.00..100.00.
    - ``Mapped[datetime]`` is timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID <-> 36-character string."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(5, 2),
        datetime: DateTime(timezone=True),
        int: Integer,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
