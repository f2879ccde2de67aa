"""Base model definitions and common mixins."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from api_governance.database import Base


def generate_id() -> str:
    """Generate an opaque identifier for a governance row."""
    return str(uuid4())


class IDMixin:
    """Mixin for opaque string primary keys."""

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_id,
    )


class AuditMixin:
    """Mixin for who/when audit columns.

    Times are assigned by the database so that a fresh read after commit
    returns server-side values.
    """

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class GovBase(Base, IDMixin):
    """Base class for governance models keyed by an opaque id."""

    __abstract__ = True
