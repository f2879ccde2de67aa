"""Governance ruleset models."""

from enum import Enum
from typing import Optional

from sqlalchemy import LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api_governance.models.base import AuditMixin, GovBase

RULESET_NAME_CONSTRAINT = "uq_gov_rulesets_org_name"


class RuleType(str, Enum):
    """What part of an API a ruleset governs."""

    API_METADATA = "API_METADATA"
    API_DEFINITION = "API_DEFINITION"
    API_DOCUMENTATION = "API_DOCUMENTATION"


class ArtifactType(str, Enum):
    """Kind of API artifact a ruleset applies to."""

    REST_API = "REST_API"
    ASYNC_API = "ASYNC_API"


class Ruleset(GovBase, AuditMixin):
    """A named policy document owned by an organization.

    ``content`` holds the raw document; the rules derived from it live in
    ``gov_rules`` and are replaced as a whole whenever the content changes.
    """

    __tablename__ = "gov_rulesets"
    __table_args__ = (
        UniqueConstraint("organization", "name", name=RULESET_NAME_CONSTRAINT),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Loaded only when selected explicitly; listings never carry the document.
    content: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True, deferred=True)

    # Classification
    rule_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    artifact_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    documentation_link: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    provider: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Tenant
    organization: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Relationships
    rules: Mapped[list["Rule"]] = relationship(
        "Rule",
        back_populates="ruleset",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Rule.position",
    )

    def __repr__(self) -> str:
        return f"<Ruleset {self.organization}/{self.name} ({self.id})>"


# Import here to avoid circular imports
from api_governance.models.rule import Rule  # noqa: E402, F401
