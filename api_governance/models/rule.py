"""Governance rule models."""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api_governance.models.base import GovBase

if TYPE_CHECKING:
    from api_governance.models.ruleset import Ruleset


class RuleSeverity(str, Enum):
    """Severity levels for rules, from least to most severe."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RuleSeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RuleSeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RuleSeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RuleSeverity):
            return NotImplemented
        return self.rank >= other.rank


SEVERITY_ORDER = {
    RuleSeverity.INFO: 0,
    RuleSeverity.WARN: 1,
    RuleSeverity.ERROR: 2,
}


class Rule(GovBase):
    """A single check derived from a ruleset's content.

    Rules are never written on their own: they are inserted in bulk when a
    ruleset is created and replaced in bulk when it is updated.
    """

    __tablename__ = "gov_rules"

    ruleset_id: Mapped[str] = mapped_column(
        ForeignKey("gov_rulesets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Identity within the ruleset
    code: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Reporting
    message_on_failure: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=RuleSeverity.WARN.value
    )

    # Rule definition fragment
    content: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)

    # Relationships
    ruleset: Mapped["Ruleset"] = relationship("Ruleset", back_populates="rules")

    def __repr__(self) -> str:
        return f"<Rule {self.code} [{self.severity}] ({self.id})>"
