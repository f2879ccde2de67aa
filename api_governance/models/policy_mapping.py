"""Policy to ruleset association.

The policy subsystem owns this table; the ruleset store only reads it.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from api_governance.database import Base


class PolicyRulesetMapping(Base):
    """Many-to-many link between a governance policy and a ruleset."""

    __tablename__ = "gov_policy_ruleset_mappings"

    policy_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    ruleset_id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True)
