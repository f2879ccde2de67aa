"""SQLAlchemy models for the governance ruleset store."""

from api_governance.database import Base
from api_governance.models.base import AuditMixin, GovBase, IDMixin, generate_id
from api_governance.models.policy_mapping import PolicyRulesetMapping
from api_governance.models.rule import SEVERITY_ORDER, Rule, RuleSeverity
from api_governance.models.ruleset import (
    RULESET_NAME_CONSTRAINT,
    ArtifactType,
    Ruleset,
    RuleType,
)

__all__ = [
    "Base",
    "GovBase",
    "IDMixin",
    "AuditMixin",
    "generate_id",
    "ArtifactType",
    "PolicyRulesetMapping",
    "Rule",
    "RuleSeverity",
    "RuleType",
    "Ruleset",
    "RULESET_NAME_CONSTRAINT",
    "SEVERITY_ORDER",
]
