"""Repository layer for data access."""

from api_governance.repositories.rule import RuleRepository
from api_governance.repositories.ruleset import RulesetRepository, name_conflict_from_error

__all__ = [
    "RuleRepository",
    "RulesetRepository",
    "name_conflict_from_error",
]
