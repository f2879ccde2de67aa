"""Pydantic schemas for the governance ruleset store."""

from api_governance.schemas.ruleset import RuleInfo, RulesetDraft, RulesetInfo, RulesetList

__all__ = [
    "RuleInfo",
    "RulesetDraft",
    "RulesetInfo",
    "RulesetList",
]
