"""Business logic services."""

from api_governance.services.default_rulesets import (
    DefaultRulesetProvisioner,
    ProvisioningResult,
    load_default_rulesets,
    parse_default_ruleset,
)

__all__ = [
    "DefaultRulesetProvisioner",
    "ProvisioningResult",
    "load_default_rulesets",
    "parse_default_ruleset",
]
