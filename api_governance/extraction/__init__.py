"""Rule extraction engines."""

from api_governance.extraction.base import ExtractedRule, RuleExtractor
from api_governance.extraction.spectral import SpectralRuleExtractor

__all__ = [
    "ExtractedRule",
    "RuleExtractor",
    "SpectralRuleExtractor",
]
