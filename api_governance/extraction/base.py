"""Contract between the ruleset store and rule extraction engines."""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from api_governance.models.rule import RuleSeverity


@dataclass(frozen=True)
class ExtractedRule:
    """A rule produced from ruleset content, before it is persisted."""

    code: str
    severity: RuleSeverity
    content: str
    description: Optional[str] = None
    message_on_failure: Optional[str] = None


@runtime_checkable
class RuleExtractor(Protocol):
    """Turns raw ruleset content into an ordered list of rules.

    Implementations must be deterministic and raise
    ``InvalidRulesetContent`` when the content cannot be understood.
    Returning an empty list is allowed; deciding that a ruleset without
    rules is invalid is the caller's job.
    """

    def extract(self, content: bytes) -> list[ExtractedRule]:
        ...
