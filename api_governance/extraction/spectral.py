"""Rule extraction for Spectral-style linting rulesets.

A Spectral ruleset is a YAML (or JSON) document with a top-level ``rules``
mapping keyed by rule code::

    rules:
      operation-description:
        description: Operations should have a description.
        message: "{{path}} is missing a description"
        severity: warn
        given: "$.paths[*][*]"
        then:
          field: description
          function: truthy

Only the rule metadata is interpreted here; ``given``/``then`` are kept
verbatim in each rule's content.
"""

from typing import Any, Optional

import yaml

from api_governance.exceptions import InvalidRulesetContent
from api_governance.extraction.base import ExtractedRule
from api_governance.logging_config import get_logger
from api_governance.models.rule import RuleSeverity

logger = get_logger(__name__)

# Spectral accepts names or numeric levels (0 = error ... 3 = hint)
SEVERITY_ALIASES: dict[Any, RuleSeverity] = {
    "error": RuleSeverity.ERROR,
    "warn": RuleSeverity.WARN,
    "warning": RuleSeverity.WARN,
    "info": RuleSeverity.INFO,
    "information": RuleSeverity.INFO,
    "hint": RuleSeverity.INFO,
    0: RuleSeverity.ERROR,
    1: RuleSeverity.WARN,
    2: RuleSeverity.INFO,
    3: RuleSeverity.INFO,
}

DISABLED_SEVERITIES = {"off", -1}

DEFAULT_SEVERITY = RuleSeverity.WARN


class SpectralRuleExtractor:
    """Extracts rules from Spectral rulesets."""

    def __init__(self, charset: str = "utf-8"):
        self.charset = charset

    def extract(self, content: bytes) -> list[ExtractedRule]:
        document = self._load(content)
        rules = document.get("rules")
        if rules is None:
            return []
        if not isinstance(rules, dict):
            raise InvalidRulesetContent(
                "Ruleset 'rules' must be a mapping of rule code to definition",
                details={"rules_type": type(rules).__name__},
            )

        extracted: list[ExtractedRule] = []
        for key, definition in rules.items():
            code = str(key)
            if not isinstance(definition, dict):
                # "rule-name: off" only toggles a rule inherited via "extends"
                logger.debug("Skipping rule without a definition", code=code, value=definition)
                continue

            severity = self._severity(code, definition.get("severity"))
            if severity is None:
                logger.debug("Skipping disabled rule", code=code)
                continue

            description = _optional_text(definition.get("description"))
            message = _optional_text(definition.get("message")) or description
            extracted.append(
                ExtractedRule(
                    code=code,
                    severity=severity,
                    content=yaml.safe_dump(
                        {code: definition}, sort_keys=False, allow_unicode=True
                    ),
                    description=description,
                    message_on_failure=message,
                )
            )

        logger.debug("Extracted rules from ruleset", count=len(extracted))
        return extracted

    def _load(self, content: bytes) -> dict:
        if isinstance(content, str):
            text = content
        else:
            try:
                text = content.decode(self.charset)
            except UnicodeDecodeError as e:
                raise InvalidRulesetContent(
                    f"Ruleset content is not valid {self.charset} text",
                    details={"charset": self.charset},
                ) from e

        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise InvalidRulesetContent(
                f"Ruleset content is not valid YAML: {e}",
            ) from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise InvalidRulesetContent(
                "Ruleset content must be a mapping",
                details={"document_type": type(document).__name__},
            )
        return document

    @staticmethod
    def _severity(code: str, value: Any) -> Optional[RuleSeverity]:
        if value is None:
            return DEFAULT_SEVERITY
        if isinstance(value, bool):
            # YAML reads a bare "off" as False
            if value is False:
                return None
            raise InvalidRulesetContent(
                f"Rule '{code}' has an unknown severity: {value}",
                details={"code": code, "severity": str(value)},
            )
        key = value.lower() if isinstance(value, str) else value
        try:
            if key in DISABLED_SEVERITIES:
                return None
            return SEVERITY_ALIASES[key]
        except (KeyError, TypeError):
            raise InvalidRulesetContent(
                f"Rule '{code}' has an unknown severity: {value}",
                details={"code": code, "severity": str(value)},
            ) from None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
