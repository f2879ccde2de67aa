"""Unit tests for the Spectral rule extractor."""

import pytest
import yaml

from api_governance.exceptions import InvalidRulesetContent
from api_governance.extraction import RuleExtractor, SpectralRuleExtractor
from api_governance.models.rule import RuleSeverity

from tests.conftest import NO_RULES_YAML, THREE_RULES_YAML, TWO_RULES_YAML


@pytest.fixture
def extractor():
    return SpectralRuleExtractor()


class TestSpectralExtraction:
    """Tests for extracting rules from well-formed rulesets."""

    def test_extracts_rules_in_document_order(self, extractor):
        """Test rules come back in the order they are declared."""
        rules = extractor.extract(TWO_RULES_YAML.encode())

        assert [r.code for r in rules] == ["operation-operationId", "info-contact"]

    def test_extracts_rule_metadata(self, extractor):
        """Test description, message and severity are read per rule."""
        first, second = extractor.extract(TWO_RULES_YAML.encode())

        assert first.severity == RuleSeverity.ERROR
        assert first.description == "Every operation must have an operationId."
        assert first.message_on_failure == "Operation is missing an operationId."
        assert second.severity == RuleSeverity.WARN
        assert second.message_on_failure == second.description

    def test_rule_content_is_standalone_yaml(self, extractor):
        """Test each rule's content parses back to its own definition."""
        rules = extractor.extract(TWO_RULES_YAML.encode())

        parsed = yaml.safe_load(rules[0].content)
        assert list(parsed) == ["operation-operationId"]
        assert parsed["operation-operationId"]["then"] == {
            "field": "operationId",
            "function": "truthy",
        }

    def test_hint_folds_into_info(self, extractor):
        rules = extractor.extract(THREE_RULES_YAML.encode())

        assert [r.severity for r in rules] == [
            RuleSeverity.ERROR,
            RuleSeverity.INFO,
            RuleSeverity.INFO,
        ]

    def test_accepts_text_content(self, extractor):
        assert len(extractor.extract(TWO_RULES_YAML)) == 2

    def test_accepts_json_content(self, extractor):
        """Test JSON rulesets are read like YAML ones."""
        content = b'{"rules": {"no-empty-servers": {"severity": "error", "given": "$.servers"}}}'

        rules = extractor.extract(content)

        assert [r.code for r in rules] == ["no-empty-servers"]

    def test_extraction_is_deterministic(self, extractor):
        first = extractor.extract(THREE_RULES_YAML.encode())
        second = extractor.extract(THREE_RULES_YAML.encode())

        assert first == second

    def test_satisfies_extractor_protocol(self, extractor):
        assert isinstance(extractor, RuleExtractor)


class TestSpectralSeverity:
    """Tests for severity handling."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("error", RuleSeverity.ERROR),
            ("ERROR", RuleSeverity.ERROR),
            ("warning", RuleSeverity.WARN),
            ("information", RuleSeverity.INFO),
            (0, RuleSeverity.ERROR),
            (1, RuleSeverity.WARN),
            (2, RuleSeverity.INFO),
            (3, RuleSeverity.INFO),
        ],
    )
    def test_severity_aliases(self, extractor, value, expected):
        """Test named and numeric Spectral severities."""
        content = yaml.safe_dump({"rules": {"r": {"severity": value, "given": "$"}}})

        (rule,) = extractor.extract(content.encode())

        assert rule.severity == expected

    def test_missing_severity_defaults_to_warn(self, extractor):
        (rule,) = extractor.extract(b"rules:\n  r:\n    given: $\n")

        assert rule.severity == RuleSeverity.WARN

    @pytest.mark.parametrize("value", ["off", "'off'", "-1"])
    def test_disabled_rules_are_skipped(self, extractor, value):
        """Test rules switched off are not extracted."""
        content = f"rules:\n  kept:\n    given: $\n  dropped:\n    given: $\n    severity: {value}\n"

        rules = extractor.extract(content.encode())

        assert [r.code for r in rules] == ["kept"]

    def test_unknown_severity_is_invalid(self, extractor):
        with pytest.raises(InvalidRulesetContent) as exc_info:
            extractor.extract(b"rules:\n  r:\n    severity: fatal\n")

        assert exc_info.value.details["code"] == "r"

    def test_unhashable_severity_is_invalid(self, extractor):
        with pytest.raises(InvalidRulesetContent):
            extractor.extract(b"rules:\n  r:\n    severity: [error]\n")


class TestSpectralEdgeCases:
    """Tests for documents with no or malformed rules."""

    def test_empty_rules_mapping(self, extractor):
        assert extractor.extract(NO_RULES_YAML.encode()) == []

    def test_document_without_rules_key(self, extractor):
        assert extractor.extract(b"extends: spectral:oas\n") == []

    def test_empty_document(self, extractor):
        assert extractor.extract(b"") == []

    def test_toggle_only_entries_are_skipped(self, extractor):
        """Test entries that only toggle inherited rules carry no definition."""
        content = b"extends: spectral:oas\nrules:\n  info-contact: off\n  oas3-api-servers: true\n"

        assert extractor.extract(content) == []

    def test_malformed_yaml(self, extractor):
        with pytest.raises(InvalidRulesetContent):
            extractor.extract(b"rules: [unclosed")

    def test_non_mapping_document(self, extractor):
        with pytest.raises(InvalidRulesetContent) as exc_info:
            extractor.extract(b"- just\n- a list\n")

        assert exc_info.value.details["document_type"] == "list"

    def test_rules_must_be_a_mapping(self, extractor):
        with pytest.raises(InvalidRulesetContent):
            extractor.extract(b"rules:\n  - a\n  - b\n")

    def test_undecodable_bytes(self, extractor):
        with pytest.raises(InvalidRulesetContent) as exc_info:
            extractor.extract(b"\xff\xfe\xfa")

        assert exc_info.value.error_code == "INVALID_RULESET_CONTENT"

    def test_custom_charset(self):
        extractor = SpectralRuleExtractor(charset="latin-1")
        content = "rules:\n  r:\n    description: Caf\u00e9 rule\n".encode("latin-1")

        (rule,) = extractor.extract(content)

        assert rule.description == "Caf\u00e9 rule"
