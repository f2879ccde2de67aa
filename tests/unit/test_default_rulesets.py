"""Unit tests for default ruleset loading and provisioning."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from api_governance.exceptions import InvalidRulesetContent, RulesetAlreadyExists
from api_governance.extraction import SpectralRuleExtractor
from api_governance.models import ArtifactType, RuleType
from api_governance.services.default_rulesets import (
    PACKAGED_DEFAULTS_DIR,
    DefaultRulesetProvisioner,
    load_default_rulesets,
    parse_default_ruleset,
)


DEFAULT_RULESET_YAML = """\
name: Async Naming
description: Channel naming for async APIs.
ruleType: API_DEFINITION
artifactType: ASYNC_API
documentationLink: https://example.com/async
provider: platform
rulesetContent:
  rules:
    channel-kebab-case:
      description: Channels should be kebab-case.
      severity: warn
      given: "$.channels"
"""


class TestParseDefaultRuleset:
    """Tests for parse_default_ruleset."""

    def test_parse_metadata(self):
        """Test camelCase keys map onto draft fields."""
        draft = parse_default_ruleset(DEFAULT_RULESET_YAML, source="async.yaml")

        assert draft.name == "Async Naming"
        assert draft.rule_type is RuleType.API_DEFINITION
        assert draft.artifact_type is ArtifactType.ASYNC_API
        assert draft.documentation_link == "https://example.com/async"
        assert draft.provider == "platform"

    def test_nested_content_is_dumped_to_yaml(self):
        """Test a mapping under rulesetContent becomes the stored document."""
        draft = parse_default_ruleset(DEFAULT_RULESET_YAML)

        rules = SpectralRuleExtractor().extract(draft.content_bytes())
        assert [r.code for r in rules] == ["channel-kebab-case"]

    def test_string_content_kept_verbatim(self):
        content = "rules:\n  r:\n    given: $\n"
        yaml_content = "name: Inline\nrulesetContent: |\n  rules:\n    r:\n      given: $\n"

        draft = parse_default_ruleset(yaml_content)

        assert draft.content == content

    def test_missing_content(self):
        with pytest.raises(InvalidRulesetContent) as exc_info:
            parse_default_ruleset("name: Empty\n", source="empty.yaml")

        assert exc_info.value.details["source"] == "empty.yaml"

    def test_invalid_yaml(self):
        with pytest.raises(InvalidRulesetContent):
            parse_default_ruleset("name: [broken", source="broken.yaml")

    def test_missing_name(self):
        """Test schema violations surface as invalid content."""
        with pytest.raises(InvalidRulesetContent) as exc_info:
            parse_default_ruleset("rulesetContent:\n  rules: {}\n", source="anon.yaml")

        assert exc_info.value.details["errors"]


class TestLoadDefaultRulesets:
    """Tests for load_default_rulesets."""

    def test_packaged_defaults(self):
        """Test the packaged defaults load and each yields rules."""
        drafts = load_default_rulesets(PACKAGED_DEFAULTS_DIR)

        assert [d.name for d in drafts] == ["API Design Guidelines", "API Metadata Guidelines"]
        extractor = SpectralRuleExtractor()
        assert [len(extractor.extract(d.content_bytes())) for d in drafts] == [7, 5]

    def test_loads_sorted_yaml_files(self, tmp_path):
        (tmp_path / "b.yml").write_text(DEFAULT_RULESET_YAML.replace("Async Naming", "B"))
        (tmp_path / "a.yaml").write_text(DEFAULT_RULESET_YAML.replace("Async Naming", "A"))
        (tmp_path / "notes.txt").write_text("ignored")

        drafts = load_default_rulesets(tmp_path)

        assert [d.name for d in drafts] == ["A", "B"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_default_rulesets(tmp_path / "missing")


class TestDefaultRulesetProvisioner:
    """Tests for DefaultRulesetProvisioner with a mocked repository."""

    @pytest.fixture
    def drafts(self):
        return [
            parse_default_ruleset(DEFAULT_RULESET_YAML.replace("Async Naming", name))
            for name in ("First", "Second", "Third")
        ]

    @pytest.mark.asyncio
    async def test_creates_missing_and_skips_existing(self, drafts):
        """Test only names the organization lacks are created."""
        repo = AsyncMock()
        repo.get_ruleset_by_name.side_effect = [None, MagicMock(), None]

        result = await DefaultRulesetProvisioner(repo, drafts).provision("orgA", created_by="ops")

        assert result.organization == "orgA"
        assert result.created == ["First", "Third"]
        assert result.skipped == ["Second"]
        assert repo.create_ruleset.await_count == 2
        organization, draft = repo.create_ruleset.await_args_list[0].args
        assert organization == "orgA"
        assert draft.created_by == "ops"

    @pytest.mark.asyncio
    async def test_lost_race_counts_as_skipped(self, drafts):
        repo = AsyncMock()
        repo.get_ruleset_by_name.return_value = None
        repo.create_ruleset.side_effect = [None, RulesetAlreadyExists("Second", "orgA"), None]

        result = await DefaultRulesetProvisioner(repo, drafts).provision("orgA")

        assert result.created == ["First", "Third"]
        assert result.skipped == ["Second"]

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, drafts):
        repo = AsyncMock()
        repo.get_ruleset_by_name.return_value = None
        repo.create_ruleset.side_effect = InvalidRulesetContent(ruleset_id="x")

        with pytest.raises(InvalidRulesetContent):
            await DefaultRulesetProvisioner(repo, drafts).provision("orgA")

    def test_drafts_default_to_packaged_set(self):
        provisioner = DefaultRulesetProvisioner(AsyncMock())

        assert len(provisioner.drafts) == 2
