"""Integration tests for provisioning the packaged default rulesets."""

import pytest

from api_governance.services import DefaultRulesetProvisioner, load_default_rulesets


class TestDefaultProvisioning:
    """Provision the packaged defaults into a real database."""

    @pytest.mark.asyncio
    async def test_provision_fresh_organization(self, repository):
        """Test every default is created with its rules."""
        provisioner = DefaultRulesetProvisioner(repository, load_default_rulesets())

        result = await provisioner.provision("orgA", created_by="ops")

        assert result.created == ["API Design Guidelines", "API Metadata Guidelines"]
        assert result.skipped == []

        listing = await repository.get_rulesets("orgA")
        assert listing.count == 2
        assert {r.created_by for r in listing.rulesets} == {"ops"}

        design = await repository.get_ruleset_by_name("orgA", "API Design Guidelines")
        rules = await repository.get_rules_for_ruleset("orgA", design.id)
        assert len(rules) == 7

    @pytest.mark.asyncio
    async def test_provision_is_repeatable(self, repository):
        """Test a second run skips what the first one created."""
        provisioner = DefaultRulesetProvisioner(repository, load_default_rulesets())
        await provisioner.provision("orgA")

        result = await provisioner.provision("orgA")

        assert result.created == []
        assert result.skipped == ["API Design Guidelines", "API Metadata Guidelines"]
        assert (await repository.get_rulesets("orgA")).count == 2

    @pytest.mark.asyncio
    async def test_existing_name_is_left_alone(self, repository, make_draft):
        """Test an organization's own ruleset with a default name is kept."""
        own = await repository.create_ruleset("orgA", make_draft(name="API Metadata Guidelines"))

        result = await DefaultRulesetProvisioner(repository, load_default_rulesets()).provision("orgA")

        assert result.created == ["API Design Guidelines"]
        assert result.skipped == ["API Metadata Guidelines"]
        kept = await repository.get_ruleset_by_name("orgA", "API Metadata Guidelines")
        assert kept.id == own.id
        assert kept.description == "Design checks"

    @pytest.mark.asyncio
    async def test_organizations_are_provisioned_independently(self, repository):
        provisioner = DefaultRulesetProvisioner(repository, load_default_rulesets())
        await provisioner.provision("orgA")

        result = await provisioner.provision("orgB")

        assert len(result.created) == 2
