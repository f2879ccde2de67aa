"""Provisioning of the default rulesets shipped with the store.

A default ruleset file carries the ruleset metadata next to the Spectral
document::

    name: API Design Guidelines
    description: Baseline design checks for REST APIs.
    ruleType: API_DEFINITION
    artifactType: REST_API
    documentationLink: https://example.com/docs
    provider: platform
    rulesetContent:
      rules:
        ...
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from api_governance.config import get_settings
from api_governance.exceptions import InvalidRulesetContent, RulesetAlreadyExists
from api_governance.logging_config import get_logger
from api_governance.repositories.ruleset import RulesetRepository
from api_governance.schemas.ruleset import RulesetDraft

logger = get_logger(__name__)

PACKAGED_DEFAULTS_DIR = Path(__file__).resolve().parent.parent / "default_rulesets"


@dataclass
class ProvisioningResult:
    """Outcome of provisioning defaults into one organization."""

    organization: str
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def default_rulesets_dir() -> Path:
    """Directory holding default ruleset files, from settings or the package."""
    configured = get_settings().default_rulesets_path
    return Path(configured) if configured else PACKAGED_DEFAULTS_DIR


def parse_default_ruleset(yaml_content: str, source: str = "<string>") -> RulesetDraft:
    """Parse one default ruleset definition into a draft."""
    try:
        parsed = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise InvalidRulesetContent(
            f"Default ruleset {source} is not valid YAML: {e}",
            details={"source": source},
        ) from e

    if not isinstance(parsed, dict) or "rulesetContent" not in parsed:
        raise InvalidRulesetContent(
            f"Default ruleset {source} must contain 'rulesetContent'",
            details={"source": source},
        )

    content = parsed["rulesetContent"]
    if not isinstance(content, str):
        content = yaml.safe_dump(content, sort_keys=False, allow_unicode=True)

    try:
        return RulesetDraft(
            name=parsed.get("name") or "",
            description=parsed.get("description"),
            content=content,
            rule_type=parsed.get("ruleType"),
            artifact_type=parsed.get("artifactType"),
            documentation_link=parsed.get("documentationLink"),
            provider=parsed.get("provider"),
        )
    except ValidationError as e:
        raise InvalidRulesetContent(
            f"Default ruleset {source} is invalid: {e.error_count()} validation error(s)",
            details={"source": source, "errors": e.errors(include_url=False)},
        ) from e


def load_default_rulesets(directory: Optional[Union[str, Path]] = None) -> list[RulesetDraft]:
    """Load every default ruleset file in a directory, sorted by file name."""
    path = Path(directory) if directory else default_rulesets_dir()
    if not path.is_dir():
        raise FileNotFoundError(f"Default rulesets directory not found: {path}")

    files = sorted(p for p in path.iterdir() if p.suffix in (".yaml", ".yml"))
    drafts = [parse_default_ruleset(f.read_text(encoding="utf-8"), source=f.name) for f in files]
    logger.debug("Loaded default rulesets", directory=str(path), count=len(drafts))
    return drafts


class DefaultRulesetProvisioner:
    """Creates the default rulesets an organization does not have yet."""

    def __init__(self, repository: RulesetRepository, drafts: Optional[list[RulesetDraft]] = None):
        self.repository = repository
        self._drafts = drafts

    @property
    def drafts(self) -> list[RulesetDraft]:
        if self._drafts is None:
            self._drafts = load_default_rulesets()
        return self._drafts

    async def provision(self, organization: str, created_by: Optional[str] = None) -> ProvisioningResult:
        """Create missing defaults. Existing names are left untouched."""
        result = ProvisioningResult(organization=organization)

        for draft in self.drafts:
            existing = await self.repository.get_ruleset_by_name(organization, draft.name)
            if existing is not None:
                result.skipped.append(draft.name)
                continue

            try:
                await self.repository.create_ruleset(
                    organization,
                    draft.model_copy(update={"created_by": created_by}),
                )
            except RulesetAlreadyExists:
                # Someone else created it between the lookup and the insert.
                result.skipped.append(draft.name)
                continue
            result.created.append(draft.name)

        logger.info(
            "Default rulesets provisioned",
            organization=organization,
            created=len(result.created),
            skipped=len(result.skipped),
        )
        return result
