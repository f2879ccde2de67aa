"""Repository for governance rulesets and the rules derived from them.

Every mutation runs in one transaction that covers the ruleset row, the
rule extraction and the rule rows, so a ruleset is never stored without
rules that match its current content.
"""

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api_governance.config import Settings, get_settings
from api_governance.exceptions import (
    ContentConversionError,
    InvalidRulesetContent,
    PersistenceFailure,
    RulesetAlreadyExists,
    RulesetCreationFailed,
    RulesetNotFound,
)
from api_governance.extraction.base import ExtractedRule, RuleExtractor
from api_governance.logging_config import get_logger
from api_governance.metrics import get_metrics, track_ruleset_operation
from api_governance.models.base import generate_id
from api_governance.models.policy_mapping import PolicyRulesetMapping
from api_governance.models.rule import RuleSeverity
from api_governance.models.ruleset import RULESET_NAME_CONSTRAINT, Ruleset
from api_governance.repositories.rule import RuleRepository
from api_governance.schemas.ruleset import RuleInfo, RulesetDraft, RulesetInfo, RulesetList

logger = get_logger(__name__)


def name_conflict_from_error(error: IntegrityError) -> Optional[bool]:
    """Tell from the driver error whether the name constraint was violated.

    Returns None when the driver gives nothing to go on.
    """
    orig = error.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        constraint = getattr(candidate, "constraint_name", None)
        if constraint is None:
            diag = getattr(candidate, "diag", None)
            constraint = getattr(diag, "constraint_name", None)
        if constraint:
            return constraint == RULESET_NAME_CONSTRAINT

    message = str(orig)
    if RULESET_NAME_CONSTRAINT in message:
        return True
    # SQLite: "UNIQUE constraint failed: gov_rulesets.organization, gov_rulesets.name"
    if "UNIQUE constraint failed" in message:
        return "gov_rulesets.name" in message
    if "FOREIGN KEY constraint failed" in message or "NOT NULL constraint failed" in message:
        return False
    return None


class RulesetRepository:
    """Create, read, update and delete rulesets of an organization.

    Holds no per-request state: build one at start-up and share it.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        extractor: RuleExtractor,
        settings: Optional[Settings] = None,
    ):
        self.session_maker = session_maker
        self.extractor = extractor
        self.settings = settings or get_settings()
        self.charset = self.settings.ruleset_content_charset

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @track_ruleset_operation("create")
    async def create_ruleset(self, organization: str, draft: RulesetDraft) -> RulesetInfo:
        """Store a ruleset together with the rules extracted from its content."""
        ruleset_id = draft.id or generate_id()
        content = draft.content_bytes(self.charset)
        log = logger.bind(organization=organization, ruleset_id=ruleset_id, name=draft.name)

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    session.add(
                        Ruleset(
                            id=ruleset_id,
                            name=draft.name,
                            description=draft.description,
                            content=content,
                            rule_type=_enum_value(draft.rule_type),
                            artifact_type=_enum_value(draft.artifact_type),
                            documentation_link=draft.documentation_link,
                            provider=draft.provider,
                            organization=organization,
                            created_by=draft.created_by,
                            updated_by=draft.created_by,
                        )
                    )
                    await session.flush()

                    rules = self._extract_rules(ruleset_id, content)
                    await RuleRepository(session).add_rules(ruleset_id, rules, self.charset)
        except IntegrityError as e:
            if await self._is_name_conflict(e, organization, draft.name):
                log.info("Ruleset name already taken")
                raise RulesetAlreadyExists(draft.name, organization) from e
            log.error("Ruleset creation failed", error=str(e))
            raise RulesetCreationFailed(draft.name, organization) from e
        except SQLAlchemyError as e:
            log.error("Ruleset creation failed", error=str(e))
            raise RulesetCreationFailed(draft.name, organization) from e

        get_metrics().record_rules_extracted(len(rules))
        log.info("Ruleset created", rule_count=len(rules))
        return await self._fetch_by_id(organization, ruleset_id)

    @track_ruleset_operation("update")
    async def update_ruleset(
        self,
        organization: str,
        ruleset_id: str,
        draft: RulesetDraft,
    ) -> RulesetInfo:
        """Replace a ruleset's attributes and re-derive all of its rules."""
        content = draft.content_bytes(self.charset)
        log = logger.bind(organization=organization, ruleset_id=ruleset_id, name=draft.name)

        stmt = (
            update(Ruleset)
            .where(Ruleset.id == ruleset_id, Ruleset.organization == organization)
            .values(
                name=draft.name,
                description=draft.description,
                content=content,
                rule_type=_enum_value(draft.rule_type),
                artifact_type=_enum_value(draft.artifact_type),
                documentation_link=draft.documentation_link,
                provider=draft.provider,
                updated_by=draft.updated_by,
            )
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    if result.rowcount == 0:
                        raise RulesetNotFound(ruleset_id, organization)

                    rule_repo = RuleRepository(session)
                    deleted = await rule_repo.delete_by_ruleset(ruleset_id)
                    if deleted == 0:
                        log.warning("No rules found to delete for ruleset")

                    rules = self._extract_rules(ruleset_id, content)
                    await rule_repo.add_rules(ruleset_id, rules, self.charset)
        except IntegrityError as e:
            if await self._is_name_conflict(e, organization, draft.name, ruleset_id):
                log.info("Ruleset name already taken")
                raise RulesetAlreadyExists(draft.name, organization) from e
            log.error("Ruleset update failed", error=str(e))
            raise _persistence_failure("ERROR_WHILE_UPDATING_RULESET", ruleset_id, organization) from e
        except SQLAlchemyError as e:
            log.error("Ruleset update failed", error=str(e))
            raise _persistence_failure("ERROR_WHILE_UPDATING_RULESET", ruleset_id, organization) from e

        get_metrics().record_rules_extracted(len(rules))
        log.info("Ruleset updated", rules_deleted=deleted, rule_count=len(rules))
        return await self._fetch_by_id(organization, ruleset_id)

    @track_ruleset_operation("delete")
    async def delete_ruleset(self, organization: str, ruleset_id: str) -> None:
        """Delete a ruleset and its rules."""
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    deleted_rules = await RuleRepository(session).delete_by_ruleset(ruleset_id)
                    result = await session.execute(
                        delete(Ruleset)
                        .where(Ruleset.id == ruleset_id, Ruleset.organization == organization)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        raise RulesetNotFound(ruleset_id, organization)
        except SQLAlchemyError as e:
            logger.error(
                "Ruleset deletion failed",
                organization=organization,
                ruleset_id=ruleset_id,
                error=str(e),
            )
            raise _persistence_failure("ERROR_WHILE_DELETING_RULESET", ruleset_id, organization) from e

        logger.info(
            "Ruleset deleted",
            organization=organization,
            ruleset_id=ruleset_id,
            rules_deleted=deleted_rules,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @track_ruleset_operation("list")
    async def get_rulesets(self, organization: str) -> RulesetList:
        """List the metadata of every ruleset in an organization."""
        stmt = (
            select(Ruleset)
            .where(Ruleset.organization == organization)
            .order_by(Ruleset.created_time, Ruleset.name)
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                rulesets = [RulesetInfo.model_validate(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure(
                message=f"Error while retrieving rulesets of organization {organization}",
                error_code="ERROR_WHILE_RETRIEVING_RULESETS",
                details={"organization": organization},
            ) from e
        return RulesetList.of(rulesets)

    @track_ruleset_operation("get_by_name")
    async def get_ruleset_by_name(self, organization: str, name: str) -> Optional[RulesetInfo]:
        """Look a ruleset up by name. Returns None if there is none."""
        try:
            async with self.session_maker() as session:
                ruleset = await self._fetch_by_name(session, organization, name)
        except SQLAlchemyError as e:
            raise PersistenceFailure(
                message=f"Error while retrieving ruleset {name} of organization {organization}",
                error_code="ERROR_WHILE_RETRIEVING_RULESET_BY_NAME",
                details={"name": name, "organization": organization},
            ) from e
        return RulesetInfo.model_validate(ruleset) if ruleset else None

    @track_ruleset_operation("get_by_id")
    async def get_ruleset_by_id(self, organization: str, ruleset_id: str) -> RulesetInfo:
        """Get a ruleset that is expected to exist."""
        return await self._fetch_by_id(organization, ruleset_id)

    async def _fetch_by_id(self, organization: str, ruleset_id: str) -> RulesetInfo:
        """Fresh read by ID, not counted as an operation of its own."""
        stmt = select(Ruleset).where(
            Ruleset.id == ruleset_id,
            Ruleset.organization == organization,
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                ruleset = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _persistence_failure(
                "ERROR_WHILE_RETRIEVING_RULESET_BY_ID", ruleset_id, organization
            ) from e

        if ruleset is None:
            raise RulesetNotFound(ruleset_id, organization)
        return RulesetInfo.model_validate(ruleset)

    @track_ruleset_operation("get_content")
    async def get_ruleset_content(self, organization: str, ruleset_id: str) -> str:
        """Get the stored ruleset document as text.

        A ruleset whose blob is null yields an empty string.
        """
        stmt = select(Ruleset.content).where(
            Ruleset.id == ruleset_id,
            Ruleset.organization == organization,
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                row = result.first()
        except SQLAlchemyError as e:
            raise _persistence_failure(
                "ERROR_WHILE_RETRIEVING_RULESET_BY_ID", ruleset_id, organization
            ) from e

        if row is None:
            raise RulesetNotFound(ruleset_id, organization)

        blob = row[0]
        if blob is None:
            return ""
        try:
            return bytes(blob).decode(self.charset)
        except UnicodeDecodeError as e:
            raise ContentConversionError(ruleset_id, organization, self.charset) from e

    @track_ruleset_operation("get_rules")
    async def get_rules_for_ruleset(self, organization: str, ruleset_id: str) -> list[RuleInfo]:
        """Get the persisted rules of a ruleset in extraction order."""
        try:
            async with self.session_maker() as session:
                exists = await session.execute(
                    select(Ruleset.id).where(
                        Ruleset.id == ruleset_id,
                        Ruleset.organization == organization,
                    )
                )
                if exists.first() is None:
                    raise RulesetNotFound(ruleset_id, organization)
                rules = await RuleRepository(session).get_by_ruleset(ruleset_id)
        except SQLAlchemyError as e:
            raise _persistence_failure(
                "ERROR_WHILE_RETRIEVING_RULES", ruleset_id, organization
            ) from e

        infos = []
        for rule in rules:
            try:
                content = rule.content.decode(self.charset) if rule.content else ""
            except UnicodeDecodeError as e:
                raise ContentConversionError(ruleset_id, organization, self.charset) from e
            infos.append(
                RuleInfo(
                    id=rule.id,
                    ruleset_id=rule.ruleset_id,
                    code=rule.code,
                    message_on_failure=rule.message_on_failure,
                    description=rule.description,
                    severity=RuleSeverity(rule.severity),
                    content=content,
                )
            )
        return infos

    @track_ruleset_operation("get_policies")
    async def get_associated_policies_for_ruleset(self, ruleset_id: str) -> list[str]:
        """Get the IDs of the policies that reference a ruleset."""
        stmt = (
            select(PolicyRulesetMapping.policy_id)
            .where(PolicyRulesetMapping.ruleset_id == ruleset_id)
            .order_by(PolicyRulesetMapping.policy_id)
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceFailure(
                message=f"Error while retrieving policies associated with ruleset {ruleset_id}",
                error_code="ERROR_WHILE_RETRIEVING_ASSOCIATED_POLICIES",
                details={"ruleset_id": ruleset_id},
            ) from e

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _extract_rules(self, ruleset_id: str, content: bytes) -> list[ExtractedRule]:
        """Run the extraction engine; a ruleset without rules is invalid."""
        try:
            rules = self.extractor.extract(content)
        except InvalidRulesetContent as e:
            e.details["ruleset_id"] = ruleset_id
            raise
        if not rules:
            raise InvalidRulesetContent(ruleset_id=ruleset_id)
        return list(rules)

    @staticmethod
    async def _fetch_by_name(
        session: AsyncSession,
        organization: str,
        name: str,
    ) -> Optional[Ruleset]:
        stmt = select(Ruleset).where(
            Ruleset.name == name,
            Ruleset.organization == organization,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _is_name_conflict(
        self,
        error: IntegrityError,
        organization: str,
        name: str,
        own_id: Optional[str] = None,
    ) -> bool:
        """Decide whether an integrity error means the name is taken.

        Prefers the constraint reported by the driver; otherwise looks up
        another ruleset holding the name.
        """
        conflict = name_conflict_from_error(error)
        if conflict is not None:
            return conflict

        try:
            async with self.session_maker() as session:
                existing = await self._fetch_by_name(session, organization, name)
        except SQLAlchemyError as e:
            # The caller reports the original integrity error instead.
            logger.warning(
                "Could not look up a conflicting ruleset name",
                organization=organization,
                name=name,
                error=str(e),
            )
            return False
        return existing is not None and existing.id != own_id


def _enum_value(value) -> Optional[str]:
    return value.value if value is not None else None


def _persistence_failure(error_code: str, ruleset_id: str, organization: str) -> PersistenceFailure:
    action = error_code.removeprefix("ERROR_WHILE_").replace("_", " ").lower()
    return PersistenceFailure(
        message=f"Error while {action} {ruleset_id} in organization {organization}",
        error_code=error_code,
        details={"ruleset_id": ruleset_id, "organization": organization},
    )
