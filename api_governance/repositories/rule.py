"""Repository for rule data access."""

from typing import Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api_governance.exceptions import RuleDeletionFailed, RuleInsertionFailed
from api_governance.extraction.base import ExtractedRule
from api_governance.models.base import generate_id
from api_governance.models.rule import Rule


class RuleRepository:
    """Batch persistence of the rules derived from one ruleset.

    Bound to a caller-owned session; the caller decides the transaction
    boundary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_rules(
        self,
        ruleset_id: str,
        rules: Sequence[ExtractedRule],
        charset: str = "utf-8",
    ) -> list[str]:
        """Insert all rules of a ruleset in one batch. Returns the new rule IDs."""
        rows = [
            {
                "id": generate_id(),
                "ruleset_id": ruleset_id,
                "code": rule.code,
                "position": position,
                "message_on_failure": rule.message_on_failure,
                "description": rule.description,
                "severity": rule.severity.value,
                "content": rule.content.encode(charset),
            }
            for position, rule in enumerate(rules)
        ]
        if not rows:
            return []

        try:
            await self.session.execute(insert(Rule), rows)
        except SQLAlchemyError as e:
            raise RuleInsertionFailed(ruleset_id) from e
        return [row["id"] for row in rows]

    async def delete_by_ruleset(self, ruleset_id: str) -> int:
        """Delete every rule of a ruleset. Returns the number of rows removed."""
        stmt = delete(Rule).where(Rule.ruleset_id == ruleset_id)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise RuleDeletionFailed(ruleset_id) from e
        return result.rowcount or 0

    async def get_by_ruleset(self, ruleset_id: str) -> Sequence[Rule]:
        """Get the rules of a ruleset in extraction order."""
        stmt = (
            select(Rule)
            .where(Rule.ruleset_id == ruleset_id)
            .order_by(Rule.position)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
