"""Pydantic schemas for rulesets and their rules."""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from api_governance.models.rule import RuleSeverity
from api_governance.models.ruleset import ArtifactType, RuleType


class RulesetDraft(BaseModel):
    """Writable ruleset attributes plus the raw policy document."""

    id: Optional[str] = Field(None, max_length=36, description="Caller-supplied ruleset ID")
    name: str = Field(..., max_length=255, description="Name, unique within the organization")
    description: Optional[str] = Field(None, description="Ruleset description")
    content: Union[str, bytes] = Field(..., description="Raw ruleset document")
    rule_type: Optional[RuleType] = Field(None, description="API_METADATA, API_DEFINITION or API_DOCUMENTATION")
    artifact_type: Optional[ArtifactType] = Field(None, description="REST_API or ASYNC_API")
    documentation_link: Optional[str] = Field(None, max_length=1024, description="Link to human readable docs")
    provider: Optional[str] = Field(None, max_length=255, description="Who authored the ruleset")
    created_by: Optional[str] = Field(None, max_length=255)
    updated_by: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Ruleset name must not be empty")
        return value

    @model_validator(mode="after")
    def content_not_empty(self) -> "RulesetDraft":
        if not self.content.strip():
            raise ValueError("Ruleset content must not be empty")
        return self

    def content_bytes(self, charset: str = "utf-8") -> bytes:
        """Return the content as bytes, encoding text with ``charset``."""
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode(charset)


class RulesetInfo(BaseModel):
    """Ruleset metadata, without the raw document."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    rule_type: Optional[str] = None
    artifact_type: Optional[str] = None
    documentation_link: Optional[str] = None
    provider: Optional[str] = None
    organization: str
    created_by: Optional[str] = None
    created_time: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_time: Optional[datetime] = None


class RulesetList(BaseModel):
    """Rulesets of an organization with their count."""

    count: int = 0
    rulesets: list[RulesetInfo] = Field(default_factory=list)

    @classmethod
    def of(cls, rulesets: list[RulesetInfo]) -> "RulesetList":
        return cls(count=len(rulesets), rulesets=rulesets)


class RuleInfo(BaseModel):
    """A persisted rule as returned to callers."""

    id: str
    ruleset_id: str
    code: str
    message_on_failure: Optional[str] = None
    description: Optional[str] = None
    severity: RuleSeverity
    content: str = ""
