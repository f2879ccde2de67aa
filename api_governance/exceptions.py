"""Domain exceptions raised by the governance ruleset store.

Storage-layer errors never leave the repository boundary; they are wrapped
in one of the classes below with the original error chained as ``__cause__``.
"""

from typing import Any, Optional


class GovernanceException(Exception):
    """Base exception for the governance ruleset store."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a plain mapping for callers that serialise it."""
        error: dict[str, Any] = {"code": self.error_code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class RulesetNotFound(GovernanceException):
    """Ruleset does not exist in the organization."""

    def __init__(self, ruleset_id: str, organization: str):
        super().__init__(
            message=f"Ruleset not found: {ruleset_id} in organization {organization}",
            error_code="RULESET_NOT_FOUND",
            details={"ruleset_id": ruleset_id, "organization": organization},
        )


class RulesetAlreadyExists(GovernanceException):
    """A ruleset with the same name already exists in the organization."""

    def __init__(self, name: str, organization: str):
        super().__init__(
            message=f"Ruleset with name {name} already exists in organization {organization}",
            error_code="RULESET_ALREADY_EXIST",
            details={"name": name, "organization": organization},
        )


class InvalidRulesetContent(GovernanceException):
    """Ruleset content is unreadable or yields no rules."""

    def __init__(
        self,
        message: str = "Ruleset content does not contain any valid rules",
        ruleset_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_code="INVALID_RULESET_CONTENT",
            details={"ruleset_id": ruleset_id, **(details or {})},
        )


class ContentConversionError(GovernanceException):
    """Stored ruleset content cannot be decoded to text."""

    def __init__(self, ruleset_id: str, organization: str, charset: str):
        super().__init__(
            message=(
                f"Error while converting content of ruleset {ruleset_id} "
                f"in organization {organization} using charset {charset}"
            ),
            error_code="RULESET_CONTENT_CONVERSION_ERROR",
            details={
                "ruleset_id": ruleset_id,
                "organization": organization,
                "charset": charset,
            },
        )


class PersistenceFailure(GovernanceException):
    """Catch-all for storage errors, tagged with the failed operation."""

    def __init__(
        self,
        message: str = "Governance storage operation failed",
        error_code: str = "PERSISTENCE_FAILURE",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message=message, error_code=error_code, details=details)


class RulesetCreationFailed(PersistenceFailure):
    """Ruleset could not be stored for a reason other than a name clash."""

    def __init__(self, name: str, organization: str):
        super().__init__(
            message=f"Error while creating ruleset {name} in organization {organization}",
            error_code="RULESET_CREATION_FAILED",
            details={"name": name, "organization": organization},
        )


class RuleInsertionFailed(PersistenceFailure):
    """Extracted rules could not be inserted."""

    def __init__(self, ruleset_id: str):
        super().__init__(
            message=f"Error while inserting rules of ruleset {ruleset_id}",
            error_code="ERROR_WHILE_INSERTING_RULES",
            details={"ruleset_id": ruleset_id},
        )


class RuleDeletionFailed(PersistenceFailure):
    """Existing rules could not be deleted."""

    def __init__(self, ruleset_id: str):
        super().__init__(
            message=f"Error while deleting rules of ruleset {ruleset_id}",
            error_code="ERROR_WHILE_DELETING_RULES",
            details={"ruleset_id": ruleset_id},
        )
