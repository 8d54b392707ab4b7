"""
Validation Result Models

Issues found while checking a transaction before it is submitted.
Errors block the write; warnings are shown for the user to confirm.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from moneybook.models.records import utc_now


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'future_date', 'orphaned_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (the input model's own constraints)
    Stage 2: Semantic validation (advisory checks against the mirror)
    """

    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool = Field(
        ...,
        description="Did the input satisfy the model constraints?"
    )
    is_valid: bool = Field(
        ...,
        description="No error-severity issues; the write may proceed"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Messages of warning-severity issues"
    )

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]
