"""
Two-Stage Transaction Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- The TransactionInput model's own constraints
- Amount > 0, known kind, a real date
- Failures here are errors: the store write would be rejected anyway

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Very old date detection
- Unusually large amount detection
- Category / account references that are not in the mirror
- Category restricted to the other kind
- These are warnings: the data-sync layer accepts all of them

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to confirm.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from moneybook.config import AppSettings, get_settings
from moneybook.models.records import Account, Category, TransactionInput
from moneybook.models.validation import ValidationIssue, ValidationResult


# Dates further back than this are probably typos
OLD_DATE_THRESHOLD = timedelta(days=365 * 2)


class TransactionValidator:
    """
    Checks a transaction before it is submitted.

    Stage 1 runs on the raw input; stage 2 only if stage 1 passed.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        data: Union[TransactionInput, Mapping[str, Any]],
    ) -> tuple[Optional[TransactionInput], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_input_or_None, list_of_issues)
        """
        if isinstance(data, TransactionInput):
            return data, []

        try:
            return TransactionInput.model_validate(data), []
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]) or "transaction",
                    issue_type=error["type"],
                    message=error["msg"],
                    severity="error",
                )
                for error in e.errors()
            ]
            return None, issues

    def _validate_semantic(
        self,
        tx: TransactionInput,
        categories: Sequence[Category],
        accounts: Sequence[Account],
        today: date,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Future dates (beyond the configured tolerance)
        - Very old dates
        - Absurd amounts
        - References to categories/accounts the user does not have
        - Category kind vs transaction kind
        """
        issues = []

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if tx.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({tx.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if tx.date < today - OLD_DATE_THRESHOLD:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Transaction date ({tx.date}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the year",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if tx.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({tx.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if tx.category_id is not None:
            category = next((c for c in categories if c.id == tx.category_id), None)
            if category is None:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="orphaned_reference",
                    message="The selected category no longer exists",
                    severity="warning",
                    suggested_fix="It will be shown as Uncategorized",
                ))
            elif category.kind is not None and category.kind != tx.kind:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type="inconsistent",
                    message=(
                        f"Category '{category.name}' is for {category.kind.value}, "
                        f"not {tx.kind.value}"
                    ),
                    severity="warning",
                    suggested_fix="Pick a matching category",
                ))

        if tx.account_id is not None and not any(a.id == tx.account_id for a in accounts):
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="orphaned_reference",
                message="The selected account no longer exists",
                severity="warning",
                suggested_fix="Pick another account",
            ))

        return issues

    def validate(
        self,
        data: Union[TransactionInput, Mapping[str, Any]],
        categories: Sequence[Category] = (),
        accounts: Sequence[Account] = (),
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the full two-stage validation pipeline.

        Args:
            data: The transaction about to be submitted
            categories: The user's categories (from the mirror)
            accounts: The user's accounts (from the mirror)
            today: Reference date; date.today() if None

        Returns:
            ValidationResult with all issues found
        """
        tx, issues = self._validate_schema(data)
        schema_valid = tx is not None

        if tx is not None:
            issues.extend(
                self._validate_semantic(tx, categories, accounts, today or date.today())
            )

        return ValidationResult(
            schema_valid=schema_valid,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if not result.is_valid:
            lines.append("❌ This transaction cannot be saved:")
            for issue in result.errors:
                lines.append(f"   • {issue.field}: {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.is_valid:
            lines.append("You can still save it, but please review carefully.")
        else:
            lines.append("Please fix the issues above before saving.")

        return "\n".join(lines)
