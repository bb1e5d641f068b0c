"""
Two-Stage Expense Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (amount, description, payer, category)
- Range checks (amount > 0, description length)
- Known split strategy tag
- ASSIGNED needs at least one recipient

STAGE 2 - SEMANTIC VALIDATION (needs the current roster):
- Payer and recipients are household members
- The split can actually produce shares (primaries exist)
- Suspicious values (very large amounts, all-zero weighted split)

The allocation engine itself accepts anything and degrades to an
empty result; this validator is what stops bad input before it gets
that far.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the caller to act on.
"""

from decimal import Decimal
from typing import Iterable, Optional

from household_ledger.config import LedgerSettings, get_settings
from household_ledger.formatting import format_currency
from household_ledger.models.household import (
    ExpenseDraft,
    Person,
    SplitStrategy,
    ValidationIssue,
    ValidationResult,
)


class ExpenseValidator:
    """
    Validates expense drafts through a two-stage pipeline.

    Stage 1: Schema validation (no roster needed)
    Stage 2: Semantic validation against the roster
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _validate_schema(
        self,
        draft: ExpenseDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not draft.amount.is_finite() or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount that was actually paid",
            ))

        if not draft.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
            ))
        elif len(draft.description) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=(
                    "Description may be at most "
                    f"{self._settings.max_description_length} characters"
                ),
                severity="error",
            ))

        if draft.payer_id is None:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="missing",
                message="Payer is required",
                severity="error",
            ))

        if draft.category_id is None:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))

        strategy = draft.strategy
        if strategy is None:
            issues.append(ValidationIssue(
                field="split_strategy",
                issue_type="invalid_value",
                message=f"Unknown split strategy: {draft.split_strategy!r}",
                severity="error",
                suggested_fix="Use one of: "
                + ", ".join(s.value for s in SplitStrategy),
            ))
        elif strategy == SplitStrategy.ASSIGNED and not draft.recipient_ids:
            issues.append(ValidationIssue(
                field="recipient_ids",
                issue_type="missing",
                message="At least one person must be selected for an assigned split",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        draft: ExpenseDraft,
        roster: list[Person],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation against the current roster.

        Only called once stage 1 has passed, so the strategy, amount and
        payer are known to be present.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        members = {person.id: person for person in roster}
        primaries = [person for person in roster if person.is_parent]
        strategy = draft.strategy

        payer = members.get(draft.payer_id)
        if payer is None:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="unknown_person",
                message="Payer is not a member of this household",
                severity="error",
            ))
        elif not payer.is_parent:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="not_primary",
                message=f"{payer.name} is not a primary member; "
                        "their payment will not count towards settlement",
                severity="warning",
            ))

        unknown = [rid for rid in draft.recipient_ids if rid not in members]
        if unknown:
            issues.append(ValidationIssue(
                field="recipient_ids",
                issue_type="unknown_person",
                message=f"{len(unknown)} selected person(s) are not household members",
                severity="error",
            ))

        named = [members[rid] for rid in draft.recipient_ids if rid in members]
        needs_primaries = (
            strategy != SplitStrategy.ASSIGNED
            or any(not person.is_parent for person in named)
        )
        if needs_primaries and not primaries:
            issues.append(ValidationIssue(
                field="split_strategy",
                issue_type="no_primaries",
                message="The household has no primary members to split this expense between",
                severity="error",
            ))

        if strategy == SplitStrategy.WEIGHTED and primaries:
            total_income = sum((p.income or Decimal("0") for p in primaries), Decimal("0"))
            if total_income == 0:
                issues.append(ValidationIssue(
                    field="split_strategy",
                    issue_type="zero_income",
                    message="No primary member has an income; every weighted share will be zero",
                    severity="warning",
                    suggested_fix="Record incomes or use an equal split",
                ))

        max_amount = self._settings.max_expense_amount
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=(
                    f"Amount ({format_currency(draft.amount, self._settings.currency)}) "
                    "seems unusually high"
                ),
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        draft: ExpenseDraft,
        roster: Iterable[Person],
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: The submitted expense data
            roster: Current household members

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft, list(roster))
            all_issues.extend(semantic_issues)

        warnings = [
            issue.message for issue in all_issues if issue.severity == "warning"
        ]

        return ValidationResult(
            draft_id=draft.draft_id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short, readable summary of validation results."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("The expense could not be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     -> {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
