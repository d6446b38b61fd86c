"""
Invoice Form Validation

DESIGN DECISION: The form never refuses input. Whatever the user typed is
kept in an InvoiceDraft, and this validator reports what is wrong with it
before the draft is turned into an Invoice.

ERRORS (block saving):
- No company profile, or one without a name
- No client selected
- No invoice number or no due date
- No line items, or a line without description, quantity or price
- Negative tax rate

WARNINGS (shown, do not block):
- Due date before the issue date

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from typing import Optional

from invoice_manager.models.invoice import (
    Client,
    CompanyProfile,
    InvoiceDraft,
    ValidationIssue,
    ValidationResult,
)


class InvoiceValidationError(Exception):
    """A draft failed validation. ``result`` lists every issue."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__(
            f"Invoice has {result.error_count} errors: " + "; ".join(messages)
        )


class InvoiceValidator:
    """Checks an invoice draft against the rules of the invoice form."""

    def _validate_parties(
        self,
        company: Optional[CompanyProfile],
        client: Optional[Client],
    ) -> list[ValidationIssue]:
        issues = []

        if company is None or not company.name:
            issues.append(ValidationIssue(
                field="company",
                issue_type="missing",
                message="Please set up your company profile in Settings first",
                severity="error",
            ))

        if client is None or not client.name:
            issues.append(ValidationIssue(
                field="client",
                issue_type="missing",
                message="Please select a client",
                severity="error",
            ))

        return issues

    def _validate_header(self, draft: InvoiceDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.invoice_number:
            issues.append(ValidationIssue(
                field="invoice_number",
                issue_type="missing",
                message="Invoice number is required",
                severity="error",
            ))

        if draft.due_date is None:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="missing",
                message="Due date is required",
                severity="error",
            ))
        elif draft.due_date < draft.issue_date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date is before the invoice date",
                severity="warning",
            ))

        return issues

    def _validate_items(self, draft: InvoiceDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.items:
            issues.append(ValidationIssue(
                field="items",
                issue_type="missing",
                message="Add at least one item",
                severity="error",
            ))
            return issues

        for index, item in enumerate(draft.items):
            prefix = f"items[{index}]"
            if not item.description.strip():
                issues.append(ValidationIssue(
                    field=f"{prefix}.description",
                    issue_type="missing",
                    message="Description is required",
                    severity="error",
                ))
            if item.quantity <= 0:
                issues.append(ValidationIssue(
                    field=f"{prefix}.quantity",
                    issue_type="invalid_value",
                    message="Quantity must be greater than 0",
                    severity="error",
                ))
            if item.price <= 0:
                issues.append(ValidationIssue(
                    field=f"{prefix}.price",
                    issue_type="invalid_value",
                    message="Price must be greater than 0",
                    severity="error",
                ))

        return issues

    def validate(
        self,
        draft: InvoiceDraft,
        company: Optional[CompanyProfile],
        client: Optional[Client] = None,
    ) -> ValidationResult:
        """
        Run every check on a draft.

        Args:
            draft: The form state
            company: The stored company profile, if any
            client: The client the draft bills. Defaults to ``draft.client``.

        Returns:
            ValidationResult with all issues found
        """
        if client is None:
            client = draft.client

        issues = self._validate_parties(company, client)
        issues.extend(self._validate_header(draft))
        issues.extend(self._validate_items(draft))

        if draft.tax_rate < 0:
            issues.append(ValidationIssue(
                field="tax_rate",
                issue_type="invalid_value",
                message="Tax rate cannot be negative",
                severity="error",
            ))

        return ValidationResult(issues=issues)
