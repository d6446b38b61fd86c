"""
Core Data Models for Invoice Manager

These models define the schemas for everything the app persists or exchanges:
invoices and their line items, contacts, the company profile, form drafts,
filters and backup documents.

DESIGN DECISION: Stored records are immutable pydantic models and every
derived amount (line total, subtotal, tax, grand total) is a computed field.
Derived amounts are written out for readers of the JSON but are never read
back: they are always recomputed from quantity, price and tax rate.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON produced by earlier versions of the app so old backups still import.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from invoice_manager.calculations import (
    calculate_line_total,
    calculate_subtotal,
    calculate_tax,
    calculate_total,
)


# Decimal in Python, plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class InvoiceStatus(str, Enum):
    """Lifecycle status of an invoice."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class Currency(str, Enum):
    """
    Supported invoice currencies.

    Anything else is displayed as USD by format_currency.
    """
    USD = "USD"
    GBP = "GBP"


class ContactType(str, Enum):
    """Whether an address book entry is a company or an individual client."""
    COMPANY = "company"
    CLIENT = "client"


# =============================================================================
# BASE
# =============================================================================

class RecordModel(BaseModel):
    """
    Base for every persisted record.

    Immutable; use ``with_updates`` to get a re-validated copy.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible dict that goes into storage."""
        return self.model_dump(mode="json", by_alias=True)

    def with_updates(self, **changes: Any):
        """
        Return a copy with ``changes`` applied.

        Unlike ``model_copy(update=...)`` the result is fully validated,
        so derived amounts and invariants are recomputed.
        """
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)


# =============================================================================
# PARTIES
# =============================================================================

class PaymentDetails(RecordModel):
    """Bank details printed at the bottom of an invoice."""

    account_name: str = ""
    account_number: str = ""
    sort_code: str = Field(
        default="",
        description="Sort code or routing number"
    )


class Client(RecordModel):
    """
    The billed party, as copied into an invoice.

    This is a snapshot: editing or deleting the Contact it came from
    does not change invoices that were already saved.
    """

    name: str = Field(
        default="",
        description="Client or company name"
    )
    address: str = ""
    city: str = ""
    state: str = Field(
        default="",
        description="State, county or region"
    )
    zip_code: str = Field(
        default="",
        description="ZIP or postal code"
    )
    phone: str = ""
    email: str = ""

    @classmethod
    def from_contact(cls, contact: "Contact") -> "Client":
        """Take a snapshot of an address book entry."""
        return cls.model_validate(
            contact.model_dump(include=set(cls.model_fields))
        )


class CompanyProfile(Client):
    """
    The invoice issuer.

    Exactly one profile exists. Saving replaces it wholesale.
    """

    payment_details: Optional[PaymentDetails] = None


class Contact(CompanyProfile):
    """
    A reusable address book entry.

    Created from the contacts form, updated in place by id,
    deleted by id.
    """

    id: str = Field(
        default_factory=new_id,
        description="Unique contact ID"
    )
    contact_type: ContactType = Field(
        default=ContactType.CLIENT,
        alias="type",
        description="Company or individual client"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the contact was first saved"
    )


# =============================================================================
# CORE INVOICE MODEL
# =============================================================================

class InvoiceLineItem(RecordModel):
    """
    A single billed line.

    ``total`` is always quantity x price. It cannot be set directly.
    """

    id: str = Field(
        default_factory=new_id,
        description="Unique within the owning invoice"
    )
    description: str = Field(
        default="",
        description="What is being billed"
    )
    quantity: Money = Field(
        default=Decimal("1"),
        ge=0,
        description="Number of units"
    )
    price: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Unit price"
    )

    @computed_field
    @property
    def total(self) -> Money:
        return calculate_line_total(self.quantity, self.price)


class Invoice(RecordModel):
    """
    A saved invoice.

    CRITICAL: subtotal, tax_amount and total are computed from the line
    items and the tax rate every time they are read. There is no way to
    store an invoice whose totals disagree with its items.
    """

    # Identity
    id: str = Field(
        default_factory=new_id,
        description="Unique invoice ID, stable for the invoice's lifetime"
    )
    invoice_number: str = Field(
        ...,
        min_length=1,
        description="Human readable number, e.g. INV-0042"
    )

    # Dates
    issue_date: date = Field(
        default_factory=date.today,
        alias="date",
        description="Date the invoice was issued"
    )
    due_date: Optional[date] = Field(
        default=None,
        description="Payment due date"
    )

    # Parties (snapshots)
    company: CompanyProfile = Field(
        default_factory=CompanyProfile,
        description="Issuer, copied at save time"
    )
    client: Client = Field(
        default_factory=Client,
        description="Billed party, copied at save time"
    )

    # Lines and tax
    items: tuple[InvoiceLineItem, ...] = Field(
        ...,
        min_length=1,
        description="Billed lines, in display order"
    )
    tax_rate: Money = Field(
        default=Decimal("0"),
        ge=0,
        description="Tax rate in percent"
    )

    # Terms
    payment_terms: str = ""
    notes: str = ""
    status: InvoiceStatus = InvoiceStatus.DRAFT
    currency: Currency = Currency.USD

    # Timestamps
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the invoice was first saved"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last update timestamp"
    )

    @field_validator('due_date', mode='before')
    @classmethod
    def empty_due_date_is_none(cls, v: Any) -> Any:
        """Older records store a missing due date as an empty string."""
        if v == "":
            return None
        return v

    @model_validator(mode='after')
    def validate_item_ids(self) -> 'Invoice':
        """Line item ids must be unique within one invoice."""
        ids = [item.id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("Line item ids must be unique within an invoice")
        return self

    @computed_field
    @property
    def subtotal(self) -> Money:
        return calculate_subtotal(self.items)

    @computed_field(alias="taxAmount")
    @property
    def tax_amount(self) -> Money:
        return calculate_tax(self.subtotal, self.tax_rate)

    @computed_field
    @property
    def total(self) -> Money:
        return calculate_total(self.subtotal, self.tax_amount)


# =============================================================================
# FORM MODELS
# =============================================================================

class DraftLineItem(BaseModel):
    """
    A line as typed into the invoice form.

    Unlike InvoiceLineItem nothing is enforced here; the validator
    reports problems instead of the model refusing to exist.
    """

    id: str = Field(default_factory=new_id)
    description: str = ""
    quantity: Decimal = Decimal("1")
    price: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return calculate_line_total(self.quantity, self.price)


class InvoiceDraft(BaseModel):
    """
    State of the invoice form.

    CRITICAL: A draft is PROPOSED data. It becomes an Invoice only after
    it passes InvoiceValidator, at which point the company profile and
    client are snapshotted into it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Set when editing an existing invoice
    invoice_id: Optional[str] = None
    created_at: Optional[datetime] = None

    invoice_number: str = ""
    issue_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None

    # Either a saved contact to snapshot, or an explicit client
    client_id: Optional[str] = None
    client: Optional[Client] = None

    items: list[DraftLineItem] = Field(
        default_factory=lambda: [DraftLineItem()]
    )
    tax_rate: Decimal = Decimal("0")
    payment_terms: str = ""
    notes: str = ""
    status: InvoiceStatus = InvoiceStatus.DRAFT
    currency: Currency = Currency.USD

    @property
    def subtotal(self) -> Decimal:
        return calculate_subtotal(self.items)

    @property
    def tax_amount(self) -> Decimal:
        return calculate_tax(self.subtotal, self.tax_rate)

    @property
    def total(self) -> Decimal:
        return calculate_total(self.subtotal, self.tax_amount)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Form field with the issue, e.g. 'items[0].price'"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating an invoice draft."""

    validated_at: datetime = Field(
        default_factory=utc_now
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        """Warnings don't block saving."""
        return not self.has_errors

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]

    def errors_by_field(self) -> dict[str, str]:
        """First error message per field, for showing next to form inputs."""
        errors: dict[str, str] = {}
        for issue in self.issues:
            if issue.severity == "error":
                errors.setdefault(issue.field, issue.message)
        return errors


# =============================================================================
# QUERY MODELS
# =============================================================================

class InvoiceFilters(BaseModel):
    """Dashboard filters. Empty values mean 'no filter'."""
    model_config = ConfigDict(str_strip_whitespace=True)

    search: str = Field(
        default="",
        description="Matched against client name and invoice number"
    )
    status: Optional[InvoiceStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return bool(self.search or self.status or self.start_date or self.end_date)


class ContactFilters(BaseModel):
    """Address book filters."""
    model_config = ConfigDict(str_strip_whitespace=True)

    search: str = Field(
        default="",
        description="Matched against contact name and email"
    )
    contact_type: Optional[ContactType] = None


class InvoiceQueryResult(BaseModel):
    """Invoices matching a filter, with the figures shown above the list."""

    invoices: list[Invoice] = Field(default_factory=list)
    result_count: int = Field(ge=0)
    total_amount: Decimal = Decimal("0")
    currency: Currency = Field(
        default=Currency.USD,
        description="Currency of the first match, used to display the total"
    )

    @property
    def data_found(self) -> bool:
        return self.result_count > 0


# =============================================================================
# BACKUP MODELS
# =============================================================================

BACKUP_FORMAT_VERSION = "1.0"


class BackupDocument(BaseModel):
    """
    Everything the app stores, in one document.

    Serialized as
    ``{invoices, clients, company, exportDate, version}``.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    invoices: list[Invoice] = Field(default_factory=list)
    clients: list[Contact] = Field(default_factory=list)
    company: Optional[CompanyProfile] = None
    export_date: datetime = Field(default_factory=utc_now)
    version: str = BACKUP_FORMAT_VERSION

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BackupSummary(BaseModel):
    """What an import is about to replace the current data with."""

    invoice_count: int = Field(ge=0)
    contact_count: int = Field(ge=0)
    has_company: bool
    version: Optional[str] = None
    export_date: Optional[str] = None

    def confirmation_message(self) -> str:
        return (
            "This will replace all your current data with the imported data.\n\n"
            "Imported data contains:\n"
            f"- {self.invoice_count} invoices\n"
            f"- {self.contact_count} clients\n"
            f"- {'Company settings' if self.has_company else 'No company settings'}\n\n"
            "Are you sure you want to continue?"
        )
