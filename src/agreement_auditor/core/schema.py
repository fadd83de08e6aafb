# core/schema.py
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from agreement_auditor.core.errors import ExtractionFailure

# 1. ENUMS & CONSTANTS
AGREEMENT_STATUS = Literal["active", "pending-vendor", "pending-cfo", "expired"]
PAYMENT_TERMS = Literal["full", "installment"]
RULE_TYPES = Literal["price_match", "quantity_available", "contract_period", "daily_limit", "invoice_math"]
ROUTE_TYPES = Literal["auto-approved", "pending-cfo-approval", "blocked"]
BLOCK_REASONS = Literal[
    "no agreement selected",
    "no invoice uploaded",
    "vendor missing",
    "validation failed",
    "awaiting verification",
]


# 2. REFERENCE DATA

class ContractPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self):
        if self.end < self.start:
            raise ValueError(f"Contract period ends ({self.end}) before it starts ({self.start})")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class Agreement(BaseModel):
    """
    A purchase agreement with a vendor. Reference data: the engine selects
    an agreement for a submission but never changes it.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Agreement identifier, e.g. 'AGR-2025-001'")
    vendor: str
    category: str
    item_name: str
    price_per_unit: float = Field(..., ge=0)
    total_quantity: int = Field(..., ge=0)
    used_quantity: int = Field(default=0, ge=0)
    contract_period: ContractPeriod
    payment_terms: PAYMENT_TERMS = "full"
    status: AGREEMENT_STATUS = "active"
    contract_address: Optional[str] = None

    @property
    def remaining_quantity(self) -> int:
        return max(self.total_quantity - self.used_quantity, 0)

    @property
    def total_value(self) -> float:
        return self.price_per_unit * self.total_quantity

    @property
    def is_active(self) -> bool:
        return self.status == "active"


# 3. EXTRACTED DATA

class LineItem(BaseModel):
    description: str = "Item"
    quantity: float = Field(default=1.0, ge=0)
    unit_price: float = Field(default=0.0, ge=0)

    # Always derived, so it can never drift from quantity and unit price.
    @computed_field
    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


class ExtractedInvoice(BaseModel):
    """
    What the vision model read off the receipt, after normalization.
    Replaced wholesale on re-upload; line items may be edited by the auditor.
    """
    vendor: str = ""
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = Field(None, description="Transaction date; None when unreadable")
    category: Optional[str] = Field(None, description="Canonical category name, or None if unmatched")
    line_items: List[LineItem] = Field(default_factory=list)
    tax_amount: float = 0.0
    extracted_total: float = Field(0.0, description="Grand total printed on the receipt; 0 when unknown")

    # AI Prediction Confidence
    confidence_score: float = Field(1.0, ge=0, le=1)
    confidence_reason: Optional[str] = None

    @computed_field
    @property
    def subtotal(self) -> float:
        return sum(item.total for item in self.line_items)

    @computed_field
    @property
    def grand_total(self) -> float:
        return self.subtotal + self.tax_amount

    @property
    def total_quantity(self) -> float:
        return sum(item.quantity for item in self.line_items)


class ExtractionResult(BaseModel):
    """Either an invoice or the reason there is none."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    invoice: Optional[ExtractedInvoice] = None
    error: Optional[ExtractionFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.invoice is not None

    def unwrap(self) -> ExtractedInvoice:
        if self.error is not None:
            raise self.error
        if self.invoice is None:
            raise ExtractionFailure("No invoice was extracted.")
        return self.invoice


# 4. VALIDATION & DECISION

class ValidationResult(BaseModel):
    rule: RULE_TYPES
    valid: bool
    message: str
    # Only the daily limit rule ever sets this.
    needs_escalation: bool = False


class ValidationReport(BaseModel):
    results: List[ValidationResult] = Field(default_factory=list)

    def get(self, rule: str) -> Optional[ValidationResult]:
        return next((r for r in self.results if r.rule == rule), None)

    @property
    def blocking_failures(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.valid]

    @property
    def all_valid(self) -> bool:
        return not self.blocking_failures

    @property
    def needs_escalation(self) -> bool:
        return any(r.needs_escalation for r in self.results)


class SubmissionDecision(BaseModel):
    allowed: bool
    route: ROUTE_TYPES
    reason: Optional[BLOCK_REASONS] = None
    messages: List[str] = Field(default_factory=list)


class AttestationReceipt(BaseModel):
    """What the attestation handler hands back for an accepted submission."""
    submission_id: str
    agreement_id: str
    route: ROUTE_TYPES
    amount: float
    tx_hash: str
    submitted_at: datetime = Field(default_factory=datetime.now)
