# core/session.py
import logging
from datetime import date
from typing import List, Optional

from agreement_auditor.config import settings
from agreement_auditor.core.categories import CategoryRegistry
from agreement_auditor.core.errors import InactiveAgreement, SubmissionRejected
from agreement_auditor.core.limits import DailyLimitManager
from agreement_auditor.core.schema import (
    Agreement,
    AttestationReceipt,
    ExtractedInvoice,
    LineItem,
    SubmissionDecision,
    ValidationReport,
)
from agreement_auditor.processing.gate import decide_submission
from agreement_auditor.processing.rules import revalidate

logger = logging.getLogger(__name__)


class SubmissionSession:
    """
    State of one auditor submitting one invoice against one agreement.

    Owns the selected agreement, the current extraction and the auditor's manual
    edits. Validation and the gate decision are recomputed from this state on
    demand, never cached.
    """

    def __init__(
        self,
        limits: DailyLimitManager,
        categories: Optional[CategoryRegistry] = None,
        today: Optional[date] = None,
        price_tolerance: Optional[float] = None,
        confidence_threshold: Optional[float] = None,
    ):
        self.limits = limits
        self.categories = categories if categories is not None else CategoryRegistry()
        self.today = today
        self.price_tolerance = price_tolerance if price_tolerance is not None else settings.validation.price_tolerance
        self.confidence_threshold = (
            confidence_threshold if confidence_threshold is not None else settings.validation.confidence_threshold
        )

        self.agreement: Optional[Agreement] = None
        self.invoice: Optional[ExtractedInvoice] = None
        self.manually_verified = False
        self.filename: Optional[str] = None
        self.extraction_error: Optional[str] = None
        self.scanning = False
        self._token = 0

    # -- AGREEMENT --

    def select_agreement(self, agreement: Agreement):
        if not agreement.is_active:
            raise InactiveAgreement(f"Agreement {agreement.id} is {agreement.status}; only active agreements accept invoices.")
        if self.agreement is not None and self.agreement.id != agreement.id:
            logger.info("Agreement changed from %s to %s, discarding extraction", self.agreement.id, agreement.id)
            self.reset()
        self.agreement = agreement

    def reset(self):
        """Drops the extraction and any in-flight request; keeps nothing from the old agreement."""
        self._token += 1
        self.invoice = None
        self.manually_verified = False
        self.filename = None
        self.extraction_error = None
        self.scanning = False

    # -- EXTRACTION --

    def begin_extraction(self, filename: str) -> int:
        """Starts a new upload. Any extraction still in flight becomes stale."""
        self._token += 1
        self.filename = filename
        self.invoice = None
        self.manually_verified = False
        self.extraction_error = None
        self.scanning = True
        return self._token

    def is_current(self, token: int) -> bool:
        return token == self._token

    def apply_extraction(self, token: int, invoice: ExtractedInvoice) -> bool:
        if not self.is_current(token):
            logger.info("Discarding stale extraction result (token %d, current %d)", token, self._token)
            return False
        self.invoice = invoice
        self.scanning = False
        return True

    def fail_extraction(self, token: int, message: str) -> bool:
        if not self.is_current(token):
            logger.info("Ignoring failure of superseded extraction: %s", message)
            return False
        self.extraction_error = message
        self.scanning = False
        return True

    # -- MANUAL EDITS --

    def _require_invoice(self) -> ExtractedInvoice:
        if self.invoice is None:
            raise ValueError("No invoice to edit; upload a receipt first.")
        return self.invoice

    def _replace_items(self, items: List[LineItem]):
        self.invoice = self._require_invoice().model_copy(update={"line_items": items})

    def update_item(self, index: int, description: Optional[str] = None,
                    quantity: Optional[float] = None, unit_price: Optional[float] = None):
        items = list(self._require_invoice().line_items)
        current = items[index]
        items[index] = LineItem(
            description=current.description if description is None else description,
            quantity=current.quantity if quantity is None else quantity,
            unit_price=current.unit_price if unit_price is None else unit_price,
        )
        self._replace_items(items)

    def add_item(self):
        self._replace_items(list(self._require_invoice().line_items) + [LineItem(description="", unit_price=0)])

    def remove_item(self, index: int):
        items = list(self._require_invoice().line_items)
        if len(items) <= 1:
            return
        del items[index]
        self._replace_items(items)

    def update_totals(self, tax_amount: Optional[float] = None, extracted_total: Optional[float] = None):
        invoice = self._require_invoice()
        update = {}
        if tax_amount is not None:
            update["tax_amount"] = tax_amount
        if extracted_total is not None:
            update["extracted_total"] = extracted_total
        self.invoice = invoice.model_copy(update=update)

    def set_vendor(self, vendor: str):
        self.invoice = self._require_invoice().model_copy(update={"vendor": vendor.strip()})

    def set_category(self, category: str):
        self.categories.add(category)
        self.invoice = self._require_invoice().model_copy(update={"category": self.categories.match(category)})

    def set_manual_verification(self, verified: bool):
        self.manually_verified = verified

    # -- DECISION --

    def validation(self) -> Optional[ValidationReport]:
        if self.agreement is None or self.invoice is None:
            return None
        return revalidate(self.agreement, self.invoice, self.limits, today=self.today, price_tolerance=self.price_tolerance)

    def decision(self) -> SubmissionDecision:
        return decide_submission(
            self.agreement,
            self.invoice,
            self.validation(),
            manually_verified=self.manually_verified,
            confidence_threshold=self.confidence_threshold,
        )

    async def submit(self, handler) -> AttestationReceipt:
        """Hands an allowed submission to the attestation handler and books the spend."""
        decision = self.decision()
        if not decision.allowed:
            logger.warning("Submit refused: %s", decision.reason)
            raise SubmissionRejected(decision.reason)

        receipt = await handler.attest(self.agreement, self.invoice, decision)
        self.limits.record_spend(self.agreement.category, self.invoice.grand_total)
        logger.info("Submitted %s against %s: %s", receipt.submission_id, self.agreement.id, receipt.route)
        return receipt
