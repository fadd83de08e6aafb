"""Reconciles an extracted invoice against the purchase agreement it claims to bill."""
import logging
from datetime import date
from typing import Optional

from agreement_auditor.config import settings
from agreement_auditor.core.formatting import format_currency
from agreement_auditor.core.limits import DailyLimitManager
from agreement_auditor.core.schema import Agreement, ExtractedInvoice, ValidationReport, ValidationResult

logger = logging.getLogger(__name__)


def check_price_match(agreement: Agreement, invoice: ExtractedInvoice, tolerance: Optional[float] = None) -> ValidationResult:
    """Every line item must be billed at the agreed unit price, give or take the tolerance."""
    if tolerance is None:
        tolerance = settings.validation.price_tolerance

    if not invoice.line_items:
        return ValidationResult(rule="price_match", valid=False, message="Invoice has no line items to compare.")

    for item in invoice.line_items:
        diff = abs(item.unit_price - agreement.price_per_unit)
        if diff > tolerance:
            return ValidationResult(
                rule="price_match",
                valid=False,
                message=(
                    f"Price mismatch on '{item.description}': invoice says {format_currency(item.unit_price)}, "
                    f"agreement says {format_currency(agreement.price_per_unit)} "
                    f"(difference {format_currency(diff)})."
                ),
            )

    return ValidationResult(
        rule="price_match",
        valid=True,
        message=f"Unit price matches agreement ({format_currency(agreement.price_per_unit)}).",
    )


def check_quantity(agreement: Agreement, invoice: ExtractedInvoice) -> ValidationResult:
    requested = invoice.total_quantity
    remaining = agreement.remaining_quantity
    if requested > remaining:
        return ValidationResult(
            rule="quantity_available",
            valid=False,
            message=f"Quantity exceeds agreement: {remaining:g} remaining, {requested:g} requested.",
        )
    return ValidationResult(
        rule="quantity_available",
        valid=True,
        message=f"Quantity available: {requested:g} of {remaining:g} remaining.",
    )


def check_contract_period(agreement: Agreement, invoice: ExtractedInvoice, today: Optional[date] = None) -> ValidationResult:
    """Uses the invoice date, or today when the receipt had no readable date."""
    day = invoice.invoice_date or today or date.today()
    period = agreement.contract_period
    if not period.contains(day):
        return ValidationResult(
            rule="contract_period",
            valid=False,
            message=f"Date {day.isoformat()} is outside the contract period {period.start.isoformat()} to {period.end.isoformat()}.",
        )
    return ValidationResult(
        rule="contract_period",
        valid=True,
        message=f"Date {day.isoformat()} is within the contract period.",
    )


def check_daily_limit(agreement: Agreement, invoice: ExtractedInvoice, limits: DailyLimitManager) -> ValidationResult:
    """Never blocks. Flags the invoice for CFO approval when it pushes the category over its daily limit."""
    category = agreement.category
    limit = limits.limit_for(category)
    if limit is None:
        return ValidationResult(rule="daily_limit", valid=True, message=f"No daily limit configured for {category}.")

    spent = limits.spent_today(category)
    total = invoice.grand_total
    if spent + total > limit:
        return ValidationResult(
            rule="daily_limit",
            valid=True,
            needs_escalation=True,
            message=(
                f"Daily limit for {category} exceeded: {format_currency(spent)} spent today + "
                f"{format_currency(total)} this invoice > {format_currency(limit)} limit. Requires CFO approval."
            ),
        )
    return ValidationResult(
        rule="daily_limit",
        valid=True,
        message=f"Within daily limit for {category} ({format_currency(spent + total)} of {format_currency(limit)}).",
    )


def check_invoice_math(invoice: ExtractedInvoice, tolerance: Optional[float] = None) -> ValidationResult:
    """Line items plus tax must add up to the total printed on the receipt."""
    if tolerance is None:
        tolerance = settings.validation.total_tolerance

    if invoice.extracted_total <= 0:
        return ValidationResult(rule="invoice_math", valid=True, message="No printed total to compare against.")

    diff = abs(invoice.grand_total - invoice.extracted_total)
    if diff > tolerance:
        return ValidationResult(
            rule="invoice_math",
            valid=False,
            message=(
                f"Math Error: items plus tax sum to {format_currency(invoice.grand_total)}, "
                f"but the receipt total says {format_currency(invoice.extracted_total)} "
                f"(difference {format_currency(diff)})."
            ),
        )
    return ValidationResult(rule="invoice_math", valid=True, message="Items plus tax match the receipt total.")


def revalidate(
    agreement: Agreement,
    invoice: ExtractedInvoice,
    limits: DailyLimitManager,
    today: Optional[date] = None,
    price_tolerance: Optional[float] = None,
    total_tolerance: Optional[float] = None,
) -> ValidationReport:
    """Runs every rule. Call again after any change to the invoice or the agreement selection."""
    report = ValidationReport(results=[
        check_price_match(agreement, invoice, price_tolerance),
        check_quantity(agreement, invoice),
        check_contract_period(agreement, invoice, today),
        check_daily_limit(agreement, invoice, limits),
        check_invoice_math(invoice, total_tolerance),
    ])
    logger.debug(
        "Validated invoice against %s: %d failure(s), escalation=%s",
        agreement.id, len(report.blocking_failures), report.needs_escalation,
    )
    return report
