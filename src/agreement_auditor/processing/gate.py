from typing import Optional

from agreement_auditor.config import settings
from agreement_auditor.core.schema import Agreement, ExtractedInvoice, SubmissionDecision, ValidationReport


def _blocked(reason, messages=None) -> SubmissionDecision:
    return SubmissionDecision(allowed=False, route="blocked", reason=reason, messages=messages or [])


def decide_submission(
    agreement: Optional[Agreement],
    invoice: Optional[ExtractedInvoice],
    report: Optional[ValidationReport],
    manually_verified: bool = False,
    confidence_threshold: Optional[float] = None,
) -> SubmissionDecision:
    """
    Decides whether the invoice may be submitted and where it goes.
    Preconditions are checked in order; the first one that fails is the reason shown.
    """
    if confidence_threshold is None:
        confidence_threshold = settings.validation.confidence_threshold

    if agreement is None:
        return _blocked("no agreement selected")
    if invoice is None or report is None:
        return _blocked("no invoice uploaded")
    if not invoice.vendor.strip():
        return _blocked("vendor missing", ["Enter the vendor name printed on the receipt."])

    failures = report.blocking_failures
    if failures:
        return _blocked("validation failed", [r.message for r in failures])

    if invoice.confidence_score < confidence_threshold and not manually_verified:
        reason = invoice.confidence_reason or "Low visibility or ambiguous text."
        return _blocked("awaiting verification", [f"AI confidence {invoice.confidence_score:.0%}: {reason}"])

    if report.needs_escalation:
        return SubmissionDecision(
            allowed=True,
            route="pending-cfo-approval",
            messages=[r.message for r in report.results if r.needs_escalation],
        )
    return SubmissionDecision(allowed=True, route="auto-approved")
