import json
import logging
import math
from datetime import date
from typing import Any, Dict, Optional

from agreement_auditor.core.categories import CategoryRegistry
from agreement_auditor.core.errors import ExtractionFailure
from agreement_auditor.core.formatting import parse_number
from agreement_auditor.core.schema import ExtractedInvoice, ExtractionResult, LineItem

logger = logging.getLogger(__name__)


def extract_json(text: str) -> Optional[Any]:
    """Returns the first JSON object found in model output, or None.

    Models sometimes wrap the object in prose or a ```json fence even when
    asked not to, so fall back to the first brace-balanced ``{...}`` span.
    """
    if not text or not text.strip():
        return None

    stripped = text.strip()
    try:
        return json.loads(stripped)
    except ValueError:
        pass

    for start, ch in enumerate(stripped):
        if ch == "{":
            candidate = _balanced_span(stripped, start)
            if candidate is not None:
                try:
                    return json.loads(candidate)
                except ValueError:
                    continue
    return None


def _balanced_span(text: str, start: int) -> Optional[str]:
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
        elif ch == "\\" and in_string:
            escape = True
        elif ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _to_number(value: Any, default: float) -> float:
    """Lenient numeric coercion; anything unusable, infinite or negative becomes the default.

    Plain numeric strings ("1.5", "8000000.00") read as JSON numbers do. Only
    strings that are not plain numbers ("Rp 12.500") go through the Rupiah parser.
    """
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        try:
            number = parse_number(value)
        except (TypeError, ValueError):
            return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def _to_date(value: Any) -> Optional[date]:
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        logger.debug("Ignoring unreadable invoice date %r", value)
        return None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _confidence(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 1.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 1.0
    if score != score:
        return 1.0
    return min(max(score, 0.0), 1.0)


def normalize_extraction(raw: Any, categories: Optional[CategoryRegistry] = None) -> ExtractedInvoice:
    """
    Turns the model's loosely typed JSON into an ExtractedInvoice.
    Raises ExtractionFailure when there is nothing worth keeping.
    """
    if not isinstance(raw, dict):
        raise ExtractionFailure("AI response is not a JSON object.")

    vendor = _to_text(raw.get("vendor")) or ""
    raw_items = raw.get("items")
    if not isinstance(raw_items, list):
        raw_items = []

    items = []
    for raw_item in raw_items:
        if not isinstance(raw_item, dict):
            continue
        items.append(LineItem(
            description=_to_text(raw_item.get("description")) or "Item",
            quantity=_to_number(raw_item.get("quantity"), default=1.0) or 1.0,
            unit_price=_to_number(raw_item.get("unitPrice"), default=0.0),
        ))

    if not vendor and not items:
        raise ExtractionFailure("AI response contains neither a vendor nor any line items.")

    category = None
    if categories is not None:
        category = categories.match(_to_text(raw.get("category")))

    return ExtractedInvoice(
        vendor=vendor,
        invoice_number=_to_text(raw.get("invoiceNumber")),
        invoice_date=_to_date(raw.get("date")),
        category=category,
        line_items=items,
        tax_amount=_to_number(raw.get("taxAmount"), default=0.0),
        extracted_total=_to_number(raw.get("extractedTotal"), default=0.0),
        confidence_score=_confidence(raw.get("confidenceScore")),
        confidence_reason=_to_text(raw.get("confidenceReason")),
    )


def parse_extraction(text: str, categories: Optional[CategoryRegistry] = None) -> ExtractionResult:
    """Parses raw model text into a tagged result. Never raises ExtractionFailure."""
    data = extract_json(text)
    if data is None:
        logger.warning("AI response is not parseable JSON (%d chars)", len(text or ""))
        return ExtractionResult(error=ExtractionFailure("AI response is not valid JSON."))
    try:
        return ExtractionResult(invoice=normalize_extraction(data, categories))
    except ExtractionFailure as e:
        logger.warning("Rejected AI response: %s", e)
        return ExtractionResult(error=e)


def summarize(invoice: ExtractedInvoice) -> Dict[str, Any]:
    """Compact dict for log lines and the UI header."""
    return {
        "vendor": invoice.vendor,
        "items": len(invoice.line_items),
        "grand_total": invoice.grand_total,
        "confidence": invoice.confidence_score,
    }
