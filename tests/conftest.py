import io
from datetime import date

import pytest
from PIL import Image

from agreement_auditor.core.categories import CategoryRegistry
from agreement_auditor.core.limits import DailyLimitManager
from agreement_auditor.core.schema import Agreement, ContractPeriod, ExtractedInvoice, LineItem


@pytest.fixture
def agreement() -> Agreement:
    """8,000,000 per unit, 6 of 10 units left, valid through 2025."""
    return Agreement(
        id="AGR-2025-001",
        vendor="PT Supplier ABC",
        category="Electronics",
        item_name="Laptop Dell Latitude 5420",
        price_per_unit=8_000_000,
        total_quantity=10,
        used_quantity=4,
        contract_period=ContractPeriod(start=date(2025, 1, 1), end=date(2025, 12, 31)),
        payment_terms="installment",
        status="active",
    )


@pytest.fixture
def make_invoice():
    def factory(unit_price=8_000_000, quantity=2, invoice_date=date(2025, 6, 1), confidence=0.95, **overrides):
        fields = dict(
            vendor="PT Supplier ABC",
            invoice_number="INV-0042",
            invoice_date=invoice_date,
            category="Electronics",
            line_items=[LineItem(description="Laptop Dell Latitude 5420", quantity=quantity, unit_price=unit_price)],
            confidence_score=confidence,
        )
        fields.update(overrides)
        return ExtractedInvoice(**fields)

    return factory


@pytest.fixture
def limits() -> DailyLimitManager:
    return DailyLimitManager(limits={"Electronics": 50_000_000}, spent_today={"Electronics": 0})


@pytest.fixture
def categories() -> CategoryRegistry:
    return CategoryRegistry(names=["Electronics", "Office Supplies", "Meals & Entertainment"])


@pytest.fixture
def png_file():
    buffer = io.BytesIO()
    Image.new("RGB", (64, 32), color="white").save(buffer, format="PNG")
    buffer.seek(0)
    return buffer
