from datetime import date

import pytest

from agreement_auditor.core.limits import DailyLimitManager
from agreement_auditor.core.schema import LineItem
from agreement_auditor.processing.rules import (
    check_contract_period,
    check_daily_limit,
    check_invoice_math,
    check_price_match,
    check_quantity,
    revalidate,
)


class TestPriceMatch:
    @pytest.mark.parametrize("unit_price", [8_000_000, 8_000_100, 7_999_900])
    def test_within_tolerance(self, agreement, make_invoice, unit_price):
        assert check_price_match(agreement, make_invoice(unit_price=unit_price)).valid

    @pytest.mark.parametrize("unit_price", [8_000_101, 7_999_899])
    def test_outside_tolerance(self, agreement, make_invoice, unit_price):
        result = check_price_match(agreement, make_invoice(unit_price=unit_price))
        assert not result.valid
        assert "Rp\u00a0101" in result.message

    def test_message_names_both_prices_and_difference(self, agreement, make_invoice):
        result = check_price_match(agreement, make_invoice(unit_price=8_500_000))
        assert not result.valid
        assert "Rp\u00a08.500.000" in result.message
        assert "Rp\u00a08.000.000" in result.message
        assert "Rp\u00a0500.000" in result.message

    def test_any_mismatched_item_fails(self, agreement, make_invoice):
        invoice = make_invoice(line_items=[
            LineItem(description="Laptop", quantity=1, unit_price=8_000_000),
            LineItem(description="Laptop bag", quantity=1, unit_price=450_000),
        ])
        result = check_price_match(agreement, invoice)
        assert not result.valid
        assert "Laptop bag" in result.message

    def test_no_items_fails(self, agreement, make_invoice):
        assert not check_price_match(agreement, make_invoice(line_items=[])).valid

    def test_tolerance_is_configurable(self, agreement, make_invoice):
        invoice = make_invoice(unit_price=8_000_500)
        assert not check_price_match(agreement, invoice).valid
        assert check_price_match(agreement, invoice, tolerance=500).valid


class TestQuantity:
    def test_exactly_remaining_is_valid(self, agreement, make_invoice):
        assert agreement.remaining_quantity == 6
        assert check_quantity(agreement, make_invoice(quantity=6)).valid

    def test_one_over_remaining_is_invalid(self, agreement, make_invoice):
        result = check_quantity(agreement, make_invoice(quantity=7))
        assert not result.valid
        assert "6 remaining" in result.message
        assert "7 requested" in result.message

    def test_sums_all_items(self, agreement, make_invoice):
        invoice = make_invoice(line_items=[
            LineItem(quantity=4, unit_price=8_000_000),
            LineItem(quantity=3, unit_price=8_000_000),
        ])
        assert not check_quantity(agreement, invoice).valid


class TestContractPeriod:
    @pytest.mark.parametrize("day", [date(2025, 1, 1), date(2025, 12, 31), date(2025, 6, 1)])
    def test_inside_period(self, agreement, make_invoice, day):
        assert check_contract_period(agreement, make_invoice(invoice_date=day)).valid

    @pytest.mark.parametrize("day", [date(2024, 12, 31), date(2026, 1, 1)])
    def test_one_day_outside(self, agreement, make_invoice, day):
        result = check_contract_period(agreement, make_invoice(invoice_date=day))
        assert not result.valid
        assert "2025-01-01 to 2025-12-31" in result.message

    def test_undated_invoice_uses_today(self, agreement, make_invoice):
        invoice = make_invoice(invoice_date=None)
        assert check_contract_period(agreement, invoice, today=date(2025, 3, 15)).valid
        assert not check_contract_period(agreement, invoice, today=date(2026, 3, 15)).valid


class TestDailyLimit:
    def test_exactly_at_limit_does_not_escalate(self, agreement, make_invoice):
        limits = DailyLimitManager(limits={"Electronics": 50_000_000}, spent_today={"Electronics": 34_000_000})
        result = check_daily_limit(agreement, make_invoice(), limits)
        assert result.valid
        assert not result.needs_escalation

    def test_one_over_limit_escalates(self, agreement, make_invoice):
        limits = DailyLimitManager(limits={"Electronics": 50_000_000}, spent_today={"Electronics": 34_000_001})
        result = check_daily_limit(agreement, make_invoice(), limits)
        assert result.valid
        assert result.needs_escalation
        assert "Rp\u00a034.000.001" in result.message
        assert "Rp\u00a016.000.000" in result.message
        assert "Rp\u00a050.000.000" in result.message

    def test_counts_tax_in_invoice_total(self, agreement, make_invoice):
        limits = DailyLimitManager(limits={"Electronics": 16_000_000}, spent_today={})
        assert not check_daily_limit(agreement, make_invoice(), limits).needs_escalation
        assert check_daily_limit(agreement, make_invoice(tax_amount=1), limits).needs_escalation

    def test_unconfigured_category_never_escalates(self, agreement, make_invoice):
        result = check_daily_limit(agreement, make_invoice(quantity=100), DailyLimitManager(limits={}))
        assert result.valid
        assert not result.needs_escalation


class TestInvoiceMath:
    def test_no_printed_total_is_valid(self, make_invoice):
        assert check_invoice_math(make_invoice(extracted_total=0)).valid

    def test_within_tolerance(self, make_invoice):
        assert check_invoice_math(make_invoice(extracted_total=16_000_100)).valid

    def test_outside_tolerance(self, make_invoice):
        result = check_invoice_math(make_invoice(extracted_total=16_000_101))
        assert not result.valid
        assert result.message.startswith("Math Error")

    def test_includes_tax(self, make_invoice):
        assert check_invoice_math(make_invoice(tax_amount=1_760_000, extracted_total=17_760_000)).valid


class TestRevalidate:
    def test_runs_every_rule_once(self, agreement, make_invoice, limits):
        report = revalidate(agreement, make_invoice(), limits)
        assert [r.rule for r in report.results] == [
            "price_match", "quantity_available", "contract_period", "daily_limit", "invoice_math",
        ]
        assert report.all_valid
        assert not report.needs_escalation

    def test_collects_independent_failures(self, agreement, make_invoice, limits):
        invoice = make_invoice(unit_price=9_000_000, quantity=8, invoice_date=date(2026, 2, 1))
        report = revalidate(agreement, invoice, limits)
        assert {r.rule for r in report.blocking_failures} == {"price_match", "quantity_available", "contract_period"}
        assert report.get("daily_limit").needs_escalation
