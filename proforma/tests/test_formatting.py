"""
Formatting and tax breakup tests
Tests: Indian currency grouping, amount in words, dates, reverse GST breakup
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from proforma.assets.pdf.document import aggregate_breakup, line_amount, tax_breakup
from proforma.assets.pdf.formatting import (
    format_date,
    format_indian_currency,
    format_indian_number,
    format_plain,
    number_to_words,
    round_half_up,
)


class TestIndianCurrency:
    """Lakh/crore grouping with two fraction digits"""

    @pytest.mark.parametrize("amount, expected", [
        (0, "₹0.00"),
        (999, "₹999.00"),
        (1000, "₹1,000.00"),
        (359120, "₹3,59,120.00"),
        (Decimal("12345678.9"), "₹1,23,45,678.90"),
        ("408910.00", "₹4,08,910.00"),
        (-1234.5, "-₹1,234.50"),
    ])
    def test_format_indian_currency(self, amount, expected):
        assert format_indian_currency(amount) == expected
        print(f"✓ {amount} -> {expected}")

    def test_rounds_half_up(self):
        assert format_indian_number(Decimal("0.005")) == "0.01"
        assert round_half_up(2.675) == Decimal("2.68")

    @pytest.mark.parametrize("value, expected", [
        (Decimal("18.00"), "18"),
        (Decimal("12.50"), "12.5"),
        (60, "60"),
        ("0.25", "0.25"),
    ])
    def test_format_plain(self, value, expected):
        assert format_plain(value) == expected


class TestAmountInWords:
    """Indian numbering in words"""

    @pytest.mark.parametrize("amount, expected", [
        (0, "INR Zero Only"),
        (408910, "INR Four Lakh Eight Thousand Nine Hundred Ten Only"),
        (Decimal("1234.56"), "INR One Thousand Two Hundred Thirty Four and Fifty Six Paise Only"),
        (123456789, "INR Twelve Crore Thirty Four Lakh Fifty Six Thousand Seven Hundred Eighty Nine Only"),
        (100, "INR One Hundred Only"),
        (Decimal("0.50"), "INR Zero and Fifty Paise Only"),
    ])
    def test_number_to_words(self, amount, expected):
        assert number_to_words(amount) == expected


class TestDates:
    def test_iso_date(self):
        assert format_date("2025-10-01") == "01-Oct-2025"

    def test_free_text_date_kept(self):
        assert format_date("1-Oct-25") == "1-Oct-25"

    def test_missing_date(self):
        assert format_date(None) == ""


class TestTaxBreakup:
    """Reverse GST on tax-inclusive prices"""

    @pytest.mark.parametrize("price", [0, 0.01, 99.99, 100000.005])
    @pytest.mark.parametrize("rate", [0, 5, 12, 18, 28])
    def test_base_plus_tax_matches_price(self, price, rate):
        breakup = tax_breakup(price, rate)
        assert abs(breakup.base_price + breakup.tax_amount - Decimal(str(price))) <= Decimal("0.01")

    def test_known_values(self):
        breakup = tax_breakup(Decimal("1060.00"), 18)
        assert breakup.base_price == Decimal("898.31")
        assert breakup.tax_amount == Decimal("161.69")

    def test_zero_rate(self):
        assert tax_breakup(100, 0) == (Decimal("100.00"), Decimal("0.00"))

    def test_aggregate_rounds_per_unit_first(self, make_document):
        doc = make_document(
            items=[
                {"sl_no": 1, "description": "A", "quantity": 3, "rate": "100.00", "tax_percent": 18},
                {"sl_no": 2, "description": "B", "quantity": 2, "rate": "59.00", "tax_percent": 18},
            ],
        )
        # 100 -> 84.75 + 15.25, 59 -> 50.00 + 9.00
        summary = aggregate_breakup(doc.items)
        assert summary.base_price == Decimal("354.25")
        assert summary.tax_amount == Decimal("63.75")

    def test_line_amount(self, sample_doc):
        # 60 x 1060 = 63600, less 11%
        assert line_amount(sample_doc.items[0]) == Decimal("56604.00")

    def test_line_amount_applies_discount(self, make_document):
        doc = make_document(items=[
            {"sl_no": 1, "description": "A", "quantity": 1, "rate": "1000", "discount_percent": 10},
            {"sl_no": 2, "description": "B", "quantity": 3, "rate": "33.33", "discount_percent": "12.5"},
            {"sl_no": 3, "description": "C", "quantity": 2, "rate": "500"},
        ])
        # 99.99 - 12.49875 rounds half up to 87.49
        assert [line_amount(item) for item in doc.items] == [
            Decimal("900.00"), Decimal("87.49"), Decimal("1000.00"),
        ]
        print("✓ Line discount applied to amount")

    def test_sample_line_amounts_sum_to_subtotal(self, sample_doc):
        assert sum(line_amount(item) for item in sample_doc.items) == sample_doc.totals.subtotal


class TestInvoiceDocument:
    """Document snapshot validation"""

    def test_sample_totals_reconcile(self, sample_doc):
        totals = sample_doc.totals
        assert totals.grand_total == totals.subtotal - totals.discount + totals.tax_amount + totals.round_off

    def test_inconsistent_totals_rejected(self, make_document):
        with pytest.raises(ValidationError):
            make_document(totals={"subtotal": "100", "tax_amount": "18", "grand_total": "200"})

    def test_words_fallback(self, make_document):
        doc = make_document(amount_in_words=None)
        assert doc.words == "INR Four Lakh Eight Thousand Nine Hundred Ten Only"
