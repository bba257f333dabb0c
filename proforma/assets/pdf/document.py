"""
Invoice document snapshot handed to the renderer, plus the reverse-GST
tax breakup helpers.

The document is a read-only projection assembled upstream from invoice,
line item and customer records. Totals are taken as given: a document whose
totals do not reconcile is rejected here, never corrected.
"""

from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .formatting import number_to_words, round_half_up, to_decimal

TOTALS_TOLERANCE = Decimal("0.01")


# ==================== MODELS ====================

class CompanyInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    address: List[str] = Field(default_factory=list)
    phone: List[str] = Field(default_factory=list)
    gstin: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    address: Optional[str] = None
    gstin: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    shipping_address: Optional[str] = None


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    sl_no: int
    description: str
    brand: Optional[str] = None
    serial_numbers: List[str] = Field(default_factory=list)
    quantity: Decimal
    unit: str = "NOS"
    rate: Decimal                        # unit price, tax inclusive
    tax_percent: Decimal = Decimal("18")
    discount_percent: Decimal = Decimal("0")
    image_url: Optional[str] = None


class Totals(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    subtotal: Decimal
    discount: Decimal = Decimal("0")
    discount_percent: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    round_off: Decimal = Decimal("0")
    grand_total: Decimal

    def expected_grand_total(self) -> Decimal:
        return self.subtotal - self.discount + self.tax_amount + self.round_off


class InvoiceDocument(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    invoice_no: str
    date: str
    e_way_bill_no: Optional[str] = None
    supplier_invoice_no: Optional[str] = None
    supplier_invoice_date: Optional[str] = None
    other_references: Optional[str] = None
    company: CompanyInfo
    customer: CustomerInfo
    items: List[LineItem] = Field(default_factory=list)
    totals: Totals
    total_quantity: Decimal = Decimal("0")
    amount_in_words: Optional[str] = None

    @model_validator(mode="after")
    def check_totals(self):
        expected = self.totals.expected_grand_total()
        if abs(self.totals.grand_total - expected) > TOTALS_TOLERANCE:
            raise ValueError(
                f"Grand total {self.totals.grand_total} does not match "
                f"subtotal - discount + tax + round off = {expected}"
            )
        return self

    @property
    def words(self) -> str:
        return self.amount_in_words or number_to_words(self.totals.grand_total)


# ==================== TAX BREAKUP ====================

class TaxBreakup(NamedTuple):
    base_price: Decimal
    tax_amount: Decimal


def tax_breakup(inclusive_price: Union[Decimal, float, int, str],
                tax_percent: Union[Decimal, float, int, str]) -> TaxBreakup:
    """
    Split a tax-inclusive unit price into base price and tax.

    base = p / (1 + r/100) and tax = p - base, each rounded half-up to
    2 places.
    """
    price = to_decimal(inclusive_price)
    divisor = 1 + to_decimal(tax_percent) / 100
    base = price / divisor
    return TaxBreakup(round_half_up(base), round_half_up(price - base))


def aggregate_breakup(items: Iterable[LineItem]) -> TaxBreakup:
    """
    Sum quantity x per-unit breakup over all lines, then round again.

    The per-unit rounding happens first on purpose; stored totals were
    produced the same way.
    """
    base_total = Decimal("0")
    tax_total = Decimal("0")
    for item in items:
        unit = tax_breakup(item.rate, item.tax_percent)
        base_total += item.quantity * unit.base_price
        tax_total += item.quantity * unit.tax_amount
    return TaxBreakup(round_half_up(base_total), round_half_up(tax_total))


def line_amount(item: LineItem) -> Decimal:
    """Quantity times rate, less the line discount."""
    gross = item.quantity * item.rate
    return round_half_up(gross - gross * item.discount_percent / 100)
