"""
Layout Engine - Invoice Document Tree
=====================================

Turns an InvoiceDocument plus TemplateSettings into a tree of styled nodes.
The same tree feeds every consumer:

- full preview (htmlPdfEngine renders it to HTML)
- thumbnail (rasterized at a small scale)
- export target (rasterized at 2x, then paginated by pdfEngine)

Features:
- Sections emitted in the (repaired) section order from settings
- Visibility flags drop the governed element, containers that end up empty
  are dropped with it
- Font sizes, paddings, logo sizes and borders come from fixed preset tables
- Per-line reverse GST breakup, Indian currency formatting
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .document import InvoiceDocument, LineItem, TaxBreakup, aggregate_breakup, line_amount, tax_breakup
from .formatting import format_date, format_indian_currency, format_plain
from .overlay import parse_scene
from .settings import TemplateSettings, resolve

logger = logging.getLogger(__name__)

# A4 width at 96 dpi, the width every consumer lays out against
DOCUMENT_WIDTH = 794
CONTAINER_ID = "invoice-container"

Padding = Tuple[float, float, float, float]


# ==================== NODE TREE ====================

@dataclass
class Style:
    background: Optional[str] = None
    color: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[float] = None
    bold: bool = False
    italic: bool = False
    mono: bool = False
    align: Optional[str] = None
    padding: Padding = (0, 0, 0, 0)
    gap: float = 0
    width: Optional[float] = None
    height: Optional[float] = None
    flex: float = 1
    border_bottom: float = 0
    border_color: Optional[str] = None
    radius: float = 0
    box_shadow: Optional[str] = None
    animation: Optional[str] = None


@dataclass
class Node:
    kind: str
    id: Optional[str] = None
    style: Style = field(default_factory=Style)
    children: List["Node"] = field(default_factory=list)
    text: Optional[str] = None
    src: Optional[str] = None
    screen_only: bool = False
    hidden: bool = False

    def walk(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, node_id: str) -> Optional["Node"]:
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def ids(self) -> List[str]:
        return [node.id for node in self.walk() if node.id]


STACK_KINDS = frozenset({"document", "section", "stack", "table", "td"})
ROW_KINDS = frozenset({"row", "tr"})


# ==================== STYLE RESOLUTION ====================

@dataclass(frozen=True)
class FontScale:
    title: float
    heading: float
    body: float
    small: float


FONT_SCALES: Dict[str, FontScale] = {
    "small": FontScale(title=18, heading=14, body=11, small=9),
    "normal": FontScale(title=22, heading=16, body=12, small=10),
    "large": FontScale(title=26, heading=19, body=14, small=11),
}

# (vertical, horizontal) padding per tier
HEADER_PADDING = {"compact": (8, 14), "normal": (12, 18), "relaxed": (20, 24)}
ROW_PADDING = {"compact": (3, 6), "normal": (6, 8), "relaxed": (10, 12)}
FOOTER_PADDING = {"compact": (6, 14), "normal": (10, 18), "relaxed": (14, 24)}
SECTION_SPACING = {"compact": 4, "normal": 8, "relaxed": 14}
LOGO_SIZES = {"small": 32, "medium": 48, "large": 64, "xlarge": 80}
BORDER_WIDTHS = {"none": 0, "subtle": 1, "medium": 1.5, "bold": 2}

PAGE_GUIDE_COLOR = "#94a3b8"
MUTED_COLOR = "#6b7280"
PLACEHOLDER_BG = "#f3f4f6"


@dataclass(frozen=True)
class Theme:
    """One typed attribute per settings field that affects rendering."""
    header_background: str          # primary_color
    label_color: str                # secondary_color
    accent: str                     # accent_color
    header_text: str                # header_text_color
    table_header_background: str    # table_header_bg
    table_header_text: str          # table_header_text
    table_text: str                 # table_text_color
    grand_total_background: str     # grand_total_bg
    grand_total_text: str           # grand_total_text
    border_color: str               # table_border_color
    heading_font: str               # font_heading
    body_font: str                  # font_body
    mono_font: str                  # font_mono
    fonts: FontScale                # font_size_scale
    header_padding: Tuple[float, float]   # header_padding
    section_gap: float              # section_spacing
    row_padding: Tuple[float, float]      # table_row_padding
    footer_padding: Tuple[float, float]   # footer_padding
    logo_size: float                # logo_size
    border_width: float             # border_style
    compact_header: bool            # compact_header


def resolve_theme(s: TemplateSettings) -> Theme:
    return Theme(
        header_background=s.primary_color,
        label_color=s.secondary_color,
        accent=s.accent_color,
        header_text=s.header_text_color,
        table_header_background=s.table_header_bg,
        table_header_text=s.table_header_text,
        table_text=s.table_text_color,
        grand_total_background=s.grand_total_bg,
        grand_total_text=s.grand_total_text,
        border_color=s.table_border_color,
        heading_font=s.font_heading,
        body_font=s.font_body,
        mono_font=s.font_mono,
        fonts=FONT_SCALES[s.font_size_scale],
        header_padding=HEADER_PADDING[s.header_padding],
        section_gap=SECTION_SPACING[s.section_spacing],
        row_padding=ROW_PADDING[s.table_row_padding],
        footer_padding=FOOTER_PADDING[s.footer_padding],
        logo_size=LOGO_SIZES[s.logo_size],
        border_width=BORDER_WIDTHS[s.border_style],
        compact_header=s.compact_header,
    )


# ==================== RESULT ====================

@dataclass
class RenderedDocument:
    root: Node
    document: InvoiceDocument
    settings: TemplateSettings
    theme: Theme
    section_ids: List[str]
    overlay_scene: Optional[dict]
    tax_summary: TaxBreakup

    def find(self, element_id: str) -> Optional[Node]:
        return self.root.find(element_id)


# ==================== NODE HELPERS ====================

def _pad(vertical: float, horizontal: float) -> Padding:
    return (vertical, horizontal, vertical, horizontal)


def _text(node_id: Optional[str], value, **style) -> Optional[Node]:
    if value is None or value == "":
        return None
    return Node("text", node_id, Style(**style), text=str(value))


def _box(kind: str, node_id: Optional[str], children, **style) -> Optional[Node]:
    """Container node; None when nothing is left to contain."""
    children = [child for child in children if child is not None]
    if not children:
        return None
    return Node(kind, node_id, Style(**style), children)


def _label(node_id: Optional[str], value: str, t: Theme) -> Optional[Node]:
    return _text(node_id, value.upper() if value else value, bold=True,
                 font_size=t.fonts.small, color=t.label_color)


# ==================== SECTIONS ====================

def _logo(doc: InvoiceDocument, t: Theme) -> Node:
    size = t.logo_size
    if doc.company.logo_url:
        return Node("image", "header.logo", Style(width=size, height=size, radius=6),
                    src=doc.company.logo_url)
    return Node("placeholder", "header.logo",
                Style(width=size, height=size, radius=6, background=t.accent))


def _contact_line(doc: InvoiceDocument) -> Optional[str]:
    c = doc.company
    parts = []
    if c.phone:
        parts.append(", ".join(c.phone))
    if c.email:
        parts.append(c.email)
    if c.website:
        parts.append(c.website)
    return "  |  ".join(parts) or None


def _header(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    c = doc.company
    f = t.fonts
    align = "center" if s.header_layout_style == "centered" else "left"

    logo = _logo(doc, t) if s.show_logo else None
    name = _text("header.name", c.name, bold=True,
                 font_size=f.heading if t.compact_header else f.title)
    address = _text("header.address", ", ".join(line.strip().rstrip(",") for line in c.address),
                    font_size=f.small)
    contact = None
    if s.show_contact_header:
        contact = _text("header.contact", _contact_line(doc), font_size=f.small)

    badges = []
    if s.show_gstin_header and c.gstin:
        badges.append(_text("header.gstin", f"GSTIN: {c.gstin}", bold=True, font_size=f.small, flex=0,
                            width=190, padding=_pad(2, 6)))
    if s.show_company_state and c.state:
        state = c.state + (f", Code: {c.state_code}" if c.state_code else "")
        badges.append(_text("header.state", f"State: {state}", bold=True, font_size=f.small, flex=0,
                            width=220, padding=_pad(2, 6)))
    badge_row = _box("row", "header.badges", badges, gap=8, align=align)

    title = None
    if s.show_invoice_title:
        title = _text("header.title", s.invoice_title, bold=True, font_size=f.heading,
                      color=t.accent, align="center", padding=(6, 0, 0, 0))

    if s.header_layout_style == "split":
        brand = _box("row", "header.brand", [
            logo,
            _box("stack", None, [name], flex=1),
        ], gap=10, align="left")
        info = _box("stack", "header.info", [address, contact, badge_row], gap=3, align="right")
        body = _box("row", "header.body", [brand, info], gap=16)
        children = [body, title]
    else:
        children = [logo, name, address, contact, badge_row, title]

    return _box(
        "section", "section-header", children,
        background=t.header_background, color=t.header_text, font_family=t.heading_font,
        padding=_pad(*t.header_padding), gap=4 if t.compact_header else 6, align=align,
    )


def _customer_details(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    cust = doc.customer
    f = t.fonts

    state = None
    if cust.state:
        state = f"State: {cust.state}" + (f" ({cust.state_code})" if cust.state_code else "")

    bill_to = _box("stack", "customer.bill_to", [
        _label("customer.bill_to_label", s.bill_to_label, t),
        _text("customer.name", cust.name, bold=True),
        _text("customer.address", cust.address, font_size=f.small),
        _text("customer.phone", f"Phone: {cust.phone}" if cust.phone else None, font_size=f.small)
        if s.show_customer_phone else None,
        _text("customer.email", f"Email: {cust.email}" if cust.email else None, font_size=f.small)
        if s.show_customer_email else None,
        _text("customer.gstin", f"GSTIN: {cust.gstin}" if cust.gstin else None, font_size=f.small),
        _text("customer.state", state, font_size=f.small),
    ], gap=2, flex=1)

    shipping = None
    if s.show_shipping_address:
        shipping = _box("stack", "customer.shipping", [
            _label(None, "Ship To", t),
            _text(None, cust.shipping_address, font_size=f.small),
        ], gap=2, flex=1) if cust.shipping_address else None

    supplier_ref = None
    if doc.supplier_invoice_no:
        supplier_ref = doc.supplier_invoice_no
        if doc.supplier_invoice_date:
            supplier_ref += f" dt. {format_date(doc.supplier_invoice_date)}"

    details = _box("stack", "customer.details", [
        _label("customer.details_label", s.invoice_details_label, t),
        _text("details.invoice_no", f"Proforma No: {doc.invoice_no}", bold=True),
        _text("details.date", f"Date: {format_date(doc.date)}", font_size=f.small),
        _text("details.e_way_bill", f"e-Way Bill: {doc.e_way_bill_no}" if doc.e_way_bill_no else None,
              font_size=f.small),
        _text("details.supplier_ref", f"Supplier Ref: {supplier_ref}" if supplier_ref else None,
              font_size=f.small),
        _text("details.reference", f"Reference: {doc.other_references}" if doc.other_references else None,
              font_size=f.small),
    ], gap=2, flex=1, align="right")

    return _box(
        "section", "section-customer_details",
        [_box("row", "customer.row", [bill_to, shipping, details], gap=16)],
        padding=_pad(t.section_gap + 4, 16), color=t.table_text,
    )


@dataclass(frozen=True)
class Column:
    id: str
    title: str
    width: Optional[float]
    align: str
    flag: Optional[str] = None


COLUMNS = (
    Column("sl", "Sl No.", 40, "center"),
    Column("brand", "Brand", 80, "left", "show_brand_column"),
    Column("description", "Description", None, "left"),
    Column("qty", "Qty", 44, "center"),
    Column("unit", "Unit", 44, "center", "show_unit_column"),
    Column("rate", "Unit Price", 84, "right"),
    Column("discount", "Disc", 44, "center", "show_discount_column"),
    Column("taxable", "Taxable", 80, "right", "show_gst"),
    Column("gst", "GST", 70, "right", "show_gst"),
    Column("amount", "Amount", 88, "right"),
    Column("image", "Image", 60, "center", "show_image_column"),
)

IMAGE_CELL_SIZE = 44


def visible_columns(s: TemplateSettings) -> List[Column]:
    return [col for col in COLUMNS if col.flag is None or getattr(s, col.flag)]


def _cell_content(col: Column, item: LineItem, s: TemplateSettings, t: Theme) -> List[Optional[Node]]:
    f = t.fonts
    sl = item.sl_no
    if col.id == "sl":
        return [_text(None, str(sl), bold=True)]
    if col.id == "brand":
        return [_text(None, item.brand or "-")]
    if col.id == "description":
        serials = None
        if s.show_serial_numbers and item.serial_numbers:
            serials = _text(f"items.serials.{sl}", "S/N: " + ", ".join(item.serial_numbers),
                            font_size=f.small, color=MUTED_COLOR)
        return [_text(None, item.description, bold=True), serials]
    if col.id == "qty":
        return [_text(None, format_plain(item.quantity), bold=True, mono=True, font_family=t.mono_font)]
    if col.id == "unit":
        return [_text(None, item.unit, font_size=f.small)]
    if col.id == "rate":
        return [_text(None, format_indian_currency(item.rate), mono=True, font_family=t.mono_font)]
    if col.id == "discount":
        value = f"{format_plain(item.discount_percent)}%" if item.discount_percent > 0 else "-"
        return [_text(None, value)]
    if col.id == "taxable":
        breakup = tax_breakup(item.rate, item.tax_percent)
        return [_text(None, format_indian_currency(breakup.base_price), mono=True, font_family=t.mono_font)]
    if col.id == "gst":
        breakup = tax_breakup(item.rate, item.tax_percent)
        return [
            _text(None, format_indian_currency(breakup.tax_amount), mono=True, font_family=t.mono_font),
            _text(None, f"@{format_plain(item.tax_percent)}%", font_size=f.small, color=MUTED_COLOR),
        ]
    if col.id == "amount":
        return [_text(None, format_indian_currency(line_amount(item)), bold=True, mono=True,
                      font_family=t.mono_font)]
    if col.id == "image":
        if item.image_url:
            return [Node("image", f"items.image.{sl}",
                         Style(width=IMAGE_CELL_SIZE, height=IMAGE_CELL_SIZE, radius=4,
                               box_shadow="0 1px 2px rgba(0,0,0,0.08)"),
                         src=item.image_url)]
        return [Node("placeholder", f"items.image.{sl}",
                     Style(width=IMAGE_CELL_SIZE, height=IMAGE_CELL_SIZE, radius=4,
                           background=PLACEHOLDER_BG, border_color="#d1d5db", border_bottom=1))]
    raise ValueError(f"Unknown column: {col.id}")


def _cell_style(col: Column, t: Theme) -> dict:
    style = {"padding": _pad(*t.row_padding), "align": col.align, "gap": 2}
    if col.width is None:
        style["flex"] = 1
    else:
        style["width"] = col.width
        style["flex"] = 0
    return style


def _items_table(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    columns = visible_columns(s)

    head = Node("tr", "items.head", Style(background=t.table_header_background, color=t.table_header_text,
                                          bold=True, font_size=t.fonts.small))
    for col in columns:
        head.children.append(Node("td", f"col-{col.id}.head", Style(**_cell_style(col, t)), [
            Node("text", None, Style(bold=True), text=col.title.upper()),
        ]))

    rows = [head]
    for index, item in enumerate(doc.items):
        tr = Node("tr", f"items.row.{item.sl_no}", Style(
            color=t.table_text, border_bottom=t.border_width, border_color=t.border_color,
            animation=f"fade-in 0.3s ease {index * 0.05:.2f}s both",
        ))
        for col in columns:
            cell = Node("td", f"col-{col.id}.{item.sl_no}", Style(**_cell_style(col, t)))
            cell.children = [node for node in _cell_content(col, item, s, t) if node is not None]
            tr.children.append(cell)
        rows.append(tr)

    table = Node("table", "items.table", Style(font_size=t.fonts.body), rows)
    return Node("section", "section-items_table", Style(padding=_pad(t.section_gap, 0)), [table])


def _total_line(node_id: str, label: str, value: str, t: Theme, **style) -> Node:
    return Node("row", node_id, Style(**style), [
        Node("text", None, Style(flex=1, font_size=t.fonts.small, color=style.get("color") or MUTED_COLOR),
             text=label),
        Node("text", None, Style(width=130, flex=0, align="right", mono=True, font_family=t.mono_font,
                                 bold=style.get("bold", False)), text=value),
    ])


def _totals(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    totals = doc.totals
    f = t.fonts

    words = None
    if s.show_amount_words:
        words = _box("stack", "totals.amount_words", [
            _label(None, "Amount Chargeable (in words)", t),
            _text(None, doc.words, bold=True, mono=True, font_family=t.mono_font),
        ], gap=3, flex=1, padding=_pad(8, 10), background="#f9fafb")

    lines = [
        _total_line("totals.subtotal", f"Subtotal ({format_plain(doc.total_quantity)} items)",
                    format_indian_currency(totals.subtotal), t),
    ]
    if totals.discount > 0:
        lines.append(_total_line("totals.discount", f"Discount @ {format_plain(totals.discount_percent)}%",
                                 "- " + format_indian_currency(totals.discount), t))
    lines.append(_total_line("totals.tax", f"IGST @ {format_plain(totals.tax_rate)}%",
                             format_indian_currency(totals.tax_amount), t))
    if totals.round_off != 0:
        lines.append(_total_line("totals.round_off", "Round Off",
                                 format_indian_currency(totals.round_off), t))
    lines.append(_total_line("totals.grand_total", "Grand Total",
                             format_indian_currency(totals.grand_total), t,
                             background=t.grand_total_background, color=t.grand_total_text,
                             bold=True, padding=_pad(6, 8), font_family=t.heading_font,
                             font_size=f.body))

    summary = Node("stack", "totals.summary", Style(width=300, flex=0, gap=4), lines)
    return _box(
        "section", "section-totals",
        [_box("row", "totals.row", [words, summary], gap=16, align="right")],
        padding=_pad(t.section_gap + 4, 16), color=t.table_text,
    )


def _bank_details(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    if not s.bank_name:
        return None
    f = t.fonts
    return _box("section", "section-bank_details", [
        _label(None, "Bank Details", t),
        _text("bank.branch", f"Branch: {s.bank_branch}" if s.bank_branch else None, font_size=f.small),
        _text("bank.name", f"Bank: {s.bank_name}", font_size=f.small),
        _text("bank.account", f"A/C No: {s.bank_account_no}" if s.bank_account_no else None, font_size=f.small),
        _text("bank.ifsc", f"IFSC: {s.bank_ifsc}" if s.bank_ifsc else None, font_size=f.small),
    ], gap=2, padding=_pad(*t.footer_padding), color=t.table_text)


def _terms(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    if not s.show_terms or not s.terms_lines:
        return None
    lines = [
        _text(f"terms.line{i}", f"{i}. {line}", font_size=t.fonts.small)
        for i, line in enumerate(s.terms_lines, start=1)
    ]
    return _box("section", "section-terms", [_label(None, "Terms & Conditions", t)] + lines,
                gap=2, padding=_pad(*t.footer_padding), color=t.table_text)


def _signature(doc: InvoiceDocument, s: TemplateSettings, t: Theme) -> Optional[Node]:
    if not s.show_signature:
        return None
    return _box("section", "section-signature", [
        _text("signature.company", f"for {doc.company.name}", bold=True, font_family=t.heading_font,
              width=240, flex=0, align="center"),
        Node("spacer", None, Style(height=28)),
        Node("rule", "signature.line", Style(width=160, border_bottom=1, border_color=t.table_text)),
        _text("signature.label", "Authorised Signatory", font_size=t.fonts.small, width=240, flex=0,
              align="center"),
    ], gap=2, align="right", padding=_pad(*t.footer_padding), color=t.table_text)


SECTION_BUILDERS = {
    "header": _header,
    "customer_details": _customer_details,
    "items_table": _items_table,
    "totals": _totals,
    "bank_details": _bank_details,
    "terms": _terms,
    "signature": _signature,
}


# ==================== ENTRY POINT ====================

def render(doc: InvoiceDocument,
           settings: Union[TemplateSettings, Mapping, None] = None,
           container_id: str = CONTAINER_ID) -> RenderedDocument:
    """
    Build the styled document tree for an invoice.

    Pure: the same document and settings always produce the same tree.
    Never raises for zero line items or a broken canvas payload.
    """
    s = resolve(settings)
    t = resolve_theme(s)

    sections = []
    section_ids = []
    for section_id in s.section_order:
        node = SECTION_BUILDERS[section_id](doc, s, t)
        if node is None:
            continue
        sections.append(node)
        section_ids.append(section_id)

    children = [
        Node("text", "page-indicator", Style(font_size=t.fonts.small, color=PAGE_GUIDE_COLOR, align="center",
                                             background="#f8fafc", padding=_pad(2, 0)),
             text="A4 preview - export splits pages every 297 mm", screen_only=True),
        Node("rule", "accent.top", Style(border_bottom=6, border_color=t.accent)),
        *sections,
    ]
    footer = _text("footer.custom", s.custom_footer_text, font_size=t.fonts.small, align="center",
                   color=MUTED_COLOR, padding=_pad(*t.footer_padding))
    if footer is not None:
        children.append(footer)
    children.append(Node("rule", "accent.bottom", Style(border_bottom=6, border_color=t.accent)))

    root = Node("document", container_id, Style(
        background="#ffffff", color=t.table_text, font_family=t.body_font, font_size=t.fonts.body,
        width=DOCUMENT_WIDTH, align="left",
        box_shadow="0 4px 12px rgba(0,0,0,0.08)", animation="fade-in 0.3s ease-out",
    ), children)

    summary = aggregate_breakup(doc.items)
    if doc.items and abs(summary.tax_amount - doc.totals.tax_amount) > 1:
        # Totals block shows the stored totals regardless
        logger.debug(
            f"Line-level GST {summary.tax_amount} differs from stored tax {doc.totals.tax_amount} "
            f"for invoice {doc.invoice_no}"
        )

    return RenderedDocument(
        root=root,
        document=doc,
        settings=s,
        theme=t,
        section_ids=section_ids,
        overlay_scene=parse_scene(s.custom_canvas_data),
        tax_summary=summary,
    )
