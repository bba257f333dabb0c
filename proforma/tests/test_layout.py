"""
Layout renderer tests
Tests: section order, visibility flags, style tables, edge cases
"""

import logging

import pytest

from proforma.assets.pdf.layoutEngine import (
    CONTAINER_ID,
    LOGO_SIZES,
    ROW_KINDS,
    STACK_KINDS,
    render,
)
from proforma.assets.pdf.settings import SECTION_IDS, VISIBILITY_FLAGS, move_section

# Element ids governed by each flag; a flag may own several ids (table columns)
GOVERNED = {
    "show_logo": ("header.logo",),
    "show_gstin_header": ("header.gstin",),
    "show_contact_header": ("header.contact",),
    "show_company_state": ("header.state",),
    "show_shipping_address": ("customer.shipping",),
    "show_customer_email": ("customer.email",),
    "show_customer_phone": ("customer.phone",),
    "show_image_column": ("col-image.", "items.image."),
    "show_brand_column": ("col-brand.",),
    "show_unit_column": ("col-unit.",),
    "show_serial_numbers": ("items.serials.",),
    "show_discount_column": ("col-discount.",),
    "show_terms": ("section-terms", "terms."),
    "show_signature": ("section-signature", "signature."),
    "show_amount_words": ("totals.amount_words",),
    "show_invoice_title": ("header.title",),
    "show_gst": ("col-taxable.", "col-gst."),
}


def empty_containers(root):
    return [
        node.id or node.kind
        for node in root.walk()
        if node.kind in STACK_KINDS | ROW_KINDS and not node.children
    ]


def cell_text(rendered, cell_id):
    cell = rendered.find(cell_id)
    assert cell is not None, cell_id
    return cell.children[0].text


class TestSections:
    """Section emission and ordering"""

    def test_default_order(self, sample_doc):
        rendered = render(sample_doc)
        # bank details are absent without a bank name
        assert rendered.section_ids == [s for s in SECTION_IDS if s != "bank_details"]
        assert rendered.root.id == CONTAINER_ID
        print(f"✓ Sections: {rendered.section_ids}")

    def test_custom_order(self, sample_doc):
        order = move_section(list(SECTION_IDS), "totals", 0)
        rendered = render(sample_doc, {"section_order": order, "bank_name": "HDFC Bank"})
        assert rendered.section_ids == order
        section_nodes = [n.id for n in rendered.root.children if n.kind == "section"]
        assert section_nodes == [f"section-{s}" for s in order]

    def test_broken_order_repaired(self, sample_doc):
        rendered = render(sample_doc, {"section_order": ["signature", "signature", "nope"]})
        assert rendered.section_ids[0] == "signature"
        assert len(rendered.section_ids) == len(set(rendered.section_ids))

    def test_bank_block_needs_bank_name(self, sample_doc):
        without = render(sample_doc, {"bank_account_no": "1234567890", "bank_ifsc": "SBIN0000001"})
        assert without.find("section-bank_details") is None

        with_bank = render(sample_doc, {"bank_name": "State Bank of India", "bank_ifsc": "SBIN0000001"})
        assert with_bank.find("bank.name").text == "Bank: State Bank of India"
        assert with_bank.find("bank.ifsc").text == "IFSC: SBIN0000001"
        # absent optional values are omitted, not printed empty
        assert with_bank.find("bank.account") is None

    def test_custom_footer(self, sample_doc):
        assert render(sample_doc).find("footer.custom") is None
        rendered = render(sample_doc, {"custom_footer_text": "Thank you for your business"})
        assert rendered.find("footer.custom").text == "Thank you for your business"

    def test_render_is_pure(self, sample_doc):
        settings = {"primary_color": "#0369a1", "header_layout_style": "split"}
        assert render(sample_doc, settings).root == render(sample_doc, settings).root

    @pytest.mark.parametrize("layout", ["centered", "left-aligned", "split"])
    def test_header_layouts(self, sample_doc, layout):
        rendered = render(sample_doc, {"header_layout_style": layout})
        for element_id in ("header.logo", "header.name", "header.address", "header.gstin", "header.title"):
            assert rendered.find(element_id) is not None, element_id
        assert empty_containers(rendered.root) == []


class TestVisibilityFlags:
    """Each flag removes exactly the element it governs"""

    def test_every_flag_covered(self):
        assert set(GOVERNED) == set(VISIBILITY_FLAGS)

    @pytest.mark.parametrize("flag", VISIBILITY_FLAGS)
    def test_flag_off_removes_only_its_element(self, full_doc, flag):
        on = render(full_doc, {flag: True})
        off = render(full_doc, {flag: False})

        on_ids = set(on.root.ids())
        off_ids = set(off.root.ids())
        removed = on_ids - off_ids

        assert removed, f"{flag} removed nothing"
        assert off_ids <= on_ids
        assert all(element_id.startswith(GOVERNED[flag]) for element_id in removed), removed
        assert empty_containers(off.root) == []
        print(f"✓ {flag}: removed {sorted(removed)[:3]}...")

    def test_all_flags_off_leaves_no_empty_container(self, full_doc):
        settings = {flag: False for flag in VISIBILITY_FLAGS}
        rendered = render(full_doc, settings)
        assert empty_containers(rendered.root) == []
        assert rendered.find("items.table") is not None

    def test_badges_row_dropped_when_empty(self, sample_doc):
        rendered = render(sample_doc, {"show_gstin_header": False, "show_company_state": False})
        assert rendered.find("header.badges") is None

    def test_shipping_needs_address(self, sample_doc):
        rendered = render(sample_doc, {"show_shipping_address": True})
        assert rendered.find("customer.shipping") is None


class TestItemsTable:
    """Line item table contents"""

    def test_currency_and_tax_columns(self, sample_doc):
        rendered = render(sample_doc)
        assert cell_text(rendered, "col-rate.1") == "₹1,060.00"
        assert cell_text(rendered, "col-taxable.1") == "₹898.31"
        assert cell_text(rendered, "col-gst.1") == "₹161.69"
        # 60 x 1060 less 11%
        assert cell_text(rendered, "col-amount.1") == "₹56,604.00"
        assert cell_text(rendered, "col-discount.1") == "11%"
        assert cell_text(rendered, "col-qty.2") == "160"

    def test_serial_numbers(self, sample_doc):
        rendered = render(sample_doc)
        assert rendered.find("items.serials.1").text.startswith("S/N: 4WWB, 4QXF")
        assert rendered.find("items.serials.3") is None

    def test_zero_items_header_only(self, empty_doc):
        rendered = render(empty_doc)
        table = rendered.find("items.table")
        assert [row.id for row in table.children] == ["items.head"]
        assert rendered.find("totals.grand_total") is not None
        print("✓ Empty invoice renders header-only table")

    def test_image_placeholder_without_url(self, sample_doc):
        node = render(sample_doc).find("items.image.1")
        assert node.kind == "placeholder"

    def test_image_with_url(self, make_document, png_uri):
        uri = png_uri()
        doc = make_document(items=[{
            "sl_no": 1, "description": "Camera", "quantity": 1, "rate": "1180", "image_url": uri,
        }])
        node = render(doc).find("items.image.1")
        assert node.kind == "image"
        assert node.src == uri


class TestTotals:
    """Totals block shows the stored totals"""

    def test_stored_totals_rendered(self, sample_doc):
        rendered = render(sample_doc)
        grand = rendered.find("totals.grand_total")
        assert grand.children[1].text == "₹4,08,910.00"
        assert rendered.find("totals.discount").children[1].text == "- ₹12,586.15"
        assert rendered.find("totals.round_off").children[1].text == "₹0.06"

    def test_zero_discount_hidden(self, long_doc):
        rendered = render(long_doc)
        assert rendered.find("totals.discount") is None
        assert rendered.find("totals.round_off") is None

    def test_tax_summary_from_lines(self, long_doc):
        rendered = render(long_doc)
        # 1180 inclusive at 18% -> 1000 + 180 per unit
        assert str(rendered.tax_summary.base_price) == "45000.00"
        assert str(rendered.tax_summary.tax_amount) == "8100.00"

    def test_amount_words(self, sample_doc):
        words = render(sample_doc).find("totals.amount_words")
        assert words.children[-1].text == "INR Four Lakh Eight Thousand Nine Hundred Ten Only"


class TestStyleTables:
    """Discrete presets for sizes, paddings and borders"""

    @pytest.mark.parametrize("scale, body", [("small", 11), ("normal", 12), ("large", 14)])
    def test_font_scale(self, sample_doc, scale, body):
        rendered = render(sample_doc, {"font_size_scale": scale})
        assert rendered.root.style.font_size == body
        assert rendered.theme.fonts.body == body

    @pytest.mark.parametrize("size", list(LOGO_SIZES))
    def test_logo_size(self, sample_doc, size):
        logo = render(sample_doc, {"logo_size": size}).find("header.logo")
        assert logo.style.width == logo.style.height == LOGO_SIZES[size]

    @pytest.mark.parametrize("border, width", [("none", 0), ("subtle", 1), ("medium", 1.5), ("bold", 2)])
    def test_border_width(self, sample_doc, border, width):
        row = render(sample_doc, {"border_style": border}).find("items.row.1")
        assert row.style.border_bottom == width

    def test_colors_flow_to_nodes(self, sample_doc):
        rendered = render(sample_doc, {"primary_color": "#294172", "grand_total_bg": "#1e2a4a"})
        assert rendered.find("section-header").style.background == "#294172"
        assert rendered.find("totals.grand_total").style.background == "#1e2a4a"

    def test_padding_tiers(self, sample_doc):
        compact = render(sample_doc, {"header_padding": "compact"}).find("section-header")
        relaxed = render(sample_doc, {"header_padding": "relaxed"}).find("section-header")
        assert relaxed.style.padding[0] > compact.style.padding[0]


class TestPreviewDecoration:
    """Screen-only nodes and preview decoration"""

    def test_page_indicator_screen_only(self, sample_doc):
        indicator = render(sample_doc).find("page-indicator")
        assert indicator.screen_only is True
        assert indicator.hidden is False

    def test_decoration_present(self, sample_doc):
        rendered = render(sample_doc)
        assert rendered.root.style.box_shadow
        assert rendered.find("items.row.1").style.animation


class TestCanvasPayload:
    """Freeform overlay payload handling in the renderer"""

    def test_malformed_canvas_dropped(self, sample_doc, caplog):
        with caplog.at_level(logging.WARNING):
            rendered = render(sample_doc, {"custom_canvas_data": "{broken json"})
        assert rendered.overlay_scene is None
        assert "canvas" in caplog.text

    def test_canvas_parsed(self, sample_doc):
        payload = '{"version": "5.3.0", "objects": [{"type": "rect"}], "background": "#ffffff"}'
        rendered = render(sample_doc, {"custom_canvas_data": payload})
        assert rendered.overlay_scene["objects"] == [{"type": "rect"}]
        assert rendered.overlay_scene["background"] == "transparent"
