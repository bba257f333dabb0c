"""
HTML rendering tests
Tests: preview markup, print markup, WeasyPrint vector export
"""

import pytest

from proforma.assets.pdf.htmlPdfEngine import node_css, render_html, render_pdf_html, render_preview_html
from proforma.assets.pdf.layoutEngine import Node, Style, render

try:
    import weasyprint
except (ImportError, OSError):
    weasyprint = None


class TestPreviewHtml:
    """Screen preview"""

    def test_preview_contains_document(self, sample_doc):
        html = render_preview_html(sample_doc)
        assert 'id="invoice-container"' in html
        assert "NEW GLOBAL COMPUTERS (2025-26)" in html
        assert "₹4,08,910.00" in html
        print(f"✓ Preview HTML: {len(html)} chars")

    def test_preview_keeps_screen_only_and_decoration(self, sample_doc):
        html = render_preview_html(sample_doc)
        assert 'id="page-indicator"' in html
        assert "no-print" in html
        assert "box-shadow" in html

    def test_print_markup_drops_screen_only(self, sample_doc):
        rendered = render(sample_doc)
        html = render_html(rendered, for_print=True)
        assert 'id="page-indicator"' not in html
        assert "box-shadow" not in html
        assert "animation:" not in html
        # the tree itself is untouched afterwards
        assert rendered.root.style.box_shadow

    def test_text_is_escaped(self, make_document):
        doc = make_document(customer={"name": "<script>alert(1)</script>"})
        html = render_preview_html(doc)
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_overlay_embedded(self, sample_doc):
        scene = {"objects": [{"type": "rect", "width": 10, "height": 10, "fill": "#ff0000"}]}
        html = render_preview_html(sample_doc, {"custom_canvas_data": scene})
        assert 'class="overlay" src="data:image/png;base64,' in html

    def test_section_order_in_markup(self, sample_doc):
        html = render_preview_html(sample_doc, {"section_order": ["totals", "header"]})
        assert html.index('id="section-totals"') < html.index('id="section-header"')


class TestNodeCss:
    def test_fixed_width_in_row(self):
        css = node_css(Node("td", "c", Style(width=40, align="right")), "tr")
        assert "width:40px" in css
        assert "flex:0 0 auto" in css
        assert "align-items:flex-end" in css

    def test_flex_child_in_row(self):
        assert "flex:1 1 0" in node_css(Node("td", "c", Style()), "tr")

    def test_rule(self):
        css = node_css(Node("rule", "r", Style(border_bottom=6, border_color="#d4a02c")), "document")
        assert "height:6px;background:#d4a02c" in css


@pytest.mark.skipif(weasyprint is None, reason="WeasyPrint system libraries not available")
class TestVectorPdf:
    """WeasyPrint export of the same tree"""

    def test_render_pdf_html(self, sample_doc, tmp_path):
        output = tmp_path / "invoice.pdf"
        pdf = render_pdf_html(sample_doc, {"template_style": "bold_corporate"}, output_path=output)
        assert pdf.startswith(b"%PDF")
        assert output.read_bytes() == pdf
