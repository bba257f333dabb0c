"""
HTML-based Invoice Renderer
===========================

Renders the layout tree to HTML with a Jinja2 template. The same markup is
used for the live preview (screen media, decoration kept) and for the
vector PDF path through WeasyPrint (print appearance applied first).
"""

import base64
import io
import logging
from pathlib import Path
from typing import Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .document import InvoiceDocument
from .layoutEngine import ROW_KINDS, STACK_KINDS, Node, RenderedDocument, render
from .overlay import load_overlay
from .pdfEngine import artifact_filename, print_mode
from .settings import TemplateSettings

logger = logging.getLogger(__name__)

# Template directory
TEMPLATE_DIR = Path(__file__).parent
TEMPLATE_NAME = "invoice_template.html"

ALIGN_ITEMS = {"left": "flex-start", "center": "center", "right": "flex-end"}


def node_css(node: Node, parent_kind: str = "") -> str:
    """Inline CSS for one node; flex sizing depends on the parent's direction."""
    s = node.style
    rules = []
    if s.background:
        rules.append(f"background:{s.background}")
    if s.color:
        rules.append(f"color:{s.color}")
    if s.font_family:
        generic = "monospace" if s.mono else "sans-serif"
        rules.append(f"font-family:'{s.font_family}', {generic}")
    elif s.mono:
        rules.append("font-family:monospace")
    if s.font_size:
        rules.append(f"font-size:{s.font_size}px")
    if s.bold:
        rules.append("font-weight:700")
    if s.italic:
        rules.append("font-style:italic")
    if s.align:
        rules.append(f"text-align:{s.align}")
        if node.kind in STACK_KINDS:
            rules.append(f"align-items:{ALIGN_ITEMS.get(s.align, 'flex-start')}")
        elif node.kind in ROW_KINDS:
            rules.append(f"justify-content:{ALIGN_ITEMS.get(s.align, 'flex-start')}")
    if any(s.padding):
        rules.append("padding:" + " ".join(f"{v}px" for v in s.padding))
    if s.gap:
        rules.append(f"gap:{s.gap}px")

    if s.width is not None:
        rules.append(f"width:{s.width}px;flex:0 0 auto")
    elif parent_kind in ROW_KINDS:
        rules.append(f"flex:{s.flex} 1 0")
    else:
        rules.append("align-self:stretch")
    if s.height is not None:
        rules.append(f"height:{s.height}px")
    elif node.kind in ("image", "placeholder") and s.width is not None:
        rules.append(f"height:{s.width}px")

    if node.kind == "rule":
        rules.append(f"height:{max(s.border_bottom, 1)}px;background:{s.border_color or 'currentColor'}")
    elif s.border_bottom:
        rules.append(f"border-bottom:{s.border_bottom}px solid {s.border_color or 'currentColor'}")
    if s.radius:
        rules.append(f"border-radius:{s.radius}px")
    if s.box_shadow:
        rules.append(f"box-shadow:{s.box_shadow}")
    if s.animation:
        rules.append(f"animation:{s.animation}")
    return ";".join(rules)


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["css"] = node_css
    return env


def _overlay_uri(rendered: RenderedDocument) -> Optional[str]:
    overlay = load_overlay(rendered.overlay_scene, scale=1.0)
    if overlay is None:
        return None
    with overlay:
        buffer = io.BytesIO()
        overlay.surface.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def render_html(rendered: RenderedDocument, for_print: bool = False) -> str:
    """
    Markup for a rendered document. With for_print, the tree is put in print
    mode while the template runs.
    """
    template = _environment().get_template(TEMPLATE_NAME)
    context = {
        "root": rendered.root,
        "invoice_no": rendered.document.invoice_no,
        "overlay_uri": _overlay_uri(rendered),
        "for_print": for_print,
    }
    if for_print:
        with print_mode(rendered.root):
            return template.render(**context)
    return template.render(**context)


def render_preview_html(doc: InvoiceDocument,
                        settings: Union[TemplateSettings, Mapping, None] = None) -> str:
    """Full-size screen preview, decoration and page guide included."""
    return render_html(render(doc, settings))


def render_pdf_html(doc: InvoiceDocument,
                    settings: Union[TemplateSettings, Mapping, None] = None,
                    output_path: Union[str, Path, None] = None) -> bytes:
    """
    Generate a vector invoice PDF from the HTML rendering using WeasyPrint.

    Args:
        doc: Invoice document
        settings: Template settings (partial or complete)
        output_path: Optional file to write as well

    Returns:
        PDF bytes
    """
    try:
        from weasyprint import HTML

        rendered = render(doc, settings)
        logger.info(f"Rendering HTML for {artifact_filename(doc.invoice_no)}...")
        html_content = render_html(rendered, for_print=True)

        pdf_bytes = HTML(string=html_content, base_url=str(TEMPLATE_DIR)).write_pdf()
        if output_path:
            Path(output_path).write_bytes(pdf_bytes)
            logger.info(f"HTML Invoice PDF generated: {output_path}")
        return pdf_bytes

    except Exception as e:
        logger.error(f"Error generating HTML PDF: {e}", exc_info=True)
        raise
