"""
Invoice PDF Engine - Raster Export
==================================

Features:
- Captures the rendered invoice container as a 2x raster on white
- Screen-only nodes hidden and preview decoration stripped during capture,
  always restored afterwards
- Freeform overlay composited over the first page
- Tall captures sliced into A4 pages (210 x 297 mm), each slice drawn on its
  own reportlab canvas and merged with pypdf
- Single page shortcut embeds the unsliced capture
- Images preloaded concurrently with a per-image timeout; broken images
  become placeholders instead of failing the export
"""

import asyncio
import base64
import io
import logging
import math
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Literal, Mapping, Optional, Union

from PIL import Image
from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as rl_canvas

from proforma.config import Config
from .document import InvoiceDocument
from .errors import ElementNotFoundError, ExportError, RasterizationError
from .layoutEngine import CONTAINER_ID, DOCUMENT_WIDTH, Node, RenderedDocument, render
from .load_images import collect_image_sources, preload_images
from .overlay import OverlayHost, load_overlay
from .rasterizer import PillowRasterizer, Rasterizer, WHITE
from .settings import TemplateSettings

logger = logging.getLogger(__name__)

# ==================== CONFIGURATION ====================

A4_WIDTH_MM = 210
A4_HEIGHT_MM = 297
PAGE_EPSILON = 1e-9

Encoding = Literal["file", "base64"]


# ==================== PRINT MODE ====================

_capturing = set()


@contextmanager
def print_mode(element: Node):
    """
    Put element into its print appearance for the duration of a capture.

    Screen-only nodes are hidden, box shadows and animations are stripped.
    Every node gets its exact previous state back on exit, including when the
    capture raised. A second capture of the same element while one is in
    progress is refused.
    """
    key = id(element)
    if key in _capturing:
        raise ExportError(f'Element "{element.id}" is already being captured')
    _capturing.add(key)

    saved = []
    try:
        for node in element.walk():
            saved.append((node, node.hidden, node.style))
            if node.screen_only:
                node.hidden = True
            if node.style.box_shadow or node.style.animation:
                node.style = replace(node.style, box_shadow=None, animation=None)
        yield element
    finally:
        for node, hidden, style in saved:
            node.hidden = hidden
            node.style = style
        _capturing.discard(key)


# ==================== PAGINATION ====================

@dataclass(frozen=True)
class Slice:
    top: int
    bottom: int

    @property
    def height(self) -> int:
        return self.bottom - self.top


def source_page_height(raster_width: int) -> float:
    """Raster rows that fit one A4 page when the width spans 210 mm."""
    return raster_width * A4_HEIGHT_MM / A4_WIDTH_MM


def page_count(total_height: int, page_height: float) -> int:
    if total_height <= 0:
        return 0
    return max(1, math.ceil(total_height / page_height - PAGE_EPSILON))


def plan_slices(total_height: int, page_height: float) -> List[Slice]:
    """
    Cut [0, total_height) into consecutive page slices.

    Boundaries are floored; the last slice always ends exactly at
    total_height, so the slices tile the raster with no gap or overlap.
    """
    if page_height <= 0:
        raise ValueError(f"Page height must be positive, got {page_height}")
    count = page_count(total_height, page_height)
    slices = []
    for i in range(count):
        top = math.floor(i * page_height)
        bottom = total_height if i == count - 1 else min(math.floor((i + 1) * page_height), total_height)
        if bottom > top:
            slices.append(Slice(top, bottom))
    return slices


def paginate(raster: Image.Image) -> List[Image.Image]:
    """Split a capture into page images; a capture that fits one page is returned as is."""
    height_mm = raster.height * A4_WIDTH_MM / raster.width
    if height_mm <= A4_HEIGHT_MM:
        return [raster]

    pages = []
    for piece in plan_slices(raster.height, source_page_height(raster.width)):
        page = Image.new("RGB", (raster.width, piece.height), WHITE)
        page.paste(raster.crop((0, piece.top, raster.width, piece.bottom)), (0, 0))
        pages.append(page)
    return pages


# ==================== ARTIFACT ====================

def artifact_filename(invoice_no: str) -> str:
    safe_filename = str(invoice_no).replace(" / ", "-").replace("/", "-")
    return f"Invoice-{safe_filename}.pdf"


@dataclass
class BinaryArtifact:
    filename: str
    content: bytes
    page_count: int
    encoding: Encoding = "file"
    media_type: str = "application/pdf"

    def __post_init__(self):
        if not self.content:
            raise ExportError("Export produced an empty document")

    def to_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")

    @property
    def payload(self) -> Union[bytes, str]:
        return self.to_base64() if self.encoding == "base64" else self.content

    def save(self, directory: Union[str, Path, None] = None) -> Path:
        """Write atomically: a temp file in the target directory, then rename."""
        directory = Path(directory or Config.EXPORTS_DIR)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.filename

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".export-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(self.content)
            os.replace(tmp_path, target)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Saved {self.filename} to {directory} ({len(self.content)} bytes)")
        return target


# ==================== EXPORT PIPELINE ====================

class PdfExportPipeline:
    """
    Raster export of a rendered invoice.
    """

    def __init__(self, rasterizer: Optional[Rasterizer] = None, scale: Optional[float] = None,
                 preload_timeout: Optional[float] = None):
        self.rasterizer = rasterizer or PillowRasterizer()
        self.scale = scale or Config.RASTER_SCALE
        self.preload_timeout = preload_timeout or Config.IMAGE_PRELOAD_TIMEOUT
        self.overlays = OverlayHost(scale=self.scale)

    async def export(self, rendered: RenderedDocument, element_id: str = CONTAINER_ID,
                     encoding: Encoding = "file", filename: Optional[str] = None) -> BinaryArtifact:
        """
        Export the element with element_id to a paginated PDF.

        Raises:
            ElementNotFoundError: element_id is not in the document
            RasterizationError: the capture itself failed
            ExportError: anything else that leaves no usable PDF
        """
        if encoding not in ("file", "base64"):
            raise ValueError(f"Unknown encoding: {encoding}")

        element = rendered.find(element_id)
        if element is None:
            raise ElementNotFoundError(element_id)

        images = await preload_images(collect_image_sources(element), timeout=self.preload_timeout)

        with print_mode(element):
            raster = await self._capture(element, images)

        overlay = self.overlays.mount(rendered.overlay_scene)
        try:
            if overlay is not None:
                raster = overlay.render_into(raster)
        finally:
            self.overlays.unmount()

        pages = paginate(raster)
        content = self._write_pdf(pages, title=f"Invoice {rendered.document.invoice_no}")
        artifact = BinaryArtifact(
            filename=filename or artifact_filename(rendered.document.invoice_no),
            content=content,
            page_count=len(pages),
            encoding=encoding,
        )
        logger.info(f"Invoice PDF generated: {artifact.filename} ({artifact.page_count} pages)")
        return artifact

    async def _capture(self, element: Node, images: Mapping[str, Optional[Image.Image]]) -> Image.Image:
        try:
            raster = await asyncio.to_thread(self.rasterizer.capture, element, scale=self.scale, images=images)
        except ExportError:
            raise
        except Exception as e:
            logger.error(f"Error capturing {element.id}: {e}", exc_info=True)
            raise RasterizationError(f"Failed to capture element {element.id}: {e}") from e
        if raster is None or raster.width == 0 or raster.height == 0:
            raise RasterizationError(f"Capture of {element.id} produced an empty image")
        return raster

    def _new_page_canvas(self) -> dict:
        """Create new page buffer and canvas"""
        buffer = io.BytesIO()
        canvas = rl_canvas.Canvas(buffer, pagesize=A4)
        return {
            'buffer': buffer,
            'canvas': canvas,
        }

    def _write_pdf(self, pages: List[Image.Image], title: str) -> bytes:
        page_w, page_h = A4
        writer = PdfWriter()

        for page_num, page_image in enumerate(pages, start=1):
            page = self._new_page_canvas()
            canvas = page['canvas']
            # slice height in points when the width spans the page
            draw_h = page_image.height / page_image.width * page_w
            canvas.drawImage(ImageReader(page_image), 0, page_h - draw_h, width=page_w, height=draw_h)
            canvas.showPage()
            canvas.save()

            page['buffer'].seek(0)
            reader = PdfReader(page['buffer'])
            writer.add_page(reader.pages[0])
            logger.debug(f"Drew page {page_num}/{len(pages)} ({page_image.width}x{page_image.height}px)")

        writer.add_metadata({"/Title": title, "/Producer": "proforma"})
        output = io.BytesIO()
        writer.write(output)
        return output.getvalue()


# ==================== THUMBNAIL ====================

def render_thumbnail(doc: InvoiceDocument, settings: Union[TemplateSettings, Mapping, None] = None,
                     width: Optional[int] = None, rasterizer: Optional[Rasterizer] = None) -> bytes:
    """
    PNG of the first page at thumbnail width. Images are not fetched;
    they show as placeholders.
    """
    width = width or Config.THUMBNAIL_WIDTH
    scale = width / DOCUMENT_WIDTH
    rendered = render(doc, settings)

    with print_mode(rendered.root):
        raster = (rasterizer or PillowRasterizer()).capture(rendered.root, scale=scale, images={})

    overlay = load_overlay(rendered.overlay_scene, scale=scale)
    if overlay is not None:
        with overlay:
            raster = overlay.render_into(raster)

    first_page = math.floor(source_page_height(raster.width))
    if raster.height > first_page:
        raster = raster.crop((0, 0, raster.width, first_page))

    buffer = io.BytesIO()
    raster.save(buffer, format="PNG")
    return buffer.getvalue()


# ==================== FACTORY FUNCTION ====================

def generate_invoice_pdf(doc: InvoiceDocument, settings: Union[TemplateSettings, Mapping, None] = None,
                         output_dir: Union[str, Path, None] = None) -> Path:
    """
    Render, export and save an invoice PDF in one call.

    Synchronous entry point for scripts; the API uses PdfExportPipeline directly.
    """
    rendered = render(doc, settings)
    artifact = asyncio.run(PdfExportPipeline().export(rendered))
    return artifact.save(output_dir)
