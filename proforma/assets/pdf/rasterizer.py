"""
Raster Capture
==============

Paints a node tree onto a white Pillow canvas at a device scale. The export
pipeline only depends on the Rasterizer protocol; PillowRasterizer is the
implementation used in production and tests.

Layout model (device pixels = css px * scale):
- stack-like nodes flow children top to bottom with a gap
- row-like nodes split the width between fixed-width and flex children
- text wraps on word boundaries, long tokens are broken by character
- fixed-width children are placed by the parent's alignment
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Protocol

from PIL import Image, ImageDraw, ImageOps

from .fonts import RGB, FontBook, parse_color, wrap_text
from .layoutEngine import DOCUMENT_WIDTH, ROW_KINDS, STACK_KINDS, Node

logger = logging.getLogger(__name__)

ImageMap = Mapping[str, Optional[Image.Image]]

WHITE: RGB = (255, 255, 255)
BLACK: RGB = (0, 0, 0)
SHADOW_COLOR: RGB = (214, 214, 214)
PLACEHOLDER_FILL: RGB = (243, 244, 246)
PLACEHOLDER_OUTLINE: RGB = (209, 213, 219)

LINE_HEIGHT = 1.35
SHADOW_OFFSET = 4


class Rasterizer(Protocol):
    def capture(self, element: Node, *, scale: float, images: ImageMap) -> Image.Image:
        ...


def _offset(extra: float, align: Optional[str]) -> float:
    if extra <= 0:
        return 0
    if align == "center":
        return extra / 2
    if align == "right":
        return extra
    return 0


# ==================== LAYOUT ====================

@dataclass(frozen=True)
class TextContext:
    color: RGB = BLACK
    family: Optional[str] = None
    size: float = 12
    bold: bool = False
    mono: bool = False
    align: str = "left"

    def inherit(self, node: Node) -> "TextContext":
        s = node.style
        return TextContext(
            color=parse_color(s.color, self.color) if s.color else self.color,
            family=s.font_family or self.family,
            size=s.font_size or self.size,
            bold=self.bold or s.bold,
            mono=self.mono or s.mono,
            align=s.align or self.align,
        )


@dataclass
class Box:
    node: Node
    x: float
    y: float
    w: float
    h: float
    ctx: TextContext
    children: List["Box"] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)
    font: object = None
    line_height: float = 0


class _Layout:
    def __init__(self, fonts: FontBook, scale: float):
        self.fonts = fonts
        self.k = scale

    def layout(self, node: Node, x: float, y: float, width: float, parent: TextContext) -> Box:
        k = self.k
        s = node.style
        ctx = parent.inherit(node)
        box = Box(node, x, y, width, 0, ctx)

        pt, pr, pb, pl = (v * k for v in s.padding)
        inner_x = x + pl
        inner_y = y + pt
        inner_w = max(0.0, width - pl - pr)

        if node.kind == "text":
            box.font = self.fonts.get(ctx.family, ctx.size * k, ctx.bold, ctx.mono)
            box.line_height = ctx.size * k * LINE_HEIGHT
            box.lines = wrap_text(node.text or "", box.font, inner_w)
            content_h = len(box.lines) * box.line_height
        elif node.kind in ("image", "placeholder"):
            content_h = (s.height or s.width or 0) * k
        elif node.kind == "rule":
            content_h = max(1.0, s.border_bottom * k)
        elif node.kind == "spacer":
            content_h = (s.height or 0) * k
        elif node.kind in ROW_KINDS:
            content_h = self._row(box, node, inner_x, inner_y, inner_w, ctx)
        else:
            content_h = self._stack(box, node, inner_x, inner_y, inner_w, ctx)

        height = pt + content_h + pb
        if s.height and node.kind in STACK_KINDS | ROW_KINDS:
            height = max(height, s.height * k)
        if s.border_bottom and node.kind not in ("rule", "placeholder"):
            height += s.border_bottom * k
        box.h = height
        return box

    def _stack(self, box: Box, node: Node, x: float, y: float, width: float, ctx: TextContext) -> float:
        cy = y
        gap = node.style.gap * self.k
        visible = [child for child in node.children if not child.hidden]
        for i, child in enumerate(visible):
            if i:
                cy += gap
            cw = width if child.style.width is None else min(child.style.width * self.k, width)
            cx = x + _offset(width - cw, ctx.align)
            child_box = self.layout(child, cx, cy, cw, ctx)
            box.children.append(child_box)
            cy += child_box.h
        return cy - y

    def _row(self, box: Box, node: Node, x: float, y: float, width: float, ctx: TextContext) -> float:
        visible = [child for child in node.children if not child.hidden]
        if not visible:
            return 0
        gap = node.style.gap * self.k
        avail = max(0.0, width - gap * (len(visible) - 1))

        fixed = sum(child.style.width * self.k for child in visible if child.style.width is not None)
        flexible = [child for child in visible if child.style.width is None]
        weights = sum(max(child.style.flex, 0) for child in flexible)
        remaining = max(0.0, avail - fixed)

        widths = []
        for child in visible:
            if child.style.width is not None:
                widths.append(child.style.width * self.k)
            elif weights > 0:
                widths.append(remaining * max(child.style.flex, 0) / weights)
            else:
                widths.append(remaining / len(flexible))

        used = sum(widths) + gap * (len(visible) - 1)
        cx = x if flexible else x + _offset(width - used, ctx.align)

        for child, child_w in zip(visible, widths):
            box.children.append(self.layout(child, cx, y, child_w, ctx))
            cx += child_w + gap

        height = max(child_box.h for child_box in box.children)
        for child_box in box.children:
            # cells and columns stretch to the row height
            if child_box.node.kind in STACK_KINDS:
                child_box.h = height
        return height


# ==================== PAINT ====================

class _Painter:
    def __init__(self, image: Image.Image, images: ImageMap, scale: float):
        self.image = image
        self.draw = ImageDraw.Draw(image)
        self.images = images
        self.k = scale

    def paint(self, box: Box):
        node = box.node
        s = node.style
        k = self.k
        x0, y0, x1, y1 = box.x, box.y, box.x + box.w, box.y + box.h

        if s.box_shadow:
            off = SHADOW_OFFSET * k
            self.draw.rectangle([x0 + off, y0 + off, x1 + off, y1 + off], fill=SHADOW_COLOR)

        background = parse_color(s.background)
        if background is not None and box.w > 0 and box.h > 0:
            if s.radius:
                self.draw.rounded_rectangle([x0, y0, x1, y1], radius=s.radius * k, fill=background)
            else:
                self.draw.rectangle([x0, y0, x1, y1], fill=background)

        if node.kind == "text":
            self._text(box)
        elif node.kind == "image":
            self._image(box)
        elif node.kind == "placeholder" and background is None:
            self._placeholder(box)
        elif node.kind == "rule":
            color = parse_color(s.border_color, box.ctx.color)
            self.draw.rectangle([x0, y0, x1, y1], fill=color)

        for child in box.children:
            self.paint(child)

        if s.border_bottom and node.kind not in ("rule", "placeholder"):
            thickness = s.border_bottom * k
            color = parse_color(s.border_color, box.ctx.color)
            self.draw.rectangle([x0, y1 - thickness, x1, y1], fill=color)

    def _text(self, box: Box):
        pt, pr, pb, pl = (v * self.k for v in box.node.style.padding)
        inner_x = box.x + pl
        inner_w = box.w - pl - pr
        ty = box.y + pt
        font_px = box.ctx.size * self.k
        for line in box.lines:
            tx = inner_x + _offset(inner_w - box.font.getlength(line), box.ctx.align)
            self.draw.text((tx, ty + (box.line_height - font_px) / 2), line, font=box.font, fill=box.ctx.color)
            ty += box.line_height

    def _placeholder(self, box: Box):
        self.draw.rectangle([box.x, box.y, box.x + box.w, box.y + box.h],
                            fill=PLACEHOLDER_FILL, outline=PLACEHOLDER_OUTLINE)

    def _image(self, box: Box):
        picture = self.images.get(box.node.src) if box.node.src else None
        w, h = int(box.w), int(box.h)
        if picture is None or w <= 0 or h <= 0:
            self._placeholder(box)
            return
        fitted = ImageOps.contain(picture.convert("RGBA"), (w, h))
        px = int(box.x + (w - fitted.width) / 2)
        py = int(box.y + (h - fitted.height) / 2)
        self.image.paste(fitted, (px, py), fitted)


# ==================== RASTERIZER ====================

class PillowRasterizer:
    """Rasterizer backed by Pillow; white background, RGB output."""

    def __init__(self, fonts: Optional[FontBook] = None):
        self.fonts = fonts or FontBook()

    def layout(self, element: Node, scale: float) -> Box:
        width = (element.style.width or DOCUMENT_WIDTH) * scale
        return _Layout(self.fonts, scale).layout(element, 0, 0, width, TextContext())

    def capture(self, element: Node, *, scale: float = 2.0, images: Optional[ImageMap] = None) -> Image.Image:
        box = self.layout(element, scale)
        size = (max(1, math.ceil(box.w - 1e-6)), max(1, math.ceil(box.h - 1e-6)))
        image = Image.new("RGB", size, WHITE)
        _Painter(image, images or {}, scale).paint(box)
        logger.debug(f"Captured {element.id or element.kind} at {scale}x: {size[0]}x{size[1]}px")
        return image
