"""
Freeform Overlay
================

User-drawn decoration layered over the first page: a fabric.js style scene
(JSON with an "objects" list) painted onto a transparent A4 surface of
595x842 user units, then alpha-composited onto the captured document.

The stored background is ignored and forced transparent so the overlay can
never hide the invoice underneath it.
"""

import base64
import io
import json
import logging
from typing import Any, List, Optional, Tuple

from PIL import Image, ImageDraw

from .fonts import FontBook, parse_color

logger = logging.getLogger(__name__)

SCENE_WIDTH = 595
SCENE_HEIGHT = 842

TEXT_TYPES = frozenset({"text", "i-text", "itext", "textbox"})


# ==================== PARSING ====================

def parse_scene(payload: Any) -> Optional[dict]:
    """
    Accept a serialized scene (JSON string) or an already-decoded mapping.
    Anything unusable is logged and dropped; never raises.
    """
    if payload is None or payload == "":
        return None
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            logger.warning(f"Ignoring malformed canvas data: {e}")
            return None
    if not isinstance(payload, dict):
        logger.warning(f"Ignoring canvas data of type {type(payload).__name__}")
        return None
    objects = payload.get("objects", [])
    if not isinstance(objects, list):
        logger.warning("Ignoring canvas data without an objects list")
        return None
    scene = dict(payload)
    scene["objects"] = [obj for obj in objects if isinstance(obj, dict)]
    scene["background"] = "transparent"
    return scene


def _number(obj: dict, key: str, default: float = 0.0) -> float:
    value = obj.get(key, default)
    if value is None:
        return default
    return float(value)


def _rgba(value, opacity: float) -> Optional[Tuple[int, int, int, int]]:
    rgb = parse_color(value) if isinstance(value, str) else None
    if rgb is None:
        return None
    return rgb + (int(round(255 * max(0.0, min(opacity, 1.0)))),)


def _decode_data_uri(src: str) -> Image.Image:
    if not src.startswith("data:"):
        raise ValueError("only data URI images are supported in the overlay")
    _, _, encoded = src.partition(",")
    return Image.open(io.BytesIO(base64.b64decode(encoded)))


# ==================== SURFACE ====================

class OverlayHandle:
    """
    A painted overlay surface. Owns a Pillow image until dispose() is called.
    """

    def __init__(self, scene: dict, scale: float = 2.0, fonts: Optional[FontBook] = None):
        self.scene = scene
        self.scale = scale
        self.background = "transparent"
        self.fonts = fonts or FontBook()
        self.skipped: List[str] = []
        self._surface: Optional[Image.Image] = Image.new(
            "RGBA", (round(SCENE_WIDTH * scale), round(SCENE_HEIGHT * scale)), (0, 0, 0, 0)
        )
        self._paint()

    @property
    def disposed(self) -> bool:
        return self._surface is None

    @property
    def surface(self) -> Image.Image:
        if self._surface is None:
            raise RuntimeError("Overlay has been disposed")
        return self._surface

    def dispose(self):
        if self._surface is not None:
            self._surface.close()
            self._surface = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    def render_into(self, target: Image.Image) -> Image.Image:
        """
        Composite the overlay onto target, scaled so the scene width spans
        the target width. Returns a new RGB image the size of target.
        """
        surface = self.surface
        factor = target.width / surface.width
        layer = surface.resize((target.width, max(1, round(surface.height * factor))), Image.LANCZOS)
        if layer.height > target.height:
            layer = layer.crop((0, 0, target.width, target.height))
        base = target.convert("RGBA")
        base.alpha_composite(layer, (0, 0))
        return base.convert("RGB")

    # ==================== PAINTING ====================

    def _paint(self):
        draw = ImageDraw.Draw(self._surface, "RGBA")
        for obj in self.scene.get("objects", []):
            kind = str(obj.get("type", "")).lower()
            if obj.get("visible") is False:
                continue
            painter = getattr(self, f"_draw_{kind.replace('-', '_')}", None)
            if painter is None and kind in TEXT_TYPES:
                painter = self._draw_text
            if painter is None:
                self.skipped.append(kind)
                logger.warning(f"Skipping unsupported overlay object: {kind or '<untyped>'}")
                continue
            try:
                painter(draw, obj)
            except Exception as e:
                self.skipped.append(kind)
                logger.warning(f"Skipping overlay {kind} object: {e}")

    def _bounds(self, obj: dict) -> Tuple[float, float, float, float]:
        k = self.scale
        left = _number(obj, "left") * k
        top = _number(obj, "top") * k
        width = _number(obj, "width") * _number(obj, "scaleX", 1) * k
        height = _number(obj, "height") * _number(obj, "scaleY", 1) * k
        return left, top, width, height

    def _paint_args(self, obj: dict) -> dict:
        opacity = _number(obj, "opacity", 1)
        stroke_width = _number(obj, "strokeWidth", 1)
        return {
            "fill": _rgba(obj.get("fill"), opacity),
            "outline": _rgba(obj.get("stroke"), opacity),
            "width": max(0, round(stroke_width * self.scale)) if obj.get("stroke") else 0,
        }

    def _draw_rect(self, draw, obj):
        left, top, width, height = self._bounds(obj)
        args = self._paint_args(obj)
        radius = _number(obj, "rx") * self.scale
        box = [left, top, left + width, top + height]
        if radius:
            draw.rounded_rectangle(box, radius=radius, **args)
        else:
            draw.rectangle(box, **args)

    def _draw_circle(self, draw, obj):
        k = self.scale
        left, top = _number(obj, "left") * k, _number(obj, "top") * k
        radius = _number(obj, "radius")
        box = [left, top,
               left + 2 * radius * _number(obj, "scaleX", 1) * k,
               top + 2 * radius * _number(obj, "scaleY", 1) * k]
        draw.ellipse(box, **self._paint_args(obj))

    def _draw_ellipse(self, draw, obj):
        k = self.scale
        left, top = _number(obj, "left") * k, _number(obj, "top") * k
        box = [left, top,
               left + 2 * _number(obj, "rx") * _number(obj, "scaleX", 1) * k,
               top + 2 * _number(obj, "ry") * _number(obj, "scaleY", 1) * k]
        draw.ellipse(box, **self._paint_args(obj))

    def _draw_line(self, draw, obj):
        left, top, width, height = self._bounds(obj)
        args = self._paint_args(obj)
        color = args["outline"] or args["fill"]
        if color is None:
            return
        # direction of the segment inside its bounding box
        x1, y1 = _number(obj, "x1"), _number(obj, "y1")
        x2, y2 = _number(obj, "x2"), _number(obj, "y2")
        start_x = left if x1 <= x2 else left + width
        end_x = left + width if x1 <= x2 else left
        start_y = top if y1 <= y2 else top + height
        end_y = top + height if y1 <= y2 else top
        draw.line([start_x, start_y, end_x, end_y], fill=color, width=max(1, args["width"]))

    def _draw_triangle(self, draw, obj):
        left, top, width, height = self._bounds(obj)
        points = [(left + width / 2, top), (left + width, top + height), (left, top + height)]
        draw.polygon(points, **self._paint_args(obj))

    def _draw_polygon(self, draw, obj):
        raw = obj.get("points") or []
        if len(raw) < 3:
            raise ValueError("polygon needs at least three points")
        xs = [float(p["x"]) for p in raw]
        ys = [float(p["y"]) for p in raw]
        k = self.scale
        left, top = _number(obj, "left") * k, _number(obj, "top") * k
        sx, sy = _number(obj, "scaleX", 1), _number(obj, "scaleY", 1)
        points = [(left + (x - min(xs)) * sx * k, top + (y - min(ys)) * sy * k) for x, y in zip(xs, ys)]
        draw.polygon(points, **self._paint_args(obj))

    def _draw_text(self, draw, obj):
        text = obj.get("text")
        if not text:
            return
        k = self.scale
        size = _number(obj, "fontSize", 40) * _number(obj, "scaleY", 1) * k
        bold = str(obj.get("fontWeight", "normal")) in ("bold", "600", "700", "800", "900")
        family = obj.get("fontFamily")
        font = self.fonts.get(family if isinstance(family, str) else None, size, bold)
        fill = _rgba(obj.get("fill") or "#000000", _number(obj, "opacity", 1))
        draw.multiline_text((_number(obj, "left") * k, _number(obj, "top") * k), str(text), font=font, fill=fill)

    def _draw_image(self, draw, obj):
        src = obj.get("src") or ""
        left, top, width, height = self._bounds(obj)
        with _decode_data_uri(src) as picture:
            picture = picture.convert("RGBA")
        if width <= 0 or height <= 0:
            width, height = picture.width * self.scale, picture.height * self.scale
        picture = picture.resize((max(1, round(width)), max(1, round(height))))
        opacity = _number(obj, "opacity", 1)
        if opacity < 1:
            alpha = picture.getchannel("A").point(lambda a: int(a * opacity))
            picture.putalpha(alpha)
        self._surface.alpha_composite(picture, (round(left), round(top)))


# ==================== LOADING ====================

def load_overlay(payload: Any, scale: float = 2.0, fonts: Optional[FontBook] = None) -> Optional[OverlayHandle]:
    """Build an overlay surface, or None when the payload is empty or unusable."""
    scene = parse_scene(payload)
    if scene is None:
        return None
    return OverlayHandle(scene, scale=scale, fonts=fonts)


class OverlayHost:
    """Owns at most one live overlay; loading a new one disposes the old one first."""

    def __init__(self, scale: float = 2.0, fonts: Optional[FontBook] = None):
        self.scale = scale
        self.fonts = fonts
        self.current: Optional[OverlayHandle] = None

    def mount(self, payload: Any) -> Optional[OverlayHandle]:
        self.unmount()
        self.current = load_overlay(payload, scale=self.scale, fonts=self.fonts)
        return self.current

    def unmount(self):
        if self.current is not None:
            self.current.dispose()
            self.current = None
