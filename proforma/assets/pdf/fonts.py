"""
Fonts and colors shared by the raster capture and the overlay surface.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import ImageColor, ImageFont

from proforma.config import Config

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# ==================== COLORS ====================

_bad_colors = set()


def parse_color(value: Optional[str], fallback: Optional[RGB] = None) -> Optional[RGB]:
    """CSS color string to RGB; unparseable colors fall back with a warning."""
    if not value or value == "transparent":
        return fallback
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError:
        if value not in _bad_colors:
            _bad_colors.add(value)
            logger.warning(f"Unparseable color {value!r}, using fallback")
        return fallback
    return tuple(rgb[:3])


# ==================== FONTS ====================

class FontBook:
    """
    TrueType lookup by family name.

    Tries FONT_DIR/<Family>-<Weight>.ttf, then DejaVu (system or FONT_DIR),
    then Pillow's built-in font.
    """

    def __init__(self, font_dir: Optional[str] = None):
        self.font_dir = Path(font_dir or Config.FONT_DIR)
        self._cache = {}
        self._missing = set()

    def get(self, family: Optional[str], size: float, bold: bool = False, mono: bool = False):
        size = max(1, int(round(size)))
        key = (family, size, bold, mono)
        font = self._cache.get(key)
        if font is None:
            font = self._load(family, size, bold, mono)
            self._cache[key] = font
        return font

    def _candidates(self, family: Optional[str], bold: bool, mono: bool) -> List[str]:
        names = []
        # only alphanumerics reach the file name
        stem = re.sub(r"[^A-Za-z0-9]", "", family) if isinstance(family, str) else ""
        if stem:
            names += [f"{stem}-{'Bold' if bold else 'Regular'}.ttf", f"{stem}.ttf"]
        base = "DejaVuSansMono" if mono else "DejaVuSans"
        if bold:
            names.append(f"{base}-Bold.ttf")
        names.append(f"{base}.ttf")
        return names

    def _load(self, family, size, bold, mono):
        for name in self._candidates(family, bold, mono):
            for path in (self.font_dir / name, name):
                try:
                    return ImageFont.truetype(str(path), size)
                except OSError:
                    continue
        if family not in self._missing:
            self._missing.add(family)
            logger.warning(f"No TrueType font found for {family!r}, using Pillow default font")
        return ImageFont.load_default(size=size)


def wrap_text(text: str, font, width: float) -> List[str]:
    lines = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if font.getlength(candidate) <= width:
                current = candidate
                continue
            if current:
                lines.append(current)
            pieces = _split_long(word, font, width)
            lines.extend(pieces[:-1])
            current = pieces[-1]
        lines.append(current)
    return lines


def _split_long(word: str, font, width: float) -> List[str]:
    chunks = []
    chunk = ""
    for ch in word:
        if chunk and font.getlength(chunk + ch) > width:
            chunks.append(chunk)
            chunk = ch
        else:
            chunk += ch
    chunks.append(chunk)
    return chunks

