"""
Template preset catalog.

Each preset carries a complete TemplateSettings value. Applying one replaces
the active settings wholesale, so nothing from the previous template (custom
canvas, bank details, reordered sections) survives the switch.
"""

import logging
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict

from .errors import PresetNotFoundError
from .settings import TemplateSettings, default_settings

logger = logging.getLogger(__name__)


class TemplatePreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    preview: str
    tags: Tuple[str, ...] = ()
    settings: TemplateSettings


def _preset(preset_id: str, name: str, description: str, preview: str, tags, **values) -> TemplatePreset:
    """Build a preset whose settings spell out every field."""
    data = default_settings().model_dump()
    data.update(values)
    data["template_style"] = preset_id
    return TemplatePreset(
        id=preset_id,
        name=name,
        description=description,
        preview=preview,
        tags=tuple(tags),
        settings=TemplateSettings.model_validate(data),
    )


PRESETS: Tuple[TemplatePreset, ...] = (
    _preset(
        "clean_bw", "Clean Black & White",
        "Plain monochrome layout that prints well on any printer",
        "linear-gradient(135deg, #000000 0%, #666666 100%)",
        ("monochrome", "print-friendly"),
    ),
    _preset(
        "bold_corporate", "Bold Corporate",
        "Deep navy with gold accents - professional and premium",
        "linear-gradient(135deg, #1e2a4a 0%, #d4a02c 100%)",
        ("corporate", "dark-header"),
        primary_color="#294172",
        secondary_color="#3b82f6",
        accent_color="#d4a02c",
        header_text_color="#ffffff",
        table_header_bg="#f3f4f6",
        table_header_text="#374151",
        table_text_color="#1f2937",
        grand_total_bg="#1e2a4a",
        grand_total_text="#ffffff",
        table_border_color="#e5e7eb",
        font_heading="Montserrat",
        font_body="Inter",
        header_layout_style="split",
        header_padding="normal",
        logo_size="medium",
        compact_header=False,
        border_style="medium",
    ),
    _preset(
        "minimal_modern", "Minimal Modern",
        "Clean black and white with subtle grays",
        "linear-gradient(135deg, #111827 0%, #6b7280 100%)",
        ("minimal",),
        primary_color="#111827",
        secondary_color="#4b5563",
        accent_color="#374151",
        header_text_color="#ffffff",
        table_header_bg="#f9fafb",
        table_header_text="#111827",
        table_text_color="#374151",
        grand_total_bg="#111827",
        grand_total_text="#ffffff",
        table_border_color="#f3f4f6",
        font_heading="Inter",
        font_body="Inter",
        header_layout_style="left-aligned",
        border_style="none",
        section_spacing="normal",
        show_image_column=False,
    ),
    _preset(
        "ocean_blue", "Ocean Blue",
        "Calm blue tones with teal accents",
        "linear-gradient(135deg, #0369a1 0%, #14b8a6 100%)",
        ("colorful", "blue"),
        primary_color="#0369a1",
        secondary_color="#0ea5e9",
        accent_color="#14b8a6",
        header_text_color="#ffffff",
        table_header_bg="#f0f9ff",
        table_header_text="#0369a1",
        table_text_color="#1e3a5f",
        grand_total_bg="#0369a1",
        grand_total_text="#ffffff",
        table_border_color="#bae6fd",
        font_heading="Montserrat",
        font_body="Inter",
        logo_size="medium",
        table_row_padding="normal",
    ),
    _preset(
        "forest_green", "Forest Green",
        "Natural green palette with earthy tones",
        "linear-gradient(135deg, #166534 0%, #84cc16 100%)",
        ("colorful", "green"),
        primary_color="#166534",
        secondary_color="#22c55e",
        accent_color="#84cc16",
        header_text_color="#ffffff",
        table_header_bg="#f0fdf4",
        table_header_text="#166534",
        table_text_color="#1a3a1a",
        grand_total_bg="#166534",
        grand_total_text="#ffffff",
        table_border_color="#bbf7d0",
        font_heading="Montserrat",
        font_body="Inter",
        header_layout_style="split",
    ),
    _preset(
        "burgundy_classic", "Burgundy Classic",
        "Rich burgundy with cream accents - elegant and timeless",
        "linear-gradient(135deg, #7f1d1d 0%, #d97706 100%)",
        ("classic",),
        primary_color="#7f1d1d",
        secondary_color="#b91c1c",
        accent_color="#d97706",
        header_text_color="#ffffff",
        table_header_bg="#fef3c7",
        table_header_text="#7f1d1d",
        table_text_color="#44403c",
        grand_total_bg="#7f1d1d",
        grand_total_text="#ffffff",
        table_border_color="#fde68a",
        font_heading="Montserrat",
        font_body="Inter",
        font_size_scale="large",
        header_padding="relaxed",
        footer_padding="normal",
        border_style="bold",
    ),
    _preset(
        "purple_royal", "Purple Royal",
        "Regal purple with violet highlights",
        "linear-gradient(135deg, #581c87 0%, #a855f7 100%)",
        ("colorful", "purple"),
        primary_color="#581c87",
        secondary_color="#7c3aed",
        accent_color="#a855f7",
        header_text_color="#ffffff",
        table_header_bg="#faf5ff",
        table_header_text="#581c87",
        table_text_color="#3b0764",
        grand_total_bg="#581c87",
        grand_total_text="#ffffff",
        table_border_color="#e9d5ff",
        font_heading="Montserrat",
        font_body="Inter",
        logo_size="large",
        compact_header=False,
    ),
)


def list_presets() -> List[TemplatePreset]:
    return list(PRESETS)


def get_preset(preset_id: str) -> TemplatePreset:
    for preset in PRESETS:
        if preset.id == preset_id:
            return preset
    raise PresetNotFoundError(preset_id)


def apply_preset(preset: TemplatePreset) -> TemplateSettings:
    """Return the preset's settings verbatim as a new, caller-owned value."""
    logger.info(f"Applying template preset: {preset.id}")
    return preset.settings.model_copy(deep=True)
