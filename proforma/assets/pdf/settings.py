"""
Template Settings
=================

Canonical configuration for the invoice layout: palette, typography,
spacing presets, visibility flags, section order and the optional freeform
canvas payload.

Every consumer goes through resolve(), which overlays whatever was stored
(possibly nothing, possibly stale) on top of the hardcoded defaults so that
no field is ever missing.
"""

import logging
import typing
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import UnknownSettingError

logger = logging.getLogger(__name__)

# ==================== CONSTANTS ====================

SECTION_IDS = (
    "header",
    "customer_details",
    "items_table",
    "totals",
    "bank_details",
    "terms",
    "signature",
)

FontSizeScale = Literal["small", "normal", "large"]
Spacing = Literal["compact", "normal", "relaxed"]
HeaderLayoutStyle = Literal["centered", "left-aligned", "split"]
LogoSize = Literal["small", "medium", "large", "xlarge"]
BorderStyle = Literal["none", "subtle", "medium", "bold"]

# One flag per optional element of the rendered document
VISIBILITY_FLAGS = (
    "show_logo",
    "show_gstin_header",
    "show_contact_header",
    "show_company_state",
    "show_shipping_address",
    "show_customer_email",
    "show_customer_phone",
    "show_image_column",
    "show_brand_column",
    "show_unit_column",
    "show_serial_numbers",
    "show_discount_column",
    "show_terms",
    "show_signature",
    "show_amount_words",
    "show_invoice_title",
    "show_gst",
)

MAX_TERMS_LINES = 6


# ==================== MODEL ====================

class TemplateSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Colors
    primary_color: str = "#000000"
    secondary_color: str = "#333333"
    accent_color: str = "#666666"
    header_text_color: str = "#ffffff"
    table_header_bg: str = "#f5f5f5"
    table_header_text: str = "#000000"
    table_text_color: str = "#1a1a1a"
    grand_total_bg: str = "#000000"
    grand_total_text: str = "#ffffff"
    table_border_color: str = "#d4d4d4"

    # Preset marker, informational only
    template_style: str = "clean_bw"

    # Fonts
    font_heading: str = "Inter"
    font_body: str = "Inter"
    font_mono: str = "Roboto Mono"
    font_size_scale: FontSizeScale = "normal"

    # Labels
    invoice_title: str = "PROFORMA INVOICE"
    bill_to_label: str = "Bill To"
    invoice_details_label: str = "Invoice Details"

    # Visibility
    show_logo: bool = True
    show_gstin_header: bool = True
    show_contact_header: bool = True
    show_company_state: bool = True
    show_shipping_address: bool = False
    show_customer_email: bool = True
    show_customer_phone: bool = True
    show_image_column: bool = True
    show_brand_column: bool = True
    show_unit_column: bool = True
    show_serial_numbers: bool = True
    show_discount_column: bool = True
    show_terms: bool = True
    show_signature: bool = True
    show_amount_words: bool = True
    show_invoice_title: bool = True
    show_gst: bool = True

    # Custom content
    terms_line1: Optional[str] = "Goods once sold will not be taken back."
    terms_line2: Optional[str] = "Subject to local jurisdiction only."
    terms_line3: Optional[str] = "E&OE - Errors and Omissions Excepted."
    terms_line4: Optional[str] = None
    terms_line5: Optional[str] = None
    terms_line6: Optional[str] = None
    custom_footer_text: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_no: Optional[str] = None
    bank_ifsc: Optional[str] = None
    bank_branch: Optional[str] = None

    # Layout
    section_order: List[str] = Field(default_factory=lambda: list(SECTION_IDS))

    # Spacing & sizing, compact defaults fit a single product on one page
    header_padding: Spacing = "compact"
    header_layout_style: HeaderLayoutStyle = "centered"
    logo_size: LogoSize = "small"
    section_spacing: Spacing = "compact"
    table_row_padding: Spacing = "compact"
    footer_padding: Spacing = "compact"
    compact_header: bool = True
    border_style: BorderStyle = "subtle"

    # Freeform overlay (serialized scene graph)
    custom_canvas_data: Optional[Any] = None

    @property
    def terms_lines(self) -> List[str]:
        lines = [getattr(self, f"terms_line{i}") for i in range(1, MAX_TERMS_LINES + 1)]
        return [line for line in lines if line]


def _allows_none(annotation) -> bool:
    if annotation is Any:
        return True
    return type(None) in typing.get_args(annotation)


NULLABLE_FIELDS = frozenset(
    name for name, field in TemplateSettings.model_fields.items()
    if _allows_none(field.annotation)
)


# ==================== OPERATIONS ====================

def default_settings() -> TemplateSettings:
    """Fresh default settings; callers own the returned value."""
    return TemplateSettings()


def repair_section_order(order) -> List[str]:
    """
    Return a permutation of SECTION_IDS built from a stored order.

    Unknown ids and repeats are dropped, missing ids are appended in
    canonical order.
    """
    repaired = []
    if isinstance(order, (list, tuple)):
        for section_id in order:
            if section_id in SECTION_IDS and section_id not in repaired:
                repaired.append(section_id)
    for section_id in SECTION_IDS:
        if section_id not in repaired:
            repaired.append(section_id)
    return repaired


def move_section(order, section_id: str, index: int) -> List[str]:
    """Move one section to a new position, the list form of a drag reorder."""
    order = repair_section_order(order)
    if section_id not in order:
        raise ValueError(f"Unknown section id: {section_id}")
    order.remove(section_id)
    index = max(0, min(index, len(order)))
    order.insert(index, section_id)
    return order


def resolve(partial: Union[TemplateSettings, Mapping[str, Any], None] = None) -> TemplateSettings:
    """
    Overlay a partial (or absent) settings record on the defaults.

    Only top-level keys are replaced. Invalid values fall back to the
    default for that key and are logged; they never raise.
    """
    if isinstance(partial, TemplateSettings):
        partial = partial.model_dump()
    elif partial is not None and not isinstance(partial, Mapping):
        logger.warning(f"Ignoring template settings of type {type(partial).__name__}")
        partial = None

    defaults = default_settings().model_dump()
    merged: Dict[str, Any] = dict(defaults)

    for key, value in (partial or {}).items():
        if key not in defaults:
            continue
        if value is None and key not in NULLABLE_FIELDS:
            continue
        merged[key] = value

    try:
        settings = TemplateSettings.model_validate(merged)
    except ValidationError as e:
        bad_keys = {err["loc"][0] for err in e.errors() if err.get("loc")}
        for key in bad_keys:
            logger.warning(f"Invalid template setting {key}={merged.get(key)!r}, using default")
            merged[key] = defaults[key]
        settings = TemplateSettings.model_validate(merged)

    order = repair_section_order(settings.section_order)
    if order != settings.section_order:
        logger.info(f"Repaired section order {settings.section_order} -> {order}")
        settings = settings.model_copy(update={"section_order": order})
    return settings


def update_field(current: TemplateSettings, key: str, value: Any) -> TemplateSettings:
    """
    Return a copy of current with one key replaced.

    The value is type-checked by the model; colors and labels are free-form
    strings and are accepted verbatim.
    """
    if key not in TemplateSettings.model_fields:
        raise UnknownSettingError(key)
    data = current.model_dump()
    data[key] = value
    return TemplateSettings.model_validate(data)
