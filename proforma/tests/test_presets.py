"""
Template preset catalog tests
Tests: catalog contents, lookup, total replacement on apply
"""

import pytest

from proforma.assets.pdf.errors import PresetNotFoundError
from proforma.assets.pdf.presets import PRESETS, apply_preset, get_preset, list_presets
from proforma.assets.pdf.settings import SECTION_IDS, TemplateSettings, resolve, update_field


class TestCatalog:
    """Static preset catalog"""

    def test_catalog_ids_unique(self):
        ids = [preset.id for preset in list_presets()]
        assert len(ids) == len(set(ids)) == len(PRESETS)
        assert "clean_bw" in ids
        print(f"✓ {len(ids)} presets: {ids}")

    @pytest.mark.parametrize("preset", PRESETS, ids=lambda p: p.id)
    def test_preset_settings_complete(self, preset):
        """Every preset spells out a full, already-resolved settings value"""
        assert isinstance(preset.settings, TemplateSettings)
        assert resolve(preset.settings) == preset.settings
        assert preset.settings.template_style == preset.id
        assert sorted(preset.settings.section_order) == sorted(SECTION_IDS)

    def test_get_preset(self):
        assert get_preset("ocean_blue").name == "Ocean Blue"

    def test_get_unknown_preset(self):
        with pytest.raises(PresetNotFoundError):
            get_preset("neon_pink")

    def test_list_is_a_copy(self):
        presets = list_presets()
        presets.clear()
        assert len(list_presets()) == len(PRESETS)


class TestApplyPreset:
    """Applying a preset replaces everything"""

    @pytest.fixture
    def customized(self):
        settings = resolve({
            "primary_color": "#ff00ff",
            "show_logo": False,
            "bank_name": "State Bank of India",
            "terms_line5": "Custom term",
            "custom_footer_text": "Thank you!",
            "custom_canvas_data": {"objects": [{"type": "rect", "width": 10, "height": 10}]},
            "font_size_scale": "small",
        })
        return update_field(settings, "section_order", list(reversed(SECTION_IDS)))

    @pytest.mark.parametrize("preset", PRESETS, ids=lambda p: p.id)
    def test_apply_is_total_replacement(self, customized, preset):
        """No field of the previous settings survives"""
        applied = apply_preset(preset)
        for name in TemplateSettings.model_fields:
            assert getattr(applied, name) == getattr(preset.settings, name), name
        assert applied.custom_canvas_data is None
        assert applied.bank_name is None
        assert applied.section_order == list(SECTION_IDS)
        assert applied != customized
        print(f"✓ {preset.id} replaced all fields")

    def test_applied_value_is_independent(self):
        preset = get_preset("bold_corporate")
        applied = apply_preset(preset)
        applied.section_order.reverse()
        assert preset.settings.section_order == list(SECTION_IDS)
