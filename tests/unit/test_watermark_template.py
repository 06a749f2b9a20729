from __future__ import annotations

import pytest

from src.watermark.template import DEFAULT_BOTTOM_MARGIN_PX, LABEL_PLACEHOLDER, WatermarkTemplate


class TestWatermarkTemplate:
    def test_defaults(self):
        template = WatermarkTemplate()
        assert template.pattern == LABEL_PLACEHOLDER
        assert template.bottom_margin == DEFAULT_BOTTOM_MARGIN_PX == 192
        assert template.font_size == 120
        assert template.jpeg_quality == 90

    def test_build_label_substitutes_once(self):
        template = WatermarkTemplate(pattern="Shop - {{PRODUCT_NAME}}")
        assert template.build_label("Gold Ring") == "Shop - Gold Ring"

    @pytest.mark.parametrize("pattern", ["no placeholder", "{{PRODUCT_NAME}} {{PRODUCT_NAME}}"])
    def test_pattern_needs_exactly_one_placeholder(self, pattern):
        with pytest.raises(ValueError):
            WatermarkTemplate(pattern=pattern)

    def test_from_bytes_parses_document(self):
        template = WatermarkTemplate.from_bytes(
            b'{"pattern": "(c) {{PRODUCT_NAME}}", "font_size": 64, "fill": "#ff000080", "bottom_margin": 50}'
        )
        assert template.pattern == "(c) {{PRODUCT_NAME}}"
        assert template.font_size == 64
        assert template.fill == (255, 0, 0, 128)
        assert template.bottom_margin == 50

    def test_from_bytes_empty_document_uses_defaults(self):
        assert WatermarkTemplate.from_bytes(b"") == WatermarkTemplate()

    def test_from_bytes_overrides_win_and_none_is_ignored(self):
        template = WatermarkTemplate.from_bytes(b'{"jpeg_quality": 70}', jpeg_quality=85, font_path=None)
        assert template.jpeg_quality == 85
        assert template.font_path is None

    def test_from_bytes_rgb_list_gets_opaque_alpha(self):
        assert WatermarkTemplate.from_bytes(b'{"fill": [10, 20, 30]}').fill == (10, 20, 30, 255)

    @pytest.mark.parametrize("data", [b"{not json", b"[1, 2]", b'{"fill": "#12"}', b'{"fill": [300, 0, 0]}'])
    def test_from_bytes_rejects_invalid_documents(self, data):
        with pytest.raises(ValueError):
            WatermarkTemplate.from_bytes(data)
