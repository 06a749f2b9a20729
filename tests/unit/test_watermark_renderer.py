"""
Watermark rendering tests.

Run with: python -m pytest tests/unit/test_watermark_renderer.py -v
"""
from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from src.pipeline.errors import RenderError
from src.watermark.renderer import WatermarkRenderer
from src.watermark.template import WatermarkTemplate

from tests.helpers import make_image_bytes


def decode(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"
        return np.asarray(img.convert("L"))


class TestWatermarkRenderer:
    def test_output_keeps_dimensions(self, renderer):
        output = renderer.render(make_image_bytes(400, 300), "Ring")
        with Image.open(io.BytesIO(output)) as img:
            assert img.size == (400, 300)
            assert img.format == "JPEG"

    def test_label_lands_above_bottom_margin_and_centered(self, renderer):
        pixels = decode(renderer.render(make_image_bytes(400, 400), "Ring"))

        baseline = 400 - 192
        band = pixels[baseline - 40:baseline + 1, :]
        assert band.max() > 200

        # Nothing drawn well below the text's bottom edge
        assert pixels[baseline + 16:, :].max() < 60

        cols = np.where(band.max(axis=0) > 200)[0]
        center = (cols.min() + cols.max()) / 2
        assert abs(center - 200) < 10

    def test_rendering_is_deterministic(self, renderer):
        source = make_image_bytes(320, 320)
        assert renderer.render(source, "Necklace") == renderer.render(source, "Necklace")

    def test_short_image_keeps_label_visible(self, renderer):
        pixels = decode(renderer.render(make_image_bytes(300, 60), "Ring"))
        assert pixels.max() > 200

    def test_template_pattern_wraps_label(self):
        plain = WatermarkRenderer(WatermarkTemplate(font_size=24))
        branded = WatermarkRenderer(WatermarkTemplate(pattern="(c) {{PRODUCT_NAME}} 2024", font_size=24))
        source = make_image_bytes(400, 400)
        assert plain.render(source, "Ring") != branded.render(source, "Ring")

    def test_jpeg_source_is_accepted(self, renderer):
        output = renderer.render(make_image_bytes(200, 250, fmt="JPEG", color=(20, 40, 60)), "Bracelet")
        assert decode(output).shape == (250, 200)

    def test_undecodable_input_raises(self, renderer):
        with pytest.raises(RenderError):
            renderer.render(b"definitely not an image", "Ring")

    def test_empty_input_raises(self, renderer):
        with pytest.raises(RenderError):
            renderer.render(b"", "Ring")

    @pytest.mark.parametrize("label", ["", "   "])
    def test_blank_label_raises(self, renderer, label):
        with pytest.raises(RenderError):
            renderer.render(make_image_bytes(), label)

    def test_missing_font_file_raises_render_error(self):
        renderer = WatermarkRenderer(WatermarkTemplate(font_path="/nonexistent/font.ttf", font_size=24))
        with pytest.raises(RenderError):
            renderer.render(make_image_bytes(), "Ring")
