from __future__ import annotations

import io
import logging
from typing import Dict

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from src.pipeline.errors import RenderError
from src.watermark.template import WatermarkTemplate


logger = logging.getLogger(__name__)


class WatermarkRenderer:
    """
    Burns a text label into the bottom-center area of an image.

    The renderer holds no per-request state. Output depends only on the input
    bytes, the label and the injected template.
    """

    def __init__(self, template: WatermarkTemplate):
        self.template = template
        self._cached_fonts: Dict[int, ImageFont.FreeTypeFont] = {}

    def _get_font(self, size: int):
        if size not in self._cached_fonts:
            if self.template.font_path:
                # A configured font that fails to load is a deployment error, surface it
                self._cached_fonts[size] = ImageFont.truetype(self.template.font_path, size)
            else:
                try:
                    self._cached_fonts[size] = ImageFont.truetype("DejaVuSerif-Bold.ttf", size)
                except OSError:
                    self._cached_fonts[size] = ImageFont.load_default(size=size)
        return self._cached_fonts[size]

    def render(self, image_data: bytes, label: str) -> bytes:
        """
        Overlay `label` onto the image and return the JPEG-encoded composite.

        Raises:
            RenderError: If the image cannot be decoded or the label cannot be drawn
        """
        if not label or not label.strip():
            raise RenderError("Watermark label must not be empty")

        try:
            source = Image.open(io.BytesIO(image_data))
            source.load()
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            raise RenderError(f"Failed to decode image: {e}", cause=e) from e

        text = self.template.build_label(label.strip())
        width, height = source.size

        try:
            font = self._get_font(self.template.font_size)
            overlay = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            draw = ImageDraw.Draw(overlay)

            left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
            text_width = right - left

            x = (width - text_width) / 2 - left
            y = (height - self.template.bottom_margin) - bottom
            # Short images would push the text above the canvas
            y = max(y, -top)

            draw.text((x, y), text, font=font, fill=self.template.fill)

            composite = Image.alpha_composite(source.convert("RGBA"), overlay).convert("RGB")

            output = io.BytesIO()
            composite.save(output, format="JPEG", quality=self.template.jpeg_quality)
        except (OSError, ValueError, UnicodeEncodeError) as e:
            raise RenderError(f"Failed to embed watermark label: {e}", cause=e) from e
        finally:
            source.close()

        logger.debug(f"Rendered watermark '{text}' onto {width}x{height} image")
        return output.getvalue()
