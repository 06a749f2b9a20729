from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


LABEL_PLACEHOLDER = "{{PRODUCT_NAME}}"

# 2 inches at 96 DPI
DEFAULT_BOTTOM_MARGIN_PX = 2 * 96


@dataclass(frozen=True)
class WatermarkTemplate:
    """
    Overlay description for the watermark renderer.

    `pattern` holds exactly one LABEL_PLACEHOLDER which is replaced by the
    product name at render time.
    """
    pattern: str = LABEL_PLACEHOLDER
    font_path: Optional[str] = None
    font_size: int = 120
    fill: Tuple[int, int, int, int] = (255, 255, 255, 255)
    bottom_margin: int = DEFAULT_BOTTOM_MARGIN_PX
    jpeg_quality: int = 90

    def __post_init__(self):
        if self.pattern.count(LABEL_PLACEHOLDER) != 1:
            raise ValueError(f"Watermark pattern must contain exactly one {LABEL_PLACEHOLDER} placeholder")
        if self.font_size <= 0:
            raise ValueError("font_size must be positive")
        if self.bottom_margin < 0:
            raise ValueError("bottom_margin must not be negative")
        if not (1 <= self.jpeg_quality <= 100):
            raise ValueError("jpeg_quality must be between 1 and 100")

    def build_label(self, product_name: str) -> str:
        return self.pattern.replace(LABEL_PLACEHOLDER, product_name)

    @classmethod
    def from_bytes(cls, data: bytes, **overrides) -> "WatermarkTemplate":
        """
        Build a template from a JSON document.

        Example:
            {"pattern": "© {{PRODUCT_NAME}}", "font_size": 96, "fill": [255, 255, 255, 200]}

        Keyword overrides take precedence over the document, None values are ignored.
        """
        try:
            raw = json.loads(data.decode("utf-8")) if data.strip() else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid watermark template: {e}") from e

        if not isinstance(raw, dict):
            raise ValueError("Watermark template must be a JSON object")

        known = {"pattern", "font_path", "font_size", "fill", "bottom_margin", "jpeg_quality"}
        unknown = set(raw) - known
        if unknown:
            logger.warning(f"Ignoring unknown watermark template keys: {sorted(unknown)}")

        fields = {k: v for k, v in raw.items() if k in known}
        if "fill" in fields:
            fields["fill"] = _parse_fill(fields["fill"])

        template = cls(**fields)
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(template, **overrides) if overrides else template


def _parse_fill(value) -> Tuple[int, int, int, int]:
    if isinstance(value, str):
        value = value.lstrip("#")
        if len(value) == 6:
            value += "ff"
        if len(value) != 8:
            raise ValueError(f"Invalid fill color: #{value}")
        return tuple(int(value[i:i + 2], 16) for i in range(0, 8, 2))

    channels = [int(c) for c in value]
    if len(channels) == 3:
        channels.append(255)
    if len(channels) != 4 or any(c < 0 or c > 255 for c in channels):
        raise ValueError(f"Invalid fill color: {value}")
    return tuple(channels)
