"""Watermark compositor.

Provides a small OOP wrapper around Pillow that stamps a watermark onto a
product photo. The arithmetic is kept in `compute_layout` so every caller
(upload pipeline, previews, tests) places the watermark identically.

Public class: `WatermarkCompositor`

Example:
    compositor = WatermarkCompositor(spec)
    jpeg_bytes = compositor.apply(photo_bytes)
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Tuple

from PIL import Image

from models.store_settings import PLACEMENTS, WatermarkSpec

WHITE = (255, 255, 255)
JPEG_QUALITY = 90


@dataclass(frozen=True)
class WatermarkLayout:
    """Resolved watermark size and top-left anchor in base-image pixels."""

    width: int
    height: int
    x: int
    y: int


def _clamp(value: float, upper: int) -> int:
    return max(0, min(int(round(value)), max(upper, 0)))


def compute_layout(
    base_size: Tuple[int, int],
    watermark_size: Tuple[int, int],
    placement: str,
    scale_pct: float,
    padding_pct: float,
) -> WatermarkLayout:
    """Compute the scaled watermark size and its anchor on the base image.

    The watermark width is `scale_pct` percent of the base width with its
    height scaled proportionally. Padding is `padding_pct` percent of the base
    width (x) and height (y). The anchor is clamped so the watermark always
    lies inside the base image.

    Raises:
        ValueError: If the placement is unknown or a size is not positive.
    """
    if placement not in PLACEMENTS:
        raise ValueError(f"Unsupported watermark placement '{placement}'.")
    base_w, base_h = base_size
    src_w, src_h = watermark_size
    if min(base_w, base_h, src_w, src_h) <= 0:
        raise ValueError("Image dimensions must be positive.")

    wm_w = max(1, int(round(base_w * scale_pct / 100.0)))
    wm_h = max(1, int(round(src_h * (wm_w / src_w))))

    padding_x = base_w * padding_pct / 100.0
    padding_y = base_h * padding_pct / 100.0

    if placement == "bottom-right":
        x, y = base_w - wm_w - padding_x, base_h - wm_h - padding_y
    elif placement == "bottom-left":
        x, y = padding_x, base_h - wm_h - padding_y
    elif placement == "top-right":
        x, y = base_w - wm_w - padding_x, padding_y
    elif placement == "top-left":
        x, y = padding_x, padding_y
    else:
        x, y = (base_w - wm_w) / 2.0, (base_h - wm_h) / 2.0

    return WatermarkLayout(
        width=wm_w,
        height=wm_h,
        x=_clamp(x, base_w - wm_w),
        y=_clamp(y, base_h - wm_h),
    )


class WatermarkCompositor:
    """Composite a watermark onto encoded image bytes.

    Args:
        spec: Watermark image and layout options.
    """

    def __init__(self, spec: WatermarkSpec) -> None:
        self.spec = spec
        try:
            watermark = Image.open(io.BytesIO(spec.image_bytes))
            watermark.load()
        except Exception as exc:
            raise ValueError("Watermark bytes are not a supported image format") from exc
        self._watermark = watermark.convert("RGBA")

    def apply(self, image_bytes: bytes) -> bytes:
        """Return JPEG bytes of `image_bytes` with the watermark applied.

        Raises:
            ValueError: If the base image cannot be decoded.
        """
        try:
            src = Image.open(io.BytesIO(image_bytes))
            src.load()
        except Exception as exc:
            raise ValueError("Image bytes are not a supported image format") from exc

        # Flatten onto white so transparent regions do not turn black in JPEG.
        src = src.convert("RGBA")
        canvas = Image.new("RGBA", src.size, WHITE + (255,))
        canvas.alpha_composite(src)

        layout = compute_layout(
            canvas.size,
            self._watermark.size,
            self.spec.placement,
            self.spec.scale_pct,
            self.spec.padding_pct,
        )
        mark = self._watermark.resize((layout.width, layout.height), Image.LANCZOS)
        mark.putalpha(self._scaled_alpha(mark))

        canvas.alpha_composite(mark, dest=(layout.x, layout.y))

        out_io = io.BytesIO()
        canvas.convert("RGB").save(out_io, format="JPEG", quality=JPEG_QUALITY)
        return out_io.getvalue()

    def _scaled_alpha(self, mark: Image.Image) -> Image.Image:
        opacity = min(max(self.spec.opacity_fraction, 0.0), 1.0)
        return mark.getchannel("A").point(lambda value: int(round(value * opacity)))
