"""Broken-circle captcha image rendering (Pillow).

Every circle is drawn with the same stroke through ``ImageDraw.arc``; the
broken one simply spans less than 360 degrees. The image is drawn at 2x and
downsampled so stroke ends are anti-aliased the same way everywhere.
"""

import base64
import io
from typing import Sequence

from PIL import Image, ImageDraw

from schemas.models.challenge import Circle

GAP_DEGREES = 40
STROKE_WIDTH = 3
SUPERSAMPLE = 2

BACKGROUND = (246, 250, 243)
STROKE = (46, 94, 62)


def render_challenge_png(
    circles: Sequence[Circle],
    width: int,
    height: int,
) -> bytes:
    """Render *circles* onto a ``width`` x ``height`` canvas, return PNG bytes."""
    s = SUPERSAMPLE
    image = Image.new("RGB", (width * s, height * s), BACKGROUND)
    draw = ImageDraw.Draw(image)

    for circle in circles:
        bbox = [
            (circle.x - circle.radius) * s,
            (circle.y - circle.radius) * s,
            (circle.x + circle.radius) * s,
            (circle.y + circle.radius) * s,
        ]
        if circle.is_broken:
            start = circle.gap_rotation_degrees + GAP_DEGREES / 2
            end = start + 360 - GAP_DEGREES
        else:
            start, end = 0, 360
        draw.arc(bbox, start=start, end=end, fill=STROKE, width=STROKE_WIDTH * s)

    image = image.resize((width, height), Image.Resampling.LANCZOS)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def png_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
