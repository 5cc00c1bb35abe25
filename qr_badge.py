"""
Center-text badge drawn over a finished QR image.

The badge is a near-white disc with a thin gray rim and one or more lines of
text centered on it. Its radius is estimated from the text block and capped at
12% of the image size, so the code keeps enough intact modules to scan at
error level M.
"""

import logging
from typing import List, Sequence

from PIL import Image, ImageDraw, ImageFont

from qr_request import RGBA

logger = logging.getLogger(__name__)

LINE_HEIGHT_RATIO = 1.2
PADDING_RATIO = 0.8
CHAR_WIDTH_RATIO = 0.6
# Upper bound on the badge radius as a fraction of the image size.
MAX_RADIUS_RATIO = 0.12

BADGE_FILL: RGBA = (250, 250, 250, 255)
BADGE_STROKE: RGBA = (128, 128, 128, 255)
BADGE_STROKE_WIDTH = 2

NEAR_WHITE = 240
BLACK: RGBA = (0, 0, 0, 255)

_FONT_FILES = {
    False: "DejaVuSans.ttf",
    True: "DejaVuSans-Bold.ttf",
}


def split_lines(text: str) -> List[str]:
    return text.replace("\r\n", "\n").split("\n")


def badge_radius(lines: Sequence[str], font_size: int, pixel_size: int) -> float:
    """
    Estimate the radius that fits the text block, capped at 12% of pixel_size.

    Text width is estimated from character count rather than measured, so the
    result only depends on the request and not on the installed fonts.
    """
    line_height = font_size * LINE_HEIGHT_RATIO
    total_height = len(lines) * line_height
    padding = font_size * PADDING_RATIO
    max_line_length = max((len(line) for line in lines), default=0)
    estimated_width = max_line_length * font_size * CHAR_WIDTH_RATIO

    radius = max(total_height / 2 + padding, estimated_width / 2 + padding)
    return min(radius, pixel_size * MAX_RADIUS_RATIO)


def legible_text_color(color: RGBA) -> RGBA:
    """Swap white and near-white text for black; the badge itself is white."""
    if all(channel >= NEAR_WHITE for channel in color[:3]):
        return BLACK
    return color


def load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(_FONT_FILES[bold], size)
    except OSError:
        logger.debug("%s not found, using Pillow's default font", _FONT_FILES[bold])
        return ImageFont.load_default(size=size)


def draw_badge(
    size: int,
    lines: Sequence[str],
    *,
    font_size: int,
    color: RGBA,
    bold: bool = False,
) -> Image.Image:
    """Draw the badge on a transparent layer the size of the QR image."""
    layer = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)

    center = size / 2
    radius = badge_radius(lines, font_size, size)
    draw.ellipse(
        [center - radius, center - radius, center + radius, center + radius],
        fill=BADGE_FILL,
        outline=BADGE_STROKE,
        width=BADGE_STROKE_WIDTH,
    )

    font = load_font(font_size, bold)
    fill = legible_text_color(color)
    line_height = font_size * LINE_HEIGHT_RATIO
    top = center - len(lines) * line_height / 2
    for index, line in enumerate(lines):
        if not line:
            continue
        y = top + (index + 0.5) * line_height
        draw.text((center, y), line, font=font, fill=fill, anchor="mm")
    return layer


def apply_center_text(
    image: Image.Image,
    text: str,
    *,
    font_size: int,
    color: RGBA,
    bold: bool = False,
) -> Image.Image:
    """
    Composite a center-text badge over image.

    Rendering problems are logged and the image is returned without the badge;
    the badge never fails a request.
    """
    if not text or not text.strip():
        return image
    try:
        base = image.convert("RGBA")
        layer = draw_badge(
            base.width,
            split_lines(text),
            font_size=font_size,
            color=color,
            bold=bold,
        )
        return Image.alpha_composite(base, layer)
    except Exception:
        logger.exception("Failed to render center text, returning image without badge")
        return image
