import base64
import logging
from io import BytesIO

import numpy as np
import qrcode
from PIL import Image, ImageOps
from qrcode.constants import ERROR_CORRECT_M

from qr_badge import apply_center_text
from qr_request import RGBA, GenerationRequest, Mode

logger = logging.getLogger(__name__)

QUIET_ZONE_MODULES = 1
LOGO_RATIO = 0.3
# Pixels lighter than this on every channel are punched out in background mode.
# Near-white foreground colors get punched out too.
CHROMA_KEY_THRESHOLD = 250
WHITE: RGBA = (255, 255, 255, 255)

# Pillow raises OSError (UnidentifiedImageError) for undecodable data and
# ValueError for bad geometry; binascii.Error is a ValueError as well.
_ASSET_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


class QRComposeError(Exception):
    """Base class for failures while building the QR image."""


class AssetDecodeError(QRComposeError):
    """Raised when an uploaded logo or background image cannot be used."""


def module_matrix(content: str) -> np.ndarray:
    """
    Encode content and return its module grid, quiet zone included.
    True marks a dark module.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=1,
        border=QUIET_ZONE_MODULES,
    )
    qr.add_data(content)
    qr.make(fit=True)
    return np.array(qr.get_matrix(), dtype=bool)


def render_qr(content: str, size: int, foreground: RGBA, background: RGBA) -> Image.Image:
    """Render content as a square RGBA QR image of exactly size x size pixels."""
    matrix = module_matrix(content)
    pixels = np.empty(matrix.shape + (4,), dtype=np.uint8)
    pixels[...] = background
    pixels[matrix] = foreground
    return Image.fromarray(pixels).resize((size, size), Image.NEAREST)


def decode_asset(data: str) -> Image.Image:
    """
    Decode a base64 image (optionally a data URL) into an RGBA image.
    EXIF orientation is applied so photos come out upright.
    """
    if not isinstance(data, str):
        raise ValueError("image data must be a base64 string")
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    raw = base64.b64decode(data)
    image = Image.open(BytesIO(raw))
    image = ImageOps.exif_transpose(image)
    return image.convert("RGBA")


def punch_light_pixels(image: Image.Image, threshold: int = CHROMA_KEY_THRESHOLD) -> Image.Image:
    pixels = np.array(image.convert("RGBA"))
    light = (pixels[..., :3] > threshold).all(axis=-1)
    pixels[light, 3] = 0
    return Image.fromarray(pixels)


def apply_logo(image: Image.Image, logo_data: str) -> Image.Image:
    """Paste the logo, resized to 30% of the code, over the middle of the image."""
    size = image.width
    try:
        logo = decode_asset(logo_data)
        logo_size = int(size * LOGO_RATIO)
        logo = logo.resize((logo_size, logo_size), Image.LANCZOS)
        offset = (size - logo_size) // 2
        image.alpha_composite(logo, (offset, offset))
    except _ASSET_ERRORS as exc:
        logger.exception("Error processing logo")
        raise AssetDecodeError("Failed to process logo image") from exc
    return image


def apply_background(photo_data: str, content: str, size: int, foreground: RGBA) -> Image.Image:
    """
    Cover-fit the photo to the output square and lay the dark modules on top.

    The QR copy is rendered on white and every near-white pixel is made
    transparent, so the quiet zone and light modules show the photo.
    """
    try:
        photo = decode_asset(photo_data)
        photo = ImageOps.fit(photo, (size, size), Image.LANCZOS)
        overlay = punch_light_pixels(render_qr(content, size, foreground, WHITE))
        photo.alpha_composite(overlay)
    except _ASSET_ERRORS as exc:
        logger.exception("Error processing background")
        raise AssetDecodeError("Failed to process background image") from exc
    return photo


def compose_image(req: GenerationRequest) -> Image.Image:
    if req.mode is Mode.BACKGROUND:
        image = apply_background(
            req.background_image, req.content, req.pixel_size, req.foreground_color
        )
    else:
        image = render_qr(
            req.content, req.pixel_size, req.foreground_color, req.background_color
        )
        if req.mode is Mode.LOGO:
            image = apply_logo(image, req.logo_image)

    if req.has_center_text:
        image = apply_center_text(
            image,
            req.center_text,
            font_size=req.center_text_size,
            color=req.center_text_color,
            bold=req.center_text_bold,
        )
    return image


def compose_png(req: GenerationRequest) -> bytes:
    """Build the final image for a request and return it PNG-encoded."""
    buffer = BytesIO()
    compose_image(req).save(buffer, format="PNG")
    return buffer.getvalue()
