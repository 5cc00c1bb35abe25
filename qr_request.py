import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from PIL import ImageColor

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

MIN_PIXEL_SIZE = 32
MAX_PIXEL_SIZE = 4096

DEFAULT_FOREGROUND = "#000000"
DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_CENTER_TEXT_COLOR = "#000000"
DEFAULT_CENTER_TEXT_SIZE = 24

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_TRUTHY = {"true", "1", "on", "yes"}


class ValidationError(ValueError):
    """Raised when a generation payload is missing or has malformed fields."""


class Mode(str, Enum):
    TEXT = "text"
    URL = "url"
    LOGO = "logo"
    BACKGROUND = "background"


@dataclass(frozen=True)
class GenerationRequest:
    mode: Mode
    content: str
    pixel_size: int
    foreground_color: RGBA = (0, 0, 0, 255)
    background_color: RGBA = (255, 255, 255, 255)
    logo_image: Optional[str] = None
    background_image: Optional[str] = None
    center_text: Optional[str] = None
    center_text_color: RGBA = (0, 0, 0, 255)
    center_text_size: int = DEFAULT_CENTER_TEXT_SIZE
    center_text_bold: bool = False

    @property
    def has_center_text(self) -> bool:
        return bool(self.center_text and self.center_text.strip())


def parse_color(value: Any, field: str, default: str) -> RGBA:
    """
    Parse a hex color string into an RGBA tuple.
    Empty or missing values fall back to the default color.
    """
    if value is None or value == "":
        value = default
    if not isinstance(value, str) or not _HEX_COLOR.match(value.strip()):
        raise ValidationError(f"Invalid color for {field}: {value}")
    return ImageColor.getcolor(value.strip(), "RGBA")


def _parse_size(raw: Any) -> int:
    message = f"Size must be an integer between {MIN_PIXEL_SIZE} and {MAX_PIXEL_SIZE}"
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise ValidationError(message)
    try:
        size = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(message) from None
    if not MIN_PIXEL_SIZE <= size <= MAX_PIXEL_SIZE:
        raise ValidationError(message)
    return size


def _parse_font_size(raw: Any) -> int:
    if raw is None or raw == "":
        return DEFAULT_CENTER_TEXT_SIZE
    try:
        font_size = int(raw)
    except (TypeError, ValueError):
        font_size = 0
    if isinstance(raw, bool) or font_size <= 0:
        logger.warning(
            "Ignoring centerTextSize %r, using %d", raw, DEFAULT_CENTER_TEXT_SIZE
        )
        return DEFAULT_CENTER_TEXT_SIZE
    return font_size


def _parse_center_text_color(raw: Any) -> RGBA:
    try:
        return parse_color(raw, "centerTextColor", DEFAULT_CENTER_TEXT_COLOR)
    except ValidationError:
        logger.warning(
            "Ignoring centerTextColor %r, using %s", raw, DEFAULT_CENTER_TEXT_COLOR
        )
        return parse_color(None, "centerTextColor", DEFAULT_CENTER_TEXT_COLOR)


def _parse_flag(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in _TRUTHY
    return bool(raw)


def _resolve_content(mode: Mode, payload: Dict[str, Any]) -> str:
    text = payload.get("text") or ""
    url = payload.get("url") or ""

    if mode is Mode.TEXT:
        if not text:
            raise ValidationError("Text is required for text type")
        return text
    if mode is Mode.URL:
        if not url:
            raise ValidationError("URL is required for url type")
        return url
    if mode is Mode.LOGO and not payload.get("logo"):
        raise ValidationError("Logo is required for logo type")
    if mode is Mode.BACKGROUND and not payload.get("bgImage"):
        raise ValidationError("Background image is required for background type")

    content = text or url
    if not content:
        raise ValidationError("Text or URL is required for logo and background types")
    return content


def parse_generation_request(payload: Dict[str, Any]) -> GenerationRequest:
    """
    Turn a raw JSON payload into a GenerationRequest.

    Checks run in a fixed order so the first problem reported is always the
    most fundamental one: type/size presence, then the mode-specific fields,
    then content resolution, then colors. Center text options fall back to
    their defaults instead of failing.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Missing required fields: type and size")

    raw_type = payload.get("type")
    raw_size = payload.get("size")
    if not raw_type or not raw_size:
        raise ValidationError("Missing required fields: type and size")

    try:
        mode = Mode(raw_type)
    except ValueError:
        raise ValidationError(f"Unsupported type: {raw_type}") from None

    pixel_size = _parse_size(raw_size)
    content = _resolve_content(mode, payload)

    center_text = payload.get("centerText")
    if center_text is not None and not isinstance(center_text, str):
        center_text = str(center_text)

    # Center text options only matter when there is a badge to draw, and a
    # bad option never fails the request.
    badge_options = {}
    if center_text and center_text.strip():
        badge_options = {
            "center_text": center_text,
            "center_text_color": _parse_center_text_color(payload.get("centerTextColor")),
            "center_text_size": _parse_font_size(payload.get("centerTextSize")),
            "center_text_bold": _parse_flag(payload.get("centerTextBold")),
        }

    return GenerationRequest(
        mode=mode,
        content=content,
        pixel_size=pixel_size,
        foreground_color=parse_color(payload.get("color"), "color", DEFAULT_FOREGROUND),
        background_color=parse_color(
            payload.get("backgroundColor"), "backgroundColor", DEFAULT_BACKGROUND
        ),
        logo_image=payload.get("logo") if mode is Mode.LOGO else None,
        background_image=payload.get("bgImage") if mode is Mode.BACKGROUND else None,
        **badge_options,
    )
