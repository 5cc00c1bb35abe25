import cv2
import numpy as np
import pytest
from PIL import Image, ImageOps

from conftest import image_base64, open_png
from qr_compose import (
    AssetDecodeError,
    QRComposeError,
    apply_background,
    apply_logo,
    compose_image,
    compose_png,
    decode_asset,
    module_matrix,
    punch_light_pixels,
    render_qr,
)
from qr_request import parse_generation_request

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def module_center(content, size, row, col):
    """Pixel coordinates (x, y) of the middle of a module, quiet zone included."""
    cell = size / module_matrix(content).shape[0]
    return int((col + 0.5) * cell), int((row + 0.5) * cell)


def assert_close(pixel, expected, tolerance=12):
    assert all(abs(a - b) <= tolerance for a, b in zip(pixel[:3], expected[:3])), pixel


def test_module_matrix_has_one_module_quiet_zone():
    matrix = module_matrix("hello")

    # version 1 is 21x21 modules
    assert matrix.shape == (23, 23)
    assert not matrix[0].any()
    assert not matrix[:, 0].any()
    # top-left finder pattern starts right after the quiet zone
    assert matrix[1, 1] and matrix[4, 4]


@pytest.mark.parametrize("size", [64, 256, 333, 1024])
def test_render_qr_is_exactly_requested_size(size):
    image = render_qr("hello", size, BLACK, WHITE)
    assert image.size == (size, size)
    assert image.mode == "RGBA"


def test_render_qr_uses_requested_colors():
    size = 230
    image = render_qr("hello", size, (10, 20, 200, 255), (250, 240, 0, 255))

    assert image.getpixel((2, 2)) == (250, 240, 0, 255)
    assert image.getpixel(module_center("hello", size, 1, 1)) == (10, 20, 200, 255)


def test_decode_asset_accepts_data_urls(blue_logo):
    image = decode_asset("data:image/png;base64," + blue_logo)
    assert image.mode == "RGBA"
    assert image.size == (40, 30)


@pytest.mark.parametrize("data", ["not-base64!!", "aGVsbG8gd29ybGQ=", ""])
def test_logo_decode_failure(data):
    with pytest.raises(AssetDecodeError, match="logo"):
        apply_logo(render_qr("hello", 256, BLACK, WHITE), data)


def test_asset_errors_share_a_base_class():
    assert issubclass(AssetDecodeError, QRComposeError)


def test_logo_is_resized_and_centered(blue_logo):
    image = apply_logo(render_qr("hello", 300, BLACK, WHITE), blue_logo)

    # 30% of 300 is 90px, placed at (105, 105)
    for point in [(150, 150), (105, 105), (194, 194)]:
        assert_close(image.getpixel(point), (0, 0, 255), tolerance=2)
    assert image.getpixel((2, 2)) == WHITE
    assert image.getpixel((103, 150)) != image.getpixel((150, 150))


def test_punch_light_pixels():
    image = Image.new("RGBA", (2, 1))
    image.putpixel((0, 0), (251, 251, 251, 255))
    image.putpixel((1, 0), (251, 250, 251, 255))

    punched = punch_light_pixels(image)

    assert punched.getpixel((0, 0))[3] == 0
    assert punched.getpixel((1, 0))[3] == 255


def test_background_shows_modules_and_photo(red_photo):
    size = 230
    image = apply_background(red_photo, "hello", size, (0, 0, 128, 255))

    assert image.size == (size, size)
    assert_close(image.getpixel(module_center("hello", size, 1, 1)), (0, 0, 128))
    assert_close(image.getpixel(module_center("hello", size, 4, 4)), (0, 0, 128))
    # quiet zone and the light ring inside the finder pattern show the photo
    assert_close(image.getpixel((3, 3)), (200, 30, 30))
    assert_close(image.getpixel(module_center("hello", size, 2, 2)), (200, 30, 30))


def test_background_cover_fit_fills_the_square():
    tall = image_base64((30, 160, 30), size=(100, 400))
    image = apply_background(tall, "hello", 256, BLACK)

    assert image.size == (256, 256)
    for corner in [(1, 1), (254, 1), (1, 254), (254, 254)]:
        assert_close(image.getpixel(corner), (30, 160, 30))


def test_background_near_white_foreground_is_punched_out(red_photo):
    size = 230
    image = apply_background(red_photo, "hello", size, (252, 252, 252, 255))
    assert_close(image.getpixel(module_center("hello", size, 1, 1)), (200, 30, 30))


def test_background_decode_failure():
    with pytest.raises(AssetDecodeError, match="background"):
        apply_background("@@@@", "hello", 256, BLACK)


def test_background_mode_ignores_background_color(red_photo):
    req = parse_generation_request(
        {
            "type": "background",
            "size": 230,
            "text": "hello",
            "bgImage": red_photo,
            "backgroundColor": "#00ff00",
        }
    )
    image = compose_image(req)
    assert_close(image.getpixel((3, 3)), (200, 30, 30))


def test_compose_image_adds_center_text_badge():
    req = parse_generation_request(
        {"type": "text", "size": 512, "text": "hello", "centerText": "Hi"}
    )
    image = compose_image(req)

    # left edge of the badge disc, inside the gray rim
    assert image.getpixel((256 - 25, 256))[:3] == (250, 250, 250)


def test_compose_png_roundtrip_decodes_to_content():
    content = "https://example.com/path?q=1"
    req = parse_generation_request({"type": "url", "size": 400, "url": content})

    image = open_png(compose_png(req))
    assert image.format == "PNG"
    assert image.size == (400, 400)

    padded = ImageOps.expand(image.convert("RGB"), border=40, fill="white")
    frame = cv2.cvtColor(np.array(padded), cv2.COLOR_RGB2BGR)
    decoded, _, _ = cv2.QRCodeDetector().detectAndDecode(frame)
    assert decoded == content
