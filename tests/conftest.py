import base64
import sys
from io import BytesIO
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from PIL import Image

from app import app as flask_app


@pytest.fixture
def client():
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as test_client:
        yield test_client


def image_base64(color, size=(40, 30), fmt="PNG"):
    """Solid-color image encoded the way the browser form sends it."""
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def open_png(data):
    image = Image.open(BytesIO(data))
    image.load()
    return image


@pytest.fixture
def red_photo():
    return image_base64((200, 30, 30), size=(600, 400), fmt="JPEG")


@pytest.fixture
def blue_logo():
    return image_base64((0, 0, 255))
