import base64
import io

import pytest
from PIL import Image

from roomcheck.config import get_settings
from roomcheck.schemas import Attachment


def encode_image(img: Image.Image, fmt: str = "JPEG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def checklist():
    return get_settings().checklist


@pytest.fixture
def jpeg_bytes():
    """A phone-sized 1920x1440 solid-color JPEG."""
    return encode_image(Image.new("RGB", (1920, 1440), color=(70, 130, 180)))


@pytest.fixture
def small_png_bytes():
    """A 200x150 PNG with an alpha channel."""
    return encode_image(Image.new("RGBA", (200, 150), color=(255, 0, 0, 128)), "PNG")


@pytest.fixture
def signature():
    png = encode_image(Image.new("RGBA", (300, 100), (0, 0, 0, 0)), "PNG")
    return "data:image/png;base64," + base64.standard_b64encode(png).decode("ascii")


@pytest.fixture
def make_attachment():
    """Factory for tiny pre-encoded attachments."""
    def _make(area_id: str, name: str) -> Attachment:
        return Attachment(
            area_id=area_id,
            name=name,
            encoded_data="QUJD",
            preview_data="data:image/jpeg;base64,QUJD",
        )
    return _make
