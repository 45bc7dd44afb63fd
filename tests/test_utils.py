import io

import cv2
import numpy as np
import pytest
from PIL import Image

from enumber_checker.errors import ImageDecodeError
from enumber_checker.utils import (
    EXIF_ORIENTATION_TAG,
    apply_exif_orientation,
    get_image_stats,
    load_image_from_bytes,
    read_exif_orientation,
    validate_image,
)


def png_bytes(img):
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()


def test_load_color_png():
    img = np.zeros((10, 20, 3), dtype=np.uint8)  # h=10, w=20
    loaded = load_image_from_bytes(png_bytes(img))
    assert loaded.shape == (10, 20, 3)


def test_load_keeps_alpha_channel():
    img = np.zeros((8, 8, 4), dtype=np.uint8)
    loaded = load_image_from_bytes(png_bytes(img))
    assert loaded.shape == (8, 8, 4)


def test_load_rejects_garbage():
    with pytest.raises(ImageDecodeError):
        load_image_from_bytes(b"definitely not an image")


def test_load_rejects_empty_and_wrong_types():
    with pytest.raises(ImageDecodeError):
        load_image_from_bytes(b"")
    with pytest.raises(ImageDecodeError):
        load_image_from_bytes(None)
    with pytest.raises(ImageDecodeError):
        load_image_from_bytes("image.png")


def test_validate_image():
    assert validate_image(np.zeros((4, 4, 3), dtype=np.uint8))
    assert validate_image(np.zeros((4, 4), dtype=np.uint8))
    assert not validate_image(None)
    assert not validate_image(np.zeros((0, 4, 3), dtype=np.uint8))
    assert not validate_image(np.zeros((4, 4, 2), dtype=np.uint8))


def test_image_stats():
    img = np.full((4, 6, 4), 255, dtype=np.uint8)
    stats = get_image_stats(img)
    assert stats["shape"] == (4, 6, 4)
    assert stats["channels"] == 4
    assert stats["has_alpha"] is True
    assert stats["mean"] == 255.0


def tagged_jpeg(orientation, size=(200, 100)):
    """Left half black, right half white, stored with an EXIF orientation tag."""
    img = Image.new("RGB", size, (255, 255, 255))
    img.paste((0, 0, 0), (0, 0, size[0] // 2, size[1]))
    exif = Image.Exif()
    exif[EXIF_ORIENTATION_TAG] = orientation
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    return buf.getvalue()


def test_read_exif_orientation():
    assert read_exif_orientation(tagged_jpeg(6)) == 6
    assert read_exif_orientation(png_bytes(np.zeros((4, 4, 3), dtype=np.uint8))) == 1
    assert read_exif_orientation(b"garbage") == 1


def test_load_rotates_by_exif_orientation():
    loaded = load_image_from_bytes(tagged_jpeg(6))  # stored 200 wide x 100 tall
    assert loaded.shape == (200, 100, 3)
    # rotated clockwise: the black left half is now the top half
    assert loaded[20, 50].max() < 60
    assert loaded[180, 50].min() > 200


def test_load_upright_jpeg_is_untouched():
    assert load_image_from_bytes(tagged_jpeg(1)).shape == (100, 200, 3)


def test_apply_orientation_keeps_alpha():
    img = np.zeros((10, 20, 4), dtype=np.uint8)
    for orientation, shape in [(3, (10, 20, 4)), (5, (20, 10, 4)), (8, (20, 10, 4))]:
        assert apply_exif_orientation(img, orientation).shape == shape
