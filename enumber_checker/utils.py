# enumber_checker/utils.py
"""
Image handling helpers: decoding uploaded bytes and describing arrays.
"""

import io
import logging

import cv2
import numpy as np
from PIL import Image

from .errors import ImageDecodeError

logger = logging.getLogger(__name__)


# EXIF ORIENTATION

# EXIF tag 0x0112; values 2-8 describe how the stored pixels must be
# flipped/rotated to appear upright
EXIF_ORIENTATION_TAG = 0x0112


def read_exif_orientation(image_bytes: bytes) -> int:
    """
    EXIF orientation of an encoded image, 1 (upright) when absent.

    Only the header is parsed; pixels are decoded by OpenCV.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as pil_img:
            orientation = pil_img.getexif().get(EXIF_ORIENTATION_TAG, 1)
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        logger.debug(f"No readable EXIF header: {e}")
        return 1

    if not isinstance(orientation, int) or not 1 <= orientation <= 8:
        logger.warning(f"Ignoring invalid EXIF orientation: {orientation!r}")
        return 1
    return orientation


def apply_exif_orientation(img: np.ndarray, orientation: int) -> np.ndarray:
    """
    Flip/rotate ``img`` so it is upright for the given EXIF orientation.

    Works on any channel count, so an alpha channel survives.
    """
    if orientation == 2:
        return cv2.flip(img, 1)
    if orientation == 3:
        return cv2.rotate(img, cv2.ROTATE_180)
    if orientation == 4:
        return cv2.flip(img, 0)
    if orientation == 5:
        return cv2.transpose(img)
    if orientation == 6:
        return cv2.rotate(img, cv2.ROTATE_90_CLOCKWISE)
    if orientation == 7:
        return cv2.rotate(cv2.transpose(img), cv2.ROTATE_180)
    if orientation == 8:
        return cv2.rotate(img, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return img


# IMAGE LOADING & VALIDATION


def load_image_from_bytes(image_bytes: bytes) -> np.ndarray:
    """
    Decode raw image bytes (JPEG, PNG, WebP, ...) into a numpy array.

    The alpha channel is kept when the format has one, so callers can
    composite transparent regions themselves, and the EXIF orientation
    tag is applied so phone photos come out upright. Result is one of:
        - (H, W)     grayscale
        - (H, W, 3)  BGR
        - (H, W, 4)  BGRA

    Args:
        image_bytes: Encoded image payload

    Returns:
        Decoded image (always a fresh array)

    Raises:
        ImageDecodeError: If the payload is missing, empty or undecodable
    """
    if image_bytes is None:
        raise ImageDecodeError("No image bytes provided")

    if not isinstance(image_bytes, (bytes, bytearray)):
        raise ImageDecodeError(f"Expected bytes, got {type(image_bytes)}")

    arr = np.frombuffer(bytes(image_bytes), np.uint8)
    if arr.size == 0:
        raise ImageDecodeError("Empty image buffer")

    try:
        img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        logger.error(f"Error decoding image bytes: {e}", exc_info=True)
        raise ImageDecodeError(f"Failed to decode image: {e}") from e

    if img is None or img.size == 0:
        raise ImageDecodeError("Invalid image data: could not be decoded by OpenCV")

    # 16-bit PNGs and friends: scale down to 8 bits per channel
    if img.dtype != np.uint8:
        img = cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    # IMREAD_UNCHANGED keeps alpha but ignores the orientation tag
    orientation = read_exif_orientation(image_bytes)
    if orientation != 1:
        img = apply_exif_orientation(img, orientation)
        logger.debug(f"Applied EXIF orientation {orientation}")

    logger.debug(f"Loaded image: shape={img.shape}, dtype={img.dtype}")
    return img


def validate_image(img: np.ndarray, operation: str = "processing") -> bool:
    """
    Check that an array looks like a usable image.

    Args:
        img: Image to validate
        operation: Name of operation (for logging)
    """
    if img is None:
        logger.warning(f"Image is None for {operation}")
        return False

    if not isinstance(img, np.ndarray):
        logger.warning(f"Image is not ndarray for {operation}")
        return False

    if img.size == 0 or img.ndim not in (2, 3):
        logger.warning(f"Image has invalid shape for {operation}: {img.shape}")
        return False

    if img.ndim == 3 and img.shape[2] not in (1, 3, 4):
        logger.warning(f"Unsupported channel count for {operation}: {img.shape[2]}")
        return False

    return True


def get_image_stats(img: np.ndarray) -> dict:
    """
    Summarize an image for the UI's info panel.

    Returns:
        Dictionary with shape, dtype, channel count and intensity stats
    """
    if img is None or img.size == 0:
        return {
            "shape": None,
            "dtype": None,
            "channels": None,
            "has_alpha": None,
            "mean": None,
            "std": None,
        }

    channels = img.shape[2] if img.ndim == 3 else 1
    return {
        "shape": img.shape,
        "dtype": str(img.dtype),
        "channels": channels,
        "has_alpha": channels == 4,
        "mean": float(np.mean(img)),
        "std": float(np.std(img)),
    }
