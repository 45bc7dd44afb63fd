# enumber_checker/preprocessing.py
"""
Image preprocessing for ingredient-label OCR.

Pipeline (deterministic, one pass):
  1. Bound the size: longer side at most MAX_IMAGE_SIZE, aspect kept
  2. Render onto an opaque white canvas (transparent areas become white)
  3. Binarize: channel mean above the threshold -> white, else black
  4. Encode as JPEG for the OCR engine

Result: a pure black/white image that OCR engines read far more
reliably than a raw phone photo.
"""

import os
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

import cv2
import numpy as np

from . import config
from .errors import ImageDecodeError, SurfaceUnavailableError
from .utils import load_image_from_bytes, validate_image

logger = logging.getLogger(__name__)


# DEBUG OUTPUT


def _ensure_debug_dir() -> None:
    """Create debug directory if it doesn't exist."""
    if config.DEBUG_SAVE and not os.path.exists(config.DEBUG_DIR):
        try:
            os.makedirs(config.DEBUG_DIR, exist_ok=True)
            logger.debug(f"Created debug directory: {config.DEBUG_DIR}")
        except OSError as e:
            logger.error(f"Failed to create debug directory: {e}")


def _save_debug_image(img: np.ndarray, name: str) -> None:
    """
    Save intermediate images for inspection.
    Files go into ./intermediate/<timestamp>_<name>.png
    """
    if not config.DEBUG_SAVE or img is None:
        return

    _ensure_debug_dir()

    ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    path = os.path.join(config.DEBUG_DIR, f"{ts}_{name}.png")
    try:
        if cv2.imwrite(path, img):
            logger.debug(f"Saved debug image: {path}")
        else:
            logger.warning(f"Failed to write debug image: {path}")
    except cv2.error as e:
        logger.warning(f"Error saving debug image '{name}': {e}")


# RESULT TYPE


@dataclass(frozen=True, eq=False)
class ProcessedImage:
    """
    Binarized image ready for OCR.

    Attributes:
        pixels: (H, W, 3) uint8 array, every value 0 or 255 (read-only)
        jpeg:   JPEG encoding of ``pixels``
        source_size: (width, height) of the image before resizing
    """

    pixels: np.ndarray
    jpeg: bytes
    source_size: Tuple[int, int]

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


# PIPELINE STEPS


def compute_target_size(
    width: int,
    height: int,
    max_side: int = None,
) -> Tuple[int, int]:
    """
    Scale (width, height) so the longer side is at most ``max_side``.

    Images already within bounds keep their size. Fractional results
    are truncated, since a canvas only takes whole pixels.

    Returns:
        (width, height) of the target canvas, each at least 1
    """
    if max_side is None:
        max_side = config.MAX_IMAGE_SIZE

    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {width}x{height}")

    w, h = float(width), float(height)
    if w > h and w > max_side:
        h = h * max_side / w
        w = max_side
    elif h > max_side:
        w = w * max_side / h
        h = max_side

    return max(1, int(w)), max(1, int(h))


def _to_bgra(img: np.ndarray) -> np.ndarray:
    """Promote grayscale / BGR input to BGRA (opaque where no alpha exists)."""
    if img.ndim == 2 or img.shape[2] == 1:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    return img


def flatten_onto_white(img: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """
    Draw ``img`` scaled to ``size`` on an opaque white canvas.

    OCR engines assume an opaque background, so any transparency
    is composited over white.

    Args:
        img: Grayscale, BGR or BGRA image
        size: (width, height) of the canvas

    Returns:
        (H, W, 3) uint8 BGR canvas

    Raises:
        SurfaceUnavailableError: If the canvas cannot be allocated or drawn
    """
    width, height = size

    try:
        bgra = _to_bgra(img)
        if (bgra.shape[1], bgra.shape[0]) != (width, height):
            bgra = cv2.resize(bgra, (width, height), interpolation=cv2.INTER_AREA)

        canvas = np.full((height, width, 3), 255, dtype=np.float32)
        alpha = bgra[:, :, 3:4].astype(np.float32) / 255.0
        canvas = bgra[:, :, :3].astype(np.float32) * alpha + canvas * (1.0 - alpha)
        out = np.clip(np.rint(canvas), 0, 255).astype(np.uint8)

    except (MemoryError, cv2.error) as e:
        logger.error(f"Could not allocate {width}x{height} canvas: {e}", exc_info=True)
        raise SurfaceUnavailableError(f"Could not allocate drawing surface: {e}") from e

    _save_debug_image(out, "01_canvas")
    return out


def binarize(canvas: np.ndarray, threshold: int = None) -> np.ndarray:
    """
    Threshold every pixel to pure black or pure white.

    A pixel whose three-channel mean is strictly above ``threshold``
    becomes (255, 255, 255), every other pixel (0, 0, 0).

    Args:
        canvas: (H, W, 3) uint8 image
        threshold: Channel-mean cut-off (default: BINARIZE_THRESHOLD)

    Returns:
        New (H, W, 3) uint8 array; ``canvas`` is left untouched
    """
    if threshold is None:
        threshold = config.BINARIZE_THRESHOLD

    # mean > t  <=>  sum > 3t, kept in integers to avoid rounding at the edge
    channel_sum = canvas[:, :, :3].astype(np.uint16).sum(axis=2)
    white = channel_sum > 3 * threshold

    out = np.zeros((canvas.shape[0], canvas.shape[1], 3), dtype=np.uint8)
    out[white] = 255

    _save_debug_image(out, "02_binarized")
    return out


def encode_jpeg(img: np.ndarray, quality: float = None) -> bytes:
    """
    Encode an image as JPEG.

    Args:
        img: Image to encode
        quality: 0-1 quality factor (default: JPEG_QUALITY)

    Raises:
        SurfaceUnavailableError: If encoding fails
    """
    if quality is None:
        quality = config.JPEG_QUALITY

    params = [cv2.IMWRITE_JPEG_QUALITY, int(round(quality * 100))]
    try:
        ok, buf = cv2.imencode(".jpg", img, params)
    except cv2.error as e:
        logger.error(f"JPEG encoding error: {e}", exc_info=True)
        raise SurfaceUnavailableError(f"Could not convert canvas to JPEG: {e}") from e

    if not ok:
        raise SurfaceUnavailableError("Could not convert canvas to JPEG")

    return buf.tobytes()


# ENTRY POINTS


def preprocess_array(img: np.ndarray) -> ProcessedImage:
    """
    Run the full preprocessing pipeline on an already-decoded image.

    The input array is never modified.

    Raises:
        ImageDecodeError: If the array is not a usable image
        SurfaceUnavailableError: If a drawing surface cannot be used
    """
    if not validate_image(img, "OCR preprocessing"):
        raise ImageDecodeError("Decoded image is empty or has an unsupported shape")

    src_h, src_w = img.shape[:2]
    target = compute_target_size(src_w, src_h)
    logger.debug(f"Preprocessing {src_w}x{src_h} -> {target[0]}x{target[1]}")

    canvas = flatten_onto_white(img, target)
    binary = binarize(canvas)
    jpeg = encode_jpeg(binary)

    binary.flags.writeable = False
    return ProcessedImage(pixels=binary, jpeg=jpeg, source_size=(src_w, src_h))


def preprocess_image(image_bytes: bytes) -> ProcessedImage:
    """
    Decode an uploaded image and prepare it for OCR.

    Args:
        image_bytes: Raw upload (JPEG, PNG, ...)

    Raises:
        ImageDecodeError: If the upload cannot be decoded
        SurfaceUnavailableError: If a drawing surface cannot be used
    """
    img = load_image_from_bytes(image_bytes)
    processed = preprocess_array(img)
    logger.info(
        f"Preprocessed image {processed.source_size[0]}x{processed.source_size[1]} "
        f"-> {processed.width}x{processed.height} ({len(processed.jpeg)} bytes)"
    )
    return processed


# STATS


def get_preprocessing_stats(img: np.ndarray) -> dict:
    """
    Describe a (preprocessed) image for debugging/monitoring.

    Returns:
        Dictionary with shape, dtype, mean and the share of black pixels
    """
    if img is None or img.size == 0:
        return {
            "shape": None,
            "dtype": None,
            "mean": None,
            "black_ratio": None,
        }

    gray = img if img.ndim == 2 else img[:, :, 0]
    return {
        "shape": img.shape,
        "dtype": str(img.dtype),
        "mean": float(np.mean(img)),
        "black_ratio": float(np.count_nonzero(gray == 0)) / gray.size,
    }
