# enumber_checker/config.py
"""
Runtime configuration for the E-number checker.

All tunables live here as module-level constants. Each one can be
overridden through an ENUMBER_* environment variable, read once at import.
Invalid values fall back to the default with a warning.
"""

import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_PREFIX = "ENUMBER_"
PACKAGE_DIR = Path(__file__).resolve().parent


# ENV HELPERS


def env_flag(key: str, default: bool) -> bool:
    """Read a boolean flag ("1", "true", "yes", "on" are truthy)."""
    raw = os.getenv(ENV_PREFIX + key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def env_int(key: str, default: int, min_val: int, max_val: int) -> int:
    """Read an integer, clamped to [min_val, max_val]."""
    raw = os.getenv(ENV_PREFIX + key)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(f"Invalid integer for {ENV_PREFIX + key}: {raw!r}, using {default}")
        return default
    return max(min_val, min(max_val, value))


def env_float(key: str, default: float, min_val: float, max_val: float) -> float:
    """Read a float, clamped to [min_val, max_val]."""
    raw = os.getenv(ENV_PREFIX + key)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        logger.warning(f"Invalid number for {ENV_PREFIX + key}: {raw!r}, using {default}")
        return default
    return max(min_val, min(max_val, value))


def env_str(key: str, default: str) -> str:
    raw = os.getenv(ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# IMAGE PREPROCESSING

# Longer side of the processed image, in pixels
MAX_IMAGE_SIZE = env_int("MAX_IMAGE_SIZE", 1600, 64, 10000)

# Channel-mean cut-off: strictly above -> white, otherwise black
BINARIZE_THRESHOLD = env_int("BINARIZE_THRESHOLD", 128, 0, 255)

# JPEG quality on the 0-1 scale used by canvas encoders
JPEG_QUALITY = env_float("JPEG_QUALITY", 0.9, 0.0, 1.0)

# Save intermediate images for inspection
DEBUG_SAVE = env_flag("DEBUG_SAVE", False)
DEBUG_DIR = env_str("DEBUG_DIR", "intermediate")


# OCR

OCR_BACKEND = env_str("OCR_BACKEND", "paddle").lower()
OCR_LANG = env_str("OCR_LANG", "en")
MIN_OCR_CONFIDENCE = env_float("MIN_OCR_CONFIDENCE", 0.30, 0.0, 1.0)


# TOKEN EXTRACTION

# Accept bare "123" tokens in typed text
LENIENT_MANUAL = env_flag("LENIENT_MANUAL", True)

# Accept bare "123" tokens in OCR text (off: OCR noise produces many numbers)
LENIENT_OCR = env_flag("LENIENT_OCR", False)


# REFERENCE DATA

REFERENCE_DATA_PATH = Path(
    env_str("REFERENCE_DATA", str(PACKAGE_DIR / "data" / "e_numbers.json"))
)


# LOGGING

LOG_LEVEL = env_str("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
