# enumber_checker/errors.py
"""
Error kinds raised by the checking pipeline.

Every submission error carries a short, human-readable ``user_message``
that the UI shows as-is. None of them is fatal to the application: the
session resets and the user may retry.
"""

from typing import Optional


class EnumberCheckError(Exception):
    """Base class for all checker errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, detail: str = "", user_message: Optional[str] = None):
        if user_message is not None:
            self.user_message = user_message
        super().__init__(detail or self.user_message)


class ImageDecodeError(EnumberCheckError):
    """The source image could not be read."""

    user_message = "Failed to load image. Please try a different photo."


class SurfaceUnavailableError(EnumberCheckError):
    """No drawing surface could be allocated, or the result could not be encoded."""

    user_message = "Could not prepare the image for scanning. Please try again."


class OcrEngineError(EnumberCheckError):
    """Recognition failed, or the engine could not start or stop cleanly."""

    user_message = "Failed to process image. Please try again."


class NoCodesFoundError(EnumberCheckError):
    """A submission found no E-numbers in its text."""

    def __init__(self, channel):
        self.channel = channel
        where = "image" if channel.value == "image" else "text"
        super().__init__(
            f"no codes found ({channel.value} input)",
            user_message=f"No E-numbers found in the {where}.",
        )


class ReferenceDataError(EnumberCheckError):
    """The bundled reference table is malformed."""

    user_message = "The E-number reference data could not be loaded."


class InvalidTransitionError(EnumberCheckError):
    """The session was asked to do something its current state forbids."""

    user_message = "Please start a new check first."


class UploadInProgressError(InvalidTransitionError):
    """A second image was submitted while one is still being recognized."""

    user_message = "An image is already being processed. Please wait."
