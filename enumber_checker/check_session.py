# enumber_checker/check_session.py
"""
Submission lifecycle behind the checker form.

One session drives one product check at a time:

    UNRESOLVED --upload_image--> PROCESSING --(done/failed)--> UNRESOLVED
    UNRESOLVED --submit--> ALL_VEGAN | NOT_ALL_VEGAN
    any state  --reset--> UNRESOLVED

State is a single enum, so combinations such as "processing while
resolved" cannot be represented. Only one image may be in flight:
uploads are refused while a recognition is pending, so two OCR
results can never be committed out of order.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

from .classifier import Classification, VeganVerdict, classify
from .codes import ECode, InputChannel
from .errors import (
    EnumberCheckError,
    InvalidTransitionError,
    NoCodesFoundError,
    UploadInProgressError,
)
from .ocr_engine import EngineFactory, recognize_text
from .preprocessing import preprocess_image
from .reference_table import ReferenceTable, get_reference_table
from .text_extraction import TokenExtractor, highlight_codes_in_text

logger = logging.getLogger(__name__)


class SubmissionState(Enum):
    UNRESOLVED = "unresolved"
    PROCESSING = "processing"
    ALL_VEGAN = "all_vegan"
    NOT_ALL_VEGAN = "not_all_vegan"


_VERDICT_STATES = {
    VeganVerdict.ALL_VEGAN: SubmissionState.ALL_VEGAN,
    VeganVerdict.NOT_ALL_VEGAN: SubmissionState.NOT_ALL_VEGAN,
}


class CheckSession:
    """
    Text, extracted codes and verdict of one product check.

    Attributes:
        text:     Current ingredient text
        channel:  Where ``text`` came from (manual edit or image)
        codes:    Codes extracted from ``text``, recomputed on every change
        state:    Current SubmissionState
        error:    User-facing message of the last failure, if any
        classification: Result of the last successful submit
    """

    def __init__(
        self,
        table: Optional[ReferenceTable] = None,
        extractor: Optional[TokenExtractor] = None,
        engine_factory: Optional[EngineFactory] = None,
    ):
        self.table = table if table is not None else get_reference_table()
        self.extractor = extractor if extractor is not None else TokenExtractor()
        self.engine_factory = engine_factory
        self.reset()

    # STATE

    @property
    def is_processing(self) -> bool:
        return self.state is SubmissionState.PROCESSING

    @property
    def is_resolved(self) -> bool:
        return self.state in (SubmissionState.ALL_VEGAN, SubmissionState.NOT_ALL_VEGAN)

    def reset(self) -> None:
        """Start over ("check another product"). Allowed from any state."""
        self.text: str = ""
        self.channel: InputChannel = InputChannel.MANUAL
        self.codes: Tuple[ECode, ...] = ()
        self.state: SubmissionState = SubmissionState.UNRESOLVED
        self.error: Optional[str] = None
        self.classification: Optional[Classification] = None
        logger.debug("Session reset")

    def _require_editable(self, action: str) -> None:
        if self.state is SubmissionState.PROCESSING:
            raise UploadInProgressError(f"Cannot {action} while an image is being processed")
        if self.is_resolved:
            raise InvalidTransitionError(f"Cannot {action} after a verdict; reset first")

    def _commit_text(self, text: str, channel: InputChannel) -> None:
        self.text = text or ""
        self.channel = channel
        self.codes = self.extractor.extract(self.text, channel)

    # INPUT

    def set_text(self, text: str) -> Tuple[ECode, ...]:
        """
        Replace the ingredient text with a manual edit.

        Codes are recomputed immediately; the verdict is not.

        Raises:
            InvalidTransitionError: If a verdict is showing or an image is pending
        """
        self._require_editable("edit the text")
        self._commit_text(text, InputChannel.MANUAL)
        return self.codes

    def upload_image(self, image_bytes: bytes) -> str:
        """
        Recognize the ingredient text on a label photo.

        The recognized text replaces the current text (image channel).
        On failure the previous text is kept, ``error`` holds a
        user-facing message and the exception is re-raised.

        Raises:
            UploadInProgressError: If another image is still being processed
            InvalidTransitionError: If a verdict is showing
            ImageDecodeError, SurfaceUnavailableError, OcrEngineError
        """
        self._require_editable("upload an image")

        self.state = SubmissionState.PROCESSING
        self.error = None
        try:
            processed = preprocess_image(image_bytes)
            raw = recognize_text(processed, self.engine_factory)
        except EnumberCheckError as e:
            self.error = e.user_message
            logger.warning(f"Image submission failed: {e}")
            raise
        finally:
            self.state = SubmissionState.UNRESOLVED

        self._commit_text(raw, InputChannel.IMAGE)
        logger.info(f"Image recognized: {len(raw)} characters, {len(self.codes)} code(s)")
        return raw

    # SUBMISSION

    def submit(self) -> Classification:
        """
        Classify the current text.

        Raises:
            NoCodesFoundError: If the text holds no E-numbers (state stays UNRESOLVED)
            InvalidTransitionError: If already resolved or an image is pending
        """
        self._require_editable("submit")

        self.error = None
        self.codes = self.extractor.extract(self.text, self.channel)
        result = classify(self.codes, self.table)

        if result.verdict is VeganVerdict.UNRESOLVED:
            err = NoCodesFoundError(self.channel)
            self.error = err.user_message
            logger.info(f"Submission rejected: {err}")
            raise err

        self.classification = result
        self.state = _VERDICT_STATES[result.verdict]
        return result

    # DISPLAY

    def highlighted_text(self) -> str:
        """Current text with every extracted code in **bold**."""
        return highlight_codes_in_text(
            self.text, self.extractor.matches(self.text, self.channel)
        )
