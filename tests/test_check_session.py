import cv2
import numpy as np
import pytest

from enumber_checker.check_session import CheckSession, SubmissionState
from enumber_checker.codes import ECode, InputChannel
from enumber_checker.errors import (
    ImageDecodeError,
    InvalidTransitionError,
    NoCodesFoundError,
    OcrEngineError,
    UploadInProgressError,
)
from enumber_checker.ocr_engine import OcrEngine
from enumber_checker.text_extraction import TokenExtractor


class ScriptedEngine(OcrEngine):
    """Returns canned text, or runs a hook while 'recognizing'."""

    backend_name = "scripted"

    def __init__(self, text="", on_recognize=None):
        super().__init__()
        self.text = text
        self.on_recognize = on_recognize

    def _load(self):
        pass

    def _recognize(self, image):
        if self.on_recognize is not None:
            self.on_recognize()
        return self.text


def label_png():
    ok, buf = cv2.imencode(".png", np.full((40, 60, 3), 255, dtype=np.uint8))
    assert ok
    return buf.tobytes()


def session_reading(text, **kwargs):
    return CheckSession(engine_factory=lambda: ScriptedEngine(text), **kwargs)


def test_manual_text_mixed_verdict():
    session = CheckSession()
    assert session.set_text("Contains E100, E120") == (ECode("E100"), ECode("E120"))

    result = session.submit()
    assert session.state is SubmissionState.NOT_ALL_VEGAN
    assert session.is_resolved
    assert [a.code.value for a in result.non_vegan] == ["E120"]


def test_manual_text_all_vegan():
    session = CheckSession()
    session.set_text("Sugar, E100, acidity regulator e-330")
    assert session.submit().is_vegan
    assert session.state is SubmissionState.ALL_VEGAN


def test_no_codes_keeps_state_unresolved():
    session = CheckSession()
    session.set_text("fresh apples and water")

    with pytest.raises(NoCodesFoundError):
        session.submit()

    assert session.state is SubmissionState.UNRESOLVED
    assert session.codes == ()
    assert session.error == "No E-numbers found in the text."
    assert session.classification is None


@pytest.mark.parametrize("text", ["E100", "E120"])
def test_reset_after_any_verdict(text):
    session = CheckSession()
    session.set_text(text)
    session.submit()
    assert session.is_resolved

    session.reset()
    assert session.state is SubmissionState.UNRESOLVED
    assert session.codes == ()
    assert session.text == ""
    assert session.classification is None
    assert session.error is None


def test_image_flow():
    session = session_reading("INGREDIENTS: sugar,\ncolour (E100), E120")
    raw = session.upload_image(label_png())

    assert raw == "INGREDIENTS: sugar,\ncolour (E100), E120"
    assert session.text == raw
    assert session.channel is InputChannel.IMAGE
    assert session.codes == (ECode("E100"), ECode("E120"))
    assert session.state is SubmissionState.UNRESOLVED

    session.submit()
    assert session.state is SubmissionState.NOT_ALL_VEGAN


def test_image_without_codes_reports_image_channel():
    session = session_reading("Best before: see lid")
    session.upload_image(label_png())

    with pytest.raises(NoCodesFoundError):
        session.submit()
    assert session.error == "No E-numbers found in the image."


def test_manual_edit_after_scan_switches_channel():
    session = session_reading("E120")
    session.upload_image(label_png())
    session.set_text("E100")
    assert session.channel is InputChannel.MANUAL
    assert session.submit().is_vegan


def test_undecodable_image_keeps_previous_text():
    session = session_reading("E100")
    session.set_text("E330")

    with pytest.raises(ImageDecodeError) as exc_info:
        session.upload_image(b"not an image")

    assert session.error == exc_info.value.user_message
    assert session.state is SubmissionState.UNRESOLVED
    assert session.text == "E330"
    assert session.codes == (ECode("E330"),)


def test_engine_failure_is_recoverable():
    def broken():
        raise RuntimeError("no model files")

    session = CheckSession(engine_factory=lambda: ScriptedEngine(on_recognize=broken))
    with pytest.raises(OcrEngineError):
        session.upload_image(label_png())

    assert session.state is SubmissionState.UNRESOLVED
    assert session.error == "Failed to process image. Please try again."

    session.set_text("E100")
    assert session.submit().is_vegan


def test_second_upload_refused_while_processing():
    seen = {}
    session = None

    def upload_again():
        seen["processing"] = session.is_processing
        try:
            session.upload_image(label_png())
        except UploadInProgressError as e:
            seen["refused"] = e
        try:
            session.set_text("E120")
        except UploadInProgressError as e:
            seen["edit_refused"] = e

    session = CheckSession(
        engine_factory=lambda: ScriptedEngine("E100", on_recognize=upload_again)
    )
    session.upload_image(label_png())

    assert seen["processing"] is True
    assert isinstance(seen["refused"], UploadInProgressError)
    assert isinstance(seen["edit_refused"], UploadInProgressError)
    assert session.text == "E100"
    assert session.state is SubmissionState.UNRESOLVED


def test_resolved_session_rejects_input():
    session = session_reading("E100")
    session.set_text("E100")
    session.submit()

    with pytest.raises(InvalidTransitionError):
        session.set_text("E120")
    with pytest.raises(InvalidTransitionError):
        session.upload_image(label_png())
    with pytest.raises(InvalidTransitionError):
        session.submit()
    assert session.state is SubmissionState.ALL_VEGAN


def test_bare_numbers_follow_channel_flags():
    session = session_reading("322, 330")
    session.set_text("322, 330")
    assert session.codes == (ECode("E322"), ECode("E330"))

    session.upload_image(label_png())
    assert session.codes == ()

    lenient = session_reading(
        "322, 330", extractor=TokenExtractor(lenient_manual=True, lenient_ocr=True)
    )
    lenient.upload_image(label_png())
    assert lenient.codes == (ECode("E322"), ECode("E330"))


def test_highlighted_text():
    session = CheckSession()
    session.set_text("Colour: E100")
    assert session.highlighted_text() == "Colour: **E100**"
