# enumber_checker/ocr_engine.py
"""
OCR engines for ingredient-label text.

The rest of the pipeline treats OCR as a black box: hand it a
ProcessedImage, get back best-effort text. Engines have an explicit
lifecycle (start -> recognize -> terminate) and every recognition runs
against a fresh engine that is torn down on every exit path, so no
model or worker outlives the call that needed it.

Backends:
  - paddle:    PaddleOCR (default)
  - tesseract: Tesseract via pytesseract
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Type

from . import config
from .errors import OcrEngineError
from .preprocessing import ProcessedImage

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], "OcrEngine"]


# ENGINE CONTRACT


class OcrEngine(ABC):
    """
    Base class for OCR backends.

    Subclasses implement ``_load`` (acquire the model/worker),
    ``_recognize`` and optionally ``_unload``. The public methods add
    the lifecycle bookkeeping and the context-manager protocol:

        with PaddleOcrEngine() as engine:
            text = engine.recognize(image)
    """

    backend_name: str = "unknown"

    def __init__(self) -> None:
        self._running = False

    @property
    def name(self) -> str:
        return str(self.backend_name)

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> "OcrEngine":
        if not self._running:
            logger.info(f"Starting {self.name} OCR engine...")
            self._load()
            self._running = True
        return self

    def recognize(self, image: ProcessedImage) -> str:
        """Return the text recognized in ``image`` (may be empty)."""
        if not self._running:
            raise OcrEngineError(f"{self.name} engine used before start()")
        text = self._recognize(image)
        logger.debug(f"{self.name} recognized {len(text)} characters")
        return text

    def terminate(self) -> None:
        """Release engine resources. Safe to call more than once."""
        if not self._running:
            return
        self._running = False
        self._unload()
        logger.info(f"Terminated {self.name} OCR engine")

    def __enter__(self) -> "OcrEngine":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate()

    @abstractmethod
    def _load(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def _recognize(self, image: ProcessedImage) -> str:
        raise NotImplementedError

    def _unload(self) -> None:
        pass


def _join_lines(
    texts: Sequence[str],
    scores: Sequence[float],
    min_confidence: float,
) -> str:
    """Keep lines at or above ``min_confidence`` and join them with newlines."""
    kept: List[str] = []
    confs: List[float] = []

    for text, conf in zip(texts, scores):
        conf = float(conf)
        if conf >= min_confidence and text and text.strip():
            kept.append(text.strip())
            confs.append(conf)

    if not kept:
        logger.debug("All OCR lines filtered by confidence")
        return ""

    avg_conf = sum(confs) / len(confs)
    logger.debug(f"OCR kept {len(kept)}/{len(texts)} lines, avg confidence: {avg_conf:.3f}")
    return "\n".join(kept)


# PADDLEOCR BACKEND


class PaddleOcrEngine(OcrEngine):
    """PaddleOCR, English, CPU, no orientation models."""

    backend_name = "paddle"

    def __init__(
        self,
        lang: Optional[str] = None,
        min_confidence: Optional[float] = None,
    ) -> None:
        super().__init__()
        self.lang = lang or config.OCR_LANG
        self.min_confidence = (
            config.MIN_OCR_CONFIDENCE if min_confidence is None else min_confidence
        )
        self._ocr = None

    def _load(self) -> None:
        # Heavy import: only pay for it when an engine is actually started
        from paddleocr import PaddleOCR

        self._ocr = PaddleOCR(
            lang=self.lang,
            device="cpu",
            use_doc_orientation_classify=False,
            use_doc_unwarping=False,
            use_textline_orientation=False,
        )

    def _recognize(self, image: ProcessedImage) -> str:
        results = self._ocr.predict(image.pixels)
        if not results:
            logger.debug("No OCR results")
            return ""

        texts: List[str] = []
        scores: List[float] = []
        for page in results:
            texts.extend(page["rec_texts"] or [])
            scores.extend(page["rec_scores"] or [])

        return _join_lines(texts, scores, self.min_confidence)

    def _unload(self) -> None:
        self._ocr = None


# TESSERACT BACKEND


# Tesseract uses ISO 639-2 language codes
_TESSERACT_LANGS: Dict[str, str] = {
    "en": "eng",
    "de": "deu",
    "fr": "fra",
    "es": "spa",
    "it": "ita",
    "nl": "nld",
    "sv": "swe",
}


class TesseractOcrEngine(OcrEngine):
    """Tesseract via pytesseract, fed the JPEG payload."""

    backend_name = "tesseract"

    def __init__(self, lang: Optional[str] = None) -> None:
        super().__init__()
        lang = lang or config.OCR_LANG
        self.lang = _TESSERACT_LANGS.get(lang, lang)
        self._tesseract = None

    def _load(self) -> None:
        import pytesseract

        # Fails fast when the tesseract binary is missing
        version = pytesseract.get_tesseract_version()
        logger.debug(f"Using tesseract {version}")
        self._tesseract = pytesseract

    def _recognize(self, image: ProcessedImage) -> str:
        from PIL import Image

        with Image.open(io.BytesIO(image.jpeg)) as pil_img:
            return self._tesseract.image_to_string(pil_img, lang=self.lang)

    def _unload(self) -> None:
        self._tesseract = None


# FACTORY & SCOPED RECOGNITION


ENGINES: Dict[str, Type[OcrEngine]] = {
    PaddleOcrEngine.backend_name: PaddleOcrEngine,
    TesseractOcrEngine.backend_name: TesseractOcrEngine,
}


def create_engine(name: Optional[str] = None) -> OcrEngine:
    """
    Build an (unstarted) engine by backend name.

    Raises:
        OcrEngineError: If the backend name is unknown
    """
    name = (name or config.OCR_BACKEND).lower()
    engine_cls = ENGINES.get(name)
    if engine_cls is None:
        raise OcrEngineError(
            f"Unknown OCR backend {name!r} (expected one of: {', '.join(sorted(ENGINES))})"
        )
    return engine_cls()


def recognize_text(
    image: ProcessedImage,
    engine_factory: Optional[EngineFactory] = None,
) -> str:
    """
    Run one scoped recognition.

    A fresh engine is created right before use and terminated right
    after, whether recognition succeeds or fails. Any backend failure
    (start-up, recognition or teardown) comes out as OcrEngineError.

    Args:
        image: Preprocessed image
        engine_factory: Zero-argument callable returning an unstarted engine

    Returns:
        Recognized text (possibly empty)
    """
    factory = engine_factory or create_engine

    try:
        with factory() as engine:
            return engine.recognize(image)
    except OcrEngineError:
        raise
    except Exception as e:
        logger.error(f"OCR engine error: {e}", exc_info=True)
        raise OcrEngineError(f"Recognition failed: {e}") from e
