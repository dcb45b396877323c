"""
Tesseract OCR reader - text recognition for the upgrade panels
"""

import os
import platform
import shutil
import threading
from enum import IntEnum
from typing import Optional

import numpy as np
import pytesseract
from PIL import Image

from ..utils.logger import get_logger
from ..utils.exceptions import ImageRecognitionError

logger = get_logger(__name__)


class PageLayout(IntEnum):
    """Tesseract page segmentation modes used by the bot"""
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6


class TesseractOCRReader:
    """
    Thin wrapper over pytesseract configured for the game's panel font
    """

    def __init__(self, tesseract_cmd: Optional[str] = None, lang: str = 'eng',
                 whitelist: Optional[str] = None):
        """
        Initialize Tesseract OCR reader

        Args:
            tesseract_cmd: Path to tesseract executable (auto-detected if None)
            lang: Language code for OCR (default: 'eng')
            whitelist: Characters tesseract is allowed to emit
        """
        self.lang = lang
        self.whitelist = whitelist

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
            logger.info(f"Using Tesseract at: {tesseract_cmd}")
        else:
            self._auto_detect_tesseract()

        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise ImageRecognitionError(f"Tesseract not properly configured: {e}")

        logger.info(f"Tesseract OCR reader initialized: {version}")

    def _auto_detect_tesseract(self):
        """Auto-detect Tesseract installation path"""
        if shutil.which('tesseract'):
            return

        system = platform.system()
        if system == 'Windows':
            common_paths = [
                r"C:\Program Files\Tesseract-OCR\tesseract.exe",
                r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
            ]
        elif system == 'Darwin':
            common_paths = ['/usr/local/bin/tesseract', '/opt/homebrew/bin/tesseract']
        else:
            common_paths = ['/usr/bin/tesseract', '/usr/local/bin/tesseract']

        for path in common_paths:
            if os.path.exists(path):
                pytesseract.pytesseract.tesseract_cmd = path
                logger.info(f"Auto-detected Tesseract at: {path}")
                return

        logger.warning("Tesseract not found in PATH or common locations, set vision.tesseract_cmd")

    def _build_config(self, layout: PageLayout) -> str:
        # --oem 1: LSTM engine only
        config = f"--oem 1 --psm {int(layout)}"
        if self.whitelist:
            config += f" -c tessedit_char_whitelist={self.whitelist}"
        return config

    def read_text(self, image: np.ndarray, layout: PageLayout = PageLayout.SINGLE_BLOCK) -> str:
        """
        Recognise the text of a monochrome image region

        Args:
            image: Single-channel image, dark text on a light background
            layout: Page segmentation hint

        Returns:
            Recognised text with surrounding whitespace removed
        """
        text = pytesseract.image_to_string(
            Image.fromarray(image),
            lang=self.lang,
            config=self._build_config(layout),
        )
        return text.strip()


_shared_tesseract_reader: Optional[TesseractOCRReader] = None
_reader_lock = threading.Lock()


def get_tesseract_reader(tesseract_cmd: Optional[str] = None, lang: str = 'eng',
                         whitelist: Optional[str] = None) -> TesseractOCRReader:
    """
    Get shared Tesseract OCR reader singleton

    Args:
        tesseract_cmd: Path to tesseract executable (only used on first call)
        lang: Language code for OCR (only used on first call)
        whitelist: Allowed characters (only used on first call)
    """
    global _shared_tesseract_reader

    with _reader_lock:
        if _shared_tesseract_reader is None:
            _shared_tesseract_reader = TesseractOCRReader(
                tesseract_cmd=tesseract_cmd, lang=lang, whitelist=whitelist
            )
        return _shared_tesseract_reader
