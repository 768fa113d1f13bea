"""
OCR Utilities Module
OCR using pytesseract, disabled unless OCR_ENABLED is set.
"""

import io
import re
import logging
import pytesseract
from PIL import Image, ImageFilter, ImageOps

from .errors import FeatureDisabledError

logger = logging.getLogger(__name__)


class OCRProcessor:
    """Extracts text from image bytes."""

    def __init__(self, enabled: bool = False, lang: str = 'eng'):
        self.enabled = enabled
        self.lang = lang

    def extract_from_bytes(self, image_bytes: bytes) -> str:
        """Run OCR on an image buffer. Raises FeatureDisabledError when OCR is switched off."""
        if not self.enabled:
            raise FeatureDisabledError('OCR', 'set OCR_ENABLED=true and install tesseract')
        img = Image.open(io.BytesIO(image_bytes))
        img = self._preprocess_image(img)
        text = pytesseract.image_to_string(img, lang=self.lang)
        return re.sub(r'\s+', ' ', text).strip()

    def _preprocess_image(self, img: 'Image.Image') -> 'Image.Image':
        """Grayscale, autocontrast and sharpen before recognition."""
        if img.mode != 'L':
            img = img.convert('L')
        img = ImageOps.autocontrast(img)
        return img.filter(ImageFilter.SHARPEN)
