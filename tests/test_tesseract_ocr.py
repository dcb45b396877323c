"""Tests for the Tesseract wrapper with the engine mocked out"""

import unittest
from unittest import mock

import numpy as np
import pytesseract

from tower_farmer.utils.exceptions import ImageRecognitionError
from tower_farmer.utils.tesseract_ocr import PageLayout, TesseractOCRReader


@mock.patch('tower_farmer.utils.tesseract_ocr.shutil.which', return_value='/usr/bin/tesseract')
class TesseractOCRReaderTest(unittest.TestCase):

    def test_read_text_passes_layout_and_whitelist(self, _which):
        with mock.patch('pytesseract.get_tesseract_version', return_value='5.3.0'), \
                mock.patch('pytesseract.image_to_string', return_value='  Damage\n') as image_to_string:
            reader = TesseractOCRReader(whitelist='0123456789')
            text = reader.read_text(np.full((20, 40), 255, dtype=np.uint8), PageLayout.SINGLE_COLUMN)

        self.assertEqual(text, 'Damage')
        kwargs = image_to_string.call_args[1]
        self.assertEqual(kwargs['lang'], 'eng')
        self.assertEqual(kwargs['config'], '--oem 1 --psm 4 -c tessedit_char_whitelist=0123456789')

    def test_value_blocks_use_single_block_layout(self, _which):
        with mock.patch('pytesseract.get_tesseract_version', return_value='5.3.0'), \
                mock.patch('pytesseract.image_to_string', return_value='') as image_to_string:
            TesseractOCRReader().read_text(np.zeros((10, 10), dtype=np.uint8))

        self.assertEqual(image_to_string.call_args[1]['config'], '--oem 1 --psm 6')

    def test_missing_engine_raises(self, _which):
        with mock.patch('pytesseract.get_tesseract_version',
                        side_effect=pytesseract.TesseractNotFoundError()):
            with self.assertRaises(ImageRecognitionError):
                TesseractOCRReader()


if __name__ == '__main__':
    unittest.main()
