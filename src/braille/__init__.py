"""Braille conversion.

Local Grade 1 transliteration with 40-cell line wrapping and page estimation,
optionally fronted by an online Grade 2 translator.
"""

from src.braille.online import BrailleService, BrailleTranslatorError, OnlineBrailleTranslator
from src.braille.transliterator import (
    LINE_WIDTH,
    LINES_PER_PAGE,
    BrailleResult,
    transliterate,
    transliterate_line,
    wrap_line,
)

__all__ = [
    "LINE_WIDTH",
    "LINES_PER_PAGE",
    "BrailleResult",
    "BrailleService",
    "BrailleTranslatorError",
    "OnlineBrailleTranslator",
    "transliterate",
    "transliterate_line",
    "wrap_line",
]
