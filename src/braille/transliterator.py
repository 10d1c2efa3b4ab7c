"""Local Grade 1 Braille transliteration.

Maps text letter-for-letter to 6-dot Unicode Braille cells, wraps lines to
the standard 40-cell width and estimates the page count at 25 lines a page.
"""

import math

from pydantic import BaseModel, Field

from src.models.schemas import ProgressCallback

# Constants
LINE_WIDTH = 40
LINES_PER_PAGE = 25
CAPITAL_SIGN = "⠠"
NUMERIC_SIGN = "⠼"

LETTERS = {
    "a": "⠁", "b": "⠃", "c": "⠉", "d": "⠙", "e": "⠑", "f": "⠋",
    "g": "⠛", "h": "⠓", "i": "⠊", "j": "⠚", "k": "⠅", "l": "⠇",
    "m": "⠍", "n": "⠝", "o": "⠕", "p": "⠏", "q": "⠟", "r": "⠗",
    "s": "⠎", "t": "⠞", "u": "⠥", "v": "⠧", "w": "⠺", "x": "⠭",
    "y": "⠽", "z": "⠵",
}  # fmt: skip

# Digits reuse the a-j cells behind the numeric indicator
DIGITS = {digit: NUMERIC_SIGN + LETTERS[letter] for digit, letter in zip("1234567890", "abcdefghij")}

PUNCTUATION = {
    ".": "⠲", ",": "⠂", ";": "⠆", ":": "⠒", "!": "⠖", "?": "⠦",
    "'": "⠄", '"': "⠦", "(": "⠷", ")": "⠾", "-": "⠤",
    " ": " ", "\r": "", "\t": " ",
}  # fmt: skip

BRAILLE_MAP: dict[str, str] = {**LETTERS, **DIGITS, **PUNCTUATION}


class BrailleResult(BaseModel):
    """Braille rendering of a document.

    Attributes:
        braille_text: Newline-separated Braille lines.
        page_count: Braille pages at 25 lines per page.
    """

    braille_text: str
    page_count: int = Field(ge=0)


def transliterate_line(line: str) -> str:
    """Convert one line of text to Grade 1 Braille.

    Uppercase letters get the capital sign before the letter cell. Characters
    missing from the table pass through unchanged.
    """
    cells: list[str] = []
    for char in line:
        lower = char.lower()
        if char != lower and lower in LETTERS:
            cells.append(CAPITAL_SIGN + LETTERS[lower])
        else:
            cells.append(BRAILLE_MAP.get(lower, char))
    return "".join(cells)


def wrap_line(line: str, width: int = LINE_WIDTH) -> list[str]:
    """Word-wrap a Braille line to at most ``width`` cells.

    Words longer than the width are hard-split at the width boundary.
    """
    if len(line) <= width:
        return [line]

    wrapped: list[str] = []
    current = ""
    for word in line.split(" "):
        while len(word) > width:
            if current:
                wrapped.append(current)
                current = ""
            wrapped.append(word[:width])
            word = word[width:]

        if not current:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current = f"{current} {word}"
        else:
            wrapped.append(current)
            current = word

    if current:
        wrapped.append(current)
    return wrapped or [""]


def page_count_for(line_count: int) -> int:
    return math.ceil(line_count / LINES_PER_PAGE)


def paginate(lines: list[str]) -> BrailleResult:
    return BrailleResult(braille_text="\n".join(lines), page_count=page_count_for(len(lines)))


def transliterate(text: str, on_progress: ProgressCallback | None = None) -> BrailleResult:
    """Convert text to wrapped Grade 1 Braille.

    Empty source lines are kept so paragraph breaks survive. Empty input
    produces no lines and zero pages.

    Args:
        text: Cleaned document text.
        on_progress: Called with the fraction of source lines processed.

    Returns:
        BrailleResult with the Braille text and page count.
    """
    if not text:
        if on_progress:
            on_progress(1.0)
        return BrailleResult(braille_text="", page_count=0)

    source_lines = text.split("\n")
    total = len(source_lines)
    braille_lines: list[str] = []

    for processed, line in enumerate(source_lines, start=1):
        braille_lines.extend(wrap_line(transliterate_line(line)))
        if on_progress:
            on_progress(processed / total)

    return paginate(braille_lines)
