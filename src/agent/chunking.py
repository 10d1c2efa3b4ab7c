"""Split long text into bounded chunks at natural boundaries."""

from pydantic import BaseModel, Field

# Preferred chunk endings, best first; each chunk ends just after the separator
BOUNDARIES = ("\n\n", ". ", "\n", " ")


class TextChunk(BaseModel):
    """A contiguous slice of source text.

    Attributes:
        index: Position of the chunk in the document.
        start: Offset of the chunk's first character in the source.
        text: The chunk's text.
    """

    index: int = Field(ge=0)
    start: int = Field(ge=0)
    text: str


def _chunk_end(text: str, start: int, chunk_size: int) -> int:
    end = min(start + chunk_size, len(text))
    if end >= len(text):
        return end

    # Never search back past the midpoint, so chunks stay reasonably long
    floor = start + chunk_size // 2
    for separator in BOUNDARIES:
        boundary = text.rfind(separator, floor + 1, end)
        if boundary != -1:
            return boundary + len(separator)
    return end


def split_into_chunks(text: str, chunk_size: int) -> list[TextChunk]:
    """Split text into chunks of at most ``chunk_size`` characters.

    Chunks end at a paragraph break if one lies in the second half of the
    window, else at a sentence end, a line break, or a space, and only cut
    mid-word when none exists. Concatenating the chunks restores the text.

    Args:
        text: Text to split.
        chunk_size: Target chunk size in characters.

    Returns:
        Ordered list of chunks.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    chunks: list[TextChunk] = []
    start = 0
    while start < len(text):
        end = _chunk_end(text, start, chunk_size)
        chunks.append(TextChunk(index=len(chunks), start=start, text=text[start:end]))
        start = end
    return chunks
