"""Fixed-size text chunking with overlap."""

from __future__ import annotations

from langchain_core.documents import Document

from docchat.errors import EmptyContent

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 100


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Document]:
    """Split *text* into overlapping fixed-size windows.

    Text no longer than ``chunk_size`` yields exactly one chunk equal to
    the input. Longer text gets a window starting at every multiple of
    ``chunk_size - chunk_overlap`` below its length; windows are cut off
    at the end of the text, so the last ones can be shorter than
    ``chunk_size``.

    Parameters
    ----------
    text:
        Extracted document text. Chunks are exact substrings of it.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of characters shared by consecutive chunks.

    Returns
    -------
    list[Document]
        Chunks in order, with ``chunk_index`` and ``start_index`` metadata.

    Raises
    ------
    ValueError
        If the sizes would not advance through the text.
    EmptyContent
        If *text* is empty or whitespace only.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size ({chunk_size}) must be > 0")
    if chunk_overlap < 0:
        raise ValueError(f"chunk_overlap ({chunk_overlap}) must be >= 0")
    if chunk_overlap >= chunk_size:
        raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")
    if not text.strip():
        raise EmptyContent("Empty document content")

    if len(text) <= chunk_size:
        return [Document(page_content=text, metadata={"chunk_index": 0, "start_index": 0})]

    step = chunk_size - chunk_overlap
    return [
        Document(
            page_content=text[start : start + chunk_size],
            metadata={"chunk_index": index, "start_index": start},
        )
        for index, start in enumerate(range(0, len(text), step))
    ]
