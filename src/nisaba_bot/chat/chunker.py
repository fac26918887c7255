"""Split replies into transport-sized chunks."""

from __future__ import annotations

_LINE_BREAKS = frozenset("\r\n")


def split_message(text: str, max_size: int) -> list[str]:
    """Split ``text`` into chunks of at most ``max_size`` characters.

    Every line break closes the current chunk and runs of breaks collapse,
    so blank lines never produce empty chunks. Lines longer than
    ``max_size`` are cut into consecutive chunks. Sizes count characters,
    not encoded bytes.

    Args:
        text: Reply text
        max_size: Maximum characters per chunk

    Returns:
        Non-empty chunks in order

    Raises:
        ValueError: If ``max_size`` is less than 1

    Example:
        ```python
        split_message("a\\n\\nb", 10)      # ["a", "b"]
        split_message("x" * 25, 10)     # ["x" * 10, "x" * 10, "x" * 5]
        ```
    """
    if max_size < 1:
        raise ValueError("max_size must be at least 1")

    chunks: list[str] = []
    current: list[str] = []

    for char in text:
        if char in _LINE_BREAKS or len(current) >= max_size:
            if current:
                chunks.append("".join(current))
                current = []
        if char not in _LINE_BREAKS:
            current.append(char)

    if current:
        chunks.append("".join(current))

    return chunks
