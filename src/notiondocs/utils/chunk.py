"""Batch blocks for the append-children endpoint.

Notion accepts at most 100 children per append call, so longer block
lists are sent as consecutive batches in their original order.
"""

from __future__ import annotations

from typing import Any


def chunk_children(blocks: list[dict[str, Any]], size: int = 100) -> list[list[dict[str, Any]]]:
    """Split *blocks* into consecutive batches of at most *size* items.

    Parameters
    ----------
    blocks:
        Block dicts to partition.  Order is preserved across batches.
    size:
        Maximum batch length.  Defaults to Notion's limit of 100.

    Returns
    -------
    list[list[dict]]
        The batches.  An empty input returns ``[]``, never ``[[]]``.

    Raises
    ------
    ValueError
        If *size* is less than 1.

    Examples
    --------
    >>> [len(b) for b in chunk_children([{"type": "divider"}] * 250)]
    [100, 100, 50]
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    if not blocks:
        return []

    return [blocks[i : i + size] for i in range(0, len(blocks), size)]
