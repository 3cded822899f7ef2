"""Chunking of record sequences into write groups and waves."""

from collections.abc import Iterator, Sequence
from typing import TypeVar

from dynoport.errors import InvalidArgumentError

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Partition `items` into consecutive groups of at most `size` elements.

    Order is preserved and only the last group may be shorter. An empty
    input yields no groups at all.
    """
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        msg = f"chunk size must be a positive integer, got {size!r}"
        raise InvalidArgumentError(msg)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def iter_waves(
    items: Sequence[T],
    wave_size: int,
    batch_size: int,
) -> Iterator[tuple[int, list[list[T]]]]:
    """Yield `(wave_number, groups)` with each wave re-chunked into write groups.

    Wave numbers start at 1.
    """
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        msg = f"batch size must be a positive integer, got {batch_size!r}"
        raise InvalidArgumentError(msg)
    for number, wave in enumerate(chunk(items, wave_size), start=1):
        yield number, chunk(wave, batch_size)
