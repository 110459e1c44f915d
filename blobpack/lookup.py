from __future__ import annotations

import io
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from .header import ItemId


@runtime_checkable
class BlobLookup(Protocol):
    """Lookup operations shared by `Blob` and `StreamingBlob`."""

    def item_count(self) -> int: ...

    def get_id_at_index(self, i: int) -> bytes: ...

    def get_by_id(self, item_id: ItemId): ...

    def get_by_index(self, i: int): ...


def item_stream(blob: BlobLookup, key: Union[int, ItemId]) -> Optional[BinaryIO]:
    """Seekable binary stream for an item of either container kind, or None.

    An int key is an index; anything else is an id. In-memory slices are
    wrapped in `io.BytesIO`; streaming views are returned as they are.
    """
    found = blob.get_by_index(key) if isinstance(key, int) else blob.get_by_id(key)
    if found is None:
        return None
    if isinstance(found, io.IOBase):
        return found
    return io.BytesIO(found)
