from __future__ import annotations

import logging
from typing import BinaryIO, List, Optional

from .constants import HEADER_LEN_STRUCT, PHASE_HEADER_LENGTH
from .errors import BlobError, BlobIOError, SourceNotSeekable
from .header import IndexEntry, ItemId, as_item_id, read_index
from .stream import ItemStream


logger = logging.getLogger(__name__)


class StreamingBlob:
    """Lazy container: only the index is held in memory.

    Each lookup returns a fresh `ItemStream` over the shared source, so two
    lookups of the same item have independent positions.
    """

    def __init__(self, source: BinaryIO, entries: List[IndexEntry], base: int, *, owns_source: bool = False):
        self.source = source
        self.entries = entries
        self.base = base
        self._owns_source = owns_source

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"StreamingBlob(items={len(self.entries)}, base={self.base})"

    def close(self):
        """Close the source if this container opened it; a caller's source is left alone."""
        if self._owns_source and not self.source.closed:
            self.source.close()

    @property
    def data_length(self) -> int:
        return self.entries[-1].end if self.entries else 0

    def item_count(self) -> int:
        return len(self.entries)

    def get_id_at_index(self, i: int) -> bytes:
        if i < 0 or i >= len(self.entries):
            return b""
        return self.entries[i].id

    def get_by_id(self, item_id: ItemId) -> Optional[ItemStream]:
        key = as_item_id(item_id)
        for e in self.entries:
            if e.id == key:
                return self._view(e)
        return None

    def get_by_index(self, i: int) -> Optional[ItemStream]:
        if i < 0 or i >= len(self.entries):
            return None
        return self._view(self.entries[i])

    def _view(self, e: IndexEntry) -> ItemStream:
        return ItemStream(self.source, self.base + e.start, e.length)


def open_blob(source: BinaryIO) -> StreamingBlob:
    """Parse the index at the current position of `source` without reading any item data.

    The source must be seekable; it stays owned by the caller.
    """
    seekable = getattr(source, "seekable", None)
    if seekable is not None and not seekable():
        raise SourceNotSeekable("streaming access needs a seekable source")
    try:
        origin = source.tell()
    except OSError as exc:
        raise BlobIOError(PHASE_HEADER_LENGTH, exc) from exc
    entries, header_len = read_index(source)
    base = origin + HEADER_LEN_STRUCT.size + header_len
    logger.debug("opened blob: %d items, header %d bytes, data at offset %d", len(entries), header_len, base)
    return StreamingBlob(source, entries, base)


def open_blob_file(path: str) -> StreamingBlob:
    """Open `path` and parse its index; the returned container closes the file."""
    f = open(path, "rb")
    try:
        blob = open_blob(f)
    except (BlobError, OSError):
        # Do not leak the handle when the index is unreadable
        f.close()
        raise
    blob._owns_source = True
    return blob
