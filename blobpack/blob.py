from __future__ import annotations

import errno
import io
import logging
from typing import BinaryIO, List, Optional

from .constants import (
    HEADER_LEN_STRUCT,
    MAX_HEADER_LENGTH,
    PHASE_DATA,
    PHASE_HEADER,
    PHASE_HEADER_LENGTH,
)
from .errors import BlobIOError, HeaderTooLarge, ReadOnlyBlob
from .header import IndexEntry, ItemId, as_item_id, encode_header, read_exact, read_index


logger = logging.getLogger(__name__)


def _write_all(f: BinaryIO, data: bytes, phase: str) -> None:
    view = memoryview(data)
    while view:
        try:
            n = f.write(view)
        except OSError as exc:
            raise BlobIOError(phase, exc, writing=True) from exc
        if n is None:
            # Non-blocking raw sink that would block; nothing was written
            exc = BlockingIOError(errno.EAGAIN, "sink would block")
            raise BlobIOError(phase, exc, writing=True) from exc
        if n <= 0:
            exc = OSError(errno.EIO, "sink accepted no bytes")
            raise BlobIOError(phase, exc, writing=True) from exc
        view = view[n:]


class Blob:
    """In-memory container: the parsed index plus one buffer with all item data.

    Build one with `append` and serialize it with `write`, or load a complete
    archive with `read_blob`. Lookups return read-only memoryviews into the
    buffer, never copies.

    The first lookup after an `append` snapshots the whole buffer, so a loop
    that alternates `append` and `get_*` is quadratic in the data size.
    Append everything first, then look items up.
    """

    def __init__(self):
        self.entries: List[IndexEntry] = []
        self._data = bytearray()
        # Immutable snapshot lookups slice into; dropped on every append so
        # views handed out earlier stay valid.
        self._frozen: Optional[bytes] = None
        self._read_only = False

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Blob(items={len(self.entries)}, data_len={self.data_length})"

    @property
    def data_length(self) -> int:
        return self.entries[-1].end if self.entries else 0

    def item_count(self) -> int:
        return len(self.entries)

    def append(self, item_id: ItemId, data: bytes) -> None:
        """Add one entry. The id length is only checked when writing."""
        if self._read_only:
            raise ReadOnlyBlob("blob loaded by read_blob cannot be appended to")
        start = len(self._data)
        self._data += data
        self.entries.append(IndexEntry(as_item_id(item_id), start, len(self._data)))
        self._frozen = None

    def _buffer(self) -> memoryview:
        if self._frozen is None:
            self._frozen = bytes(self._data)
        return memoryview(self._frozen)

    def _slice(self, e: IndexEntry) -> memoryview:
        return self._buffer()[e.start : e.end]

    def get_by_id(self, item_id: ItemId) -> Optional[memoryview]:
        """Data of the first entry with this id, or None."""
        key = as_item_id(item_id)
        for e in self.entries:
            if e.id == key:
                return self._slice(e)
        return None

    def get_by_index(self, i: int) -> Optional[memoryview]:
        if i < 0 or i >= len(self.entries):
            return None
        return self._slice(self.entries[i])

    def get_id_at_index(self, i: int) -> bytes:
        if i < 0 or i >= len(self.entries):
            return b""
        return self.entries[i].id

    def write(self, f: BinaryIO) -> None:
        """Write header length, header and data to `f`.

        The header is fully encoded before anything reaches `f`, so an
        oversized id fails without touching the sink.

        Raises:
            IdentifierTooLong: an id exceeds 65535 bytes.
            HeaderTooLarge: the header does not fit the u32 length field.
            BlobIOError: the sink failed; `phase` tells which part was being written.
        """
        header = encode_header(self.entries)
        if len(header) > MAX_HEADER_LENGTH:
            raise HeaderTooLarge(len(header))
        _write_all(f, HEADER_LEN_STRUCT.pack(len(header)), PHASE_HEADER_LENGTH)
        _write_all(f, header, PHASE_HEADER)
        data = self._frozen if self._frozen is not None else self._data
        _write_all(f, data, PHASE_DATA)
        logger.debug("wrote blob: %d items, header %d bytes, data %d bytes", len(self.entries), len(header), len(data))

    def to_bytes(self) -> bytes:
        out = io.BytesIO()
        self.write(out)
        return out.getvalue()


def read_blob(f: BinaryIO) -> Blob:
    """Load a whole archive (index and data) from `f` into memory.

    Nothing is returned unless every field was read completely.
    """
    entries, header_len = read_index(f)
    data_len = entries[-1].end if entries else 0
    data = read_exact(f, data_len, PHASE_DATA)
    b = Blob()
    b.entries = entries
    b._frozen = data
    b._read_only = True
    logger.debug("read blob: %d items, header %d bytes, data %d bytes", len(entries), header_len, data_len)
    return b
