from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Iterable, List, Sequence, Tuple, Union

from .constants import (
    COPY_CHUNK_SIZE,
    DATA_LEN_STRUCT,
    ENTRY_OVERHEAD,
    HEADER_LEN_STRUCT,
    ID_LEN_STRUCT,
    MAX_ID_LENGTH,
    PHASE_DATA_LENGTH,
    PHASE_HEADER,
    PHASE_HEADER_LENGTH,
    PHASE_ID,
    PHASE_ID_LENGTH,
)
from .errors import BlobIOError, IdentifierTooLong, Truncated


ItemId = Union[bytes, bytearray, memoryview, str]


@dataclass(frozen=True)
class IndexEntry:
    """One header entry. `start`/`end` are offsets into the data section."""

    id: bytes
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def as_item_id(item_id: ItemId) -> bytes:
    """Identifiers are opaque bytes; str is accepted and encoded as UTF-8."""
    if isinstance(item_id, str):
        return item_id.encode("utf-8")
    return bytes(item_id)


def header_size(entries: Iterable[IndexEntry]) -> int:
    return sum(ENTRY_OVERHEAD + len(e.id) for e in entries)


def encode_header(entries: Sequence[IndexEntry]) -> bytes:
    # Validate everything up front so a bad id never yields a partial header
    for i, e in enumerate(entries):
        if len(e.id) > MAX_ID_LENGTH:
            raise IdentifierTooLong(e.id, i)
    out = bytearray()
    for e in entries:
        out += ID_LEN_STRUCT.pack(len(e.id))
        out += e.id
        out += DATA_LEN_STRUCT.pack(e.length)
    return bytes(out)


def decode_header(header: bytes) -> List[IndexEntry]:
    """Parse header bytes into entries, deriving start/end from the running data length.

    Raises:
        Truncated: if any field runs past the end of `header`.
    """
    view = memoryview(header)
    size = len(view)
    pos = 0
    overall_data_length = 0
    entries: List[IndexEntry] = []
    while pos < size:
        if size - pos < ID_LEN_STRUCT.size:
            raise Truncated(PHASE_ID_LENGTH, ID_LEN_STRUCT.size, size - pos)
        (id_len,) = ID_LEN_STRUCT.unpack_from(view, pos)
        pos += ID_LEN_STRUCT.size

        if size - pos < id_len:
            raise Truncated(PHASE_ID, id_len, size - pos)
        item_id = bytes(view[pos : pos + id_len])
        pos += id_len

        if size - pos < DATA_LEN_STRUCT.size:
            raise Truncated(PHASE_DATA_LENGTH, DATA_LEN_STRUCT.size, size - pos)
        (data_len,) = DATA_LEN_STRUCT.unpack_from(view, pos)
        pos += DATA_LEN_STRUCT.size

        entries.append(IndexEntry(item_id, overall_data_length, overall_data_length + data_len))
        overall_data_length += data_len
    return entries


def read_exact(f: BinaryIO, n: int, phase: str) -> bytes:
    """Read exactly `n` bytes, retrying short reads until filled or EOF.

    `n` usually comes from the archive itself, so reads are issued in bounded
    chunks; a bogus length fails with Truncated once the source runs dry.
    """
    chunks: List[bytes] = []
    got = 0
    while got < n:
        try:
            b = f.read(min(n - got, COPY_CHUNK_SIZE))
        except OSError as exc:
            raise BlobIOError(phase, exc) from exc
        if not b:
            raise Truncated(phase, n, got)
        chunks.append(b)
        got += len(b)
    return b"".join(chunks)


def read_index(f: BinaryIO) -> Tuple[List[IndexEntry], int]:
    """Read the header length and header from `f`, leaving it at the start of the data.

    Returns:
        (entries, header_length)
    """
    raw = read_exact(f, HEADER_LEN_STRUCT.size, PHASE_HEADER_LENGTH)
    (header_len,) = HEADER_LEN_STRUCT.unpack(raw)
    header = read_exact(f, header_len, PHASE_HEADER)
    return decode_header(header), header_len
