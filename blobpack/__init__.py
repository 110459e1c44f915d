"""
blobpack — pack many named binary resources into one flat container file.

Features:

- Flat, unversioned format: u32 header length, then (u16 id length, id, u64 data
  length) per entry, then all item data back to back.
- Eager loading (`read_blob`) into a single in-memory buffer; lookups return
  zero-copy memoryviews.
- Lazy loading (`open_blob`) that parses only the index and hands out an
  independent, seekable `ItemStream` per lookup over the shared source.
- CLI to pack, list, inspect, stream and unpack archives.

There is no checksum, compression or encryption; treat archives from untrusted
sources accordingly.
"""

from .blob import Blob, read_blob
from .errors import (
    BlobError,
    BlobIOError,
    HeaderTooLarge,
    IdentifierTooLong,
    InvalidSeek,
    ReadOnlyBlob,
    SourceNotSeekable,
    Truncated,
)
from .header import IndexEntry
from .lookup import BlobLookup, item_stream
from .stream import ItemStream
from .streaming import StreamingBlob, open_blob, open_blob_file

__version__ = "0.1"

__all__ = [
    "Blob",
    "read_blob",
    "StreamingBlob",
    "open_blob",
    "open_blob_file",
    "ItemStream",
    "IndexEntry",
    "BlobLookup",
    "item_stream",
    "BlobError",
    "BlobIOError",
    "HeaderTooLarge",
    "IdentifierTooLong",
    "InvalidSeek",
    "ReadOnlyBlob",
    "SourceNotSeekable",
    "Truncated",
]
