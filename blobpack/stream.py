from __future__ import annotations

import io
from typing import BinaryIO

from .constants import COPY_CHUNK_SIZE, PHASE_DATA
from .errors import BlobIOError, InvalidSeek, Truncated


class ItemStream(io.RawIOBase):
    """Seekable read-only view of `length` bytes at absolute offset `base` in `source`.

    Several views may share one source. The source has a single position, so
    every read seeks it to this view's own absolute offset first and never
    relies on where a previous operation left it. Views do not own the source;
    closing a view leaves the source open.

    Access must be sequential: interleaving reads from different views is
    fine as long as each call completes before the next begins. Threads
    sharing a source need their own lock around it.
    """

    def __init__(self, source: BinaryIO, base: int, length: int):
        super().__init__()
        self._source = source
        self._base = base
        self._length = length
        self._pos = 0

    def __repr__(self) -> str:
        return f"ItemStream(base={self._base}, length={self._length}, pos={self._pos})"

    @property
    def base(self) -> int:
        return self._base

    @property
    def size(self) -> int:
        return self._length

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move within the item. The result is clamped to [0, size], never past the item's bounds."""
        self._check_open()
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self._length + offset
        else:
            raise InvalidSeek(offset, whence)
        self._pos = min(max(target, 0), self._length)
        return self._pos

    def readinto(self, b) -> int:
        self._check_open()
        out = memoryview(b).cast("B")
        n = min(len(out), self._length - self._pos)
        if n <= 0:
            return 0
        try:
            self._source.seek(self._base + self._pos)
            got = 0
            while got < n:
                chunk = self._source.read(n - got)
                if not chunk:
                    raise Truncated(PHASE_DATA, n, got)
                out[got : got + len(chunk)] = chunk
                got += len(chunk)
        except OSError as exc:
            raise BlobIOError(PHASE_DATA, exc) from exc
        self._pos += n
        return n

    def readall(self) -> bytes:
        self._check_open()
        chunks = []
        while self._pos < self._length:
            buf = bytearray(min(self._length - self._pos, COPY_CHUNK_SIZE))
            n = self.readinto(buf)
            chunks.append(bytes(buf[:n]))
        return b"".join(chunks)

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed item stream")
