from __future__ import annotations

from .constants import MAX_HEADER_LENGTH, MAX_ID_LENGTH


class BlobError(Exception):
    """Base class for blobpack errors."""


# Write-time
class IdentifierTooLong(BlobError):
    def __init__(self, item_id: bytes, index: int):
        self.item_id = item_id
        self.index = index
        self.length = len(item_id)
        super().__init__(
            f"identifier of entry {index} is {self.length} bytes long, at most {MAX_ID_LENGTH} are allowed"
        )


class HeaderTooLarge(BlobError):
    def __init__(self, length: int):
        self.length = length
        super().__init__(f"encoded header is {length} bytes, at most {MAX_HEADER_LENGTH} are allowed")


class ReadOnlyBlob(BlobError):
    pass


# Read-time
class Truncated(BlobError):
    """A fixed-size or length-prefixed field ended early."""

    def __init__(self, phase: str, expected: int, got: int):
        self.phase = phase
        self.expected = expected
        self.got = got
        super().__init__(f"reading blob {phase}: unexpected EOF (wanted {expected} bytes, got {got})")


class BlobIOError(BlobError):
    """The underlying sink or source failed; the underlying error is kept as `cause`."""

    def __init__(self, phase: str, cause: BaseException, *, writing: bool = False):
        self.phase = phase
        self.cause = cause
        self.writing = writing
        verb = "writing" if writing else "reading"
        super().__init__(f"{verb} blob {phase}: {cause}")


class SourceNotSeekable(BlobError):
    pass


# Streaming view
class InvalidSeek(BlobError, ValueError):
    def __init__(self, offset: int, whence: int):
        self.offset = offset
        self.whence = whence
        super().__init__(f"invalid whence ({whence!r}, should be 0, 1 or 2)")
