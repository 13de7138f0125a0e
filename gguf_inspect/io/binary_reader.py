"""
Forward-only, position-tracked binary reader.

Works over any bytes-like object (zero-copy for ``memoryview``/``mmap``) or any
binary file-like object exposing ``read(n)``. Multi-byte values are decoded in
``byte_order`` (little-endian unless told otherwise).
"""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, Optional, Union

from gguf_inspect.errors import EndOfStreamError, InvalidStringError, UnsignedOverflowError

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]

INT64_MAX = (1 << 63) - 1
BYTE_ORDERS = ("little", "big")
_SKIP_CHUNK = 8192
_READ_CHUNK = 1 << 20


class _BufferSource:
    """``read(n)`` over a memoryview without copying the whole buffer."""

    __slots__ = ("_mv", "_off")

    def __init__(self, buf: Any):
        self._mv = memoryview(buf)
        self._off = 0

    def read(self, n: int) -> bytes:
        chunk = bytes(self._mv[self._off : self._off + n])
        self._off += len(chunk)
        return chunk

    def release(self) -> None:
        self._mv.release()


class BinaryReader:
    """Sequential reader of GGUF primitives.

    Attributes:
        position: Number of bytes consumed so far.
        byte_order: ``"little"`` or ``"big"``.
    """

    __slots__ = ("_src", "_owned", "_prefix", "byte_order", "position")

    def __init__(self, source: ByteSource, *, byte_order: str = "little"):
        if hasattr(source, "read"):
            self._src = source
            self._owned: Optional[_BufferSource] = None
        else:
            self._owned = _BufferSource(source)
            self._src = self._owned
        self.position = 0
        self.set_byte_order(byte_order)

    def __enter__(self) -> "BinaryReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the reader's own view. Caller-owned streams are left open."""
        if self._owned is not None:
            self._owned.release()
            self._owned = None

    def set_byte_order(self, byte_order: str) -> None:
        if byte_order not in BYTE_ORDERS:
            raise ValueError(f"byte_order must be one of {BYTE_ORDERS}, got {byte_order!r}")
        self.byte_order = byte_order
        self._prefix = "<" if byte_order == "little" else ">"

    # -- raw bytes ---------------------------------------------------------

    def read_bytes(self, n: int) -> bytes:
        """Read exactly ``n`` bytes or raise :class:`EndOfStreamError`."""
        if n < 0:
            raise ValueError(f"Cannot read a negative number of bytes: {n}")
        # Bounded requests: file objects allocate the requested size up front.
        # Pipes and sockets may return short reads before EOF.
        parts = []
        got = 0
        while got < n:
            more = self._src.read(min(n - got, _READ_CHUNK))
            if not more:
                break
            parts.append(more)
            got += len(more)
        data = parts[0] if len(parts) == 1 else b"".join(parts)
        if len(data) != n:
            raise EndOfStreamError(
                f"Unexpected end of stream at offset {self.position + len(data)}: "
                f"needed {n} bytes, got {len(data)}"
            )
        self.position += n
        return bytes(data)

    def skip(self, n: int) -> None:
        """Discard ``n`` bytes."""
        if n < 0:
            raise ValueError(f"Cannot skip a negative number of bytes: {n}")
        while n > 0:
            step = min(n, _SKIP_CHUNK)
            self.read_bytes(step)
            n -= step

    def align(self, alignment: int) -> None:
        """Skip to the next multiple of ``alignment``. Padding content is not checked."""
        if alignment <= 0:
            raise ValueError(f"Alignment must be positive, got {alignment}")
        self.skip(-self.position % alignment)

    # -- scalars -----------------------------------------------------------

    def _unpack(self, fmt: str, size: int) -> Any:
        (v,) = struct.unpack(self._prefix + fmt, self.read_bytes(size))
        return v

    def read_uint8(self) -> int:
        return self._unpack("B", 1)

    def read_int8(self) -> int:
        return self._unpack("b", 1)

    def read_uint16(self) -> int:
        return self._unpack("H", 2)

    def read_int16(self) -> int:
        return self._unpack("h", 2)

    def read_uint32(self) -> int:
        return self._unpack("I", 4)

    def read_int32(self) -> int:
        return self._unpack("i", 4)

    def read_uint64(self) -> int:
        """Read an unsigned 64-bit integer.

        Values with the top bit set are rejected with
        :class:`UnsignedOverflowError`: every u64 field must also fit a signed
        64-bit integer. This is a deliberate limit, not a truncation.
        """
        start = self.position
        v = self._unpack("Q", 8)
        if v > INT64_MAX:
            raise UnsignedOverflowError(
                f"Unsigned 64-bit value {v} at offset {start} exceeds {INT64_MAX}"
            )
        return v

    def read_int64(self) -> int:
        return self._unpack("q", 8)

    def read_float32(self) -> float:
        return self._unpack("f", 4)

    def read_float64(self) -> float:
        return self._unpack("d", 8)

    def read_bool(self) -> bool:
        return self.read_uint8() != 0

    def read_string(self) -> str:
        """Read a u64 length-prefixed UTF-8 string (strict decoding)."""
        start = self.position
        length = self.read_uint64()
        raw = self.read_bytes(length)
        try:
            return raw.decode("utf-8", "strict")
        except UnicodeDecodeError as e:
            raise InvalidStringError(f"Invalid UTF-8 in string at offset {start}: {e.reason}") from e
