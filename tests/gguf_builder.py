"""
Hand-rolled GGUF byte builder for test fixtures.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from gguf_inspect.model_formats.gguf.gguf import GGUF_MAGIC
from gguf_inspect.model_formats.gguf.gguf_values import GGUFValueType

_FORMATS = {
    GGUFValueType.UINT8: "B",
    GGUFValueType.INT8: "b",
    GGUFValueType.UINT16: "H",
    GGUFValueType.INT16: "h",
    GGUFValueType.UINT32: "I",
    GGUFValueType.INT32: "i",
    GGUFValueType.FLOAT32: "f",
    GGUFValueType.BOOL: "?",
    GGUFValueType.UINT64: "Q",
    GGUFValueType.INT64: "q",
    GGUFValueType.FLOAT64: "d",
}


def pack(fmt: str, value: Any, order: str = "<") -> bytes:
    return struct.pack(order + fmt, value)


def pack_string(s: Any, order: str = "<") -> bytes:
    raw = s.encode("utf-8") if isinstance(s, str) else bytes(s)
    return pack("Q", len(raw), order) + raw


def pack_scalar(vtype: GGUFValueType, value: Any, order: str = "<") -> bytes:
    if vtype is GGUFValueType.STRING:
        return pack_string(value, order)
    return pack(_FORMATS[vtype], value, order)


def pack_value(
    vtype: GGUFValueType,
    value: Any,
    element_type: Optional[GGUFValueType] = None,
    order: str = "<",
) -> bytes:
    """Type tag followed by the encoded value."""
    out = pack("i", int(vtype), order)
    if vtype is GGUFValueType.ARRAY:
        out += pack("i", int(element_type), order) + pack("Q", len(value), order)
        return out + b"".join(pack_scalar(element_type, v, order) for v in value)
    return out + pack_scalar(vtype, value, order)


@dataclass
class GGUFBuilder:
    """Assemble a GGUF header, metadata and tensor table (no payload)."""

    version: int = 3
    magic: int = GGUF_MAGIC
    order: str = "<"
    kvs: List[bytes] = field(default_factory=list)
    tensors: List[bytes] = field(default_factory=list)

    def add_kv(
        self,
        key: str,
        vtype: GGUFValueType,
        value: Any,
        element_type: Optional[GGUFValueType] = None,
    ) -> "GGUFBuilder":
        self.kvs.append(pack_string(key, self.order) + pack_value(vtype, value, element_type, self.order))
        return self

    def add_raw_kv(self, raw: bytes) -> "GGUFBuilder":
        self.kvs.append(raw)
        return self

    def add_tensor(
        self, name: str, dims: Sequence[int], ggml_type: int, offset: int = 0
    ) -> "GGUFBuilder":
        o = self.order
        raw = pack_string(name, o) + pack("I", len(dims), o)
        raw += b"".join(pack("Q", d, o) for d in dims)
        raw += pack("i", int(ggml_type), o) + pack("Q", offset, o)
        self.tensors.append(raw)
        return self

    def header_bytes(
        self, tensor_count: Optional[int] = None, metadata_count: Optional[int] = None
    ) -> bytes:
        o = self.order
        nt = len(self.tensors) if tensor_count is None else tensor_count
        nkv = len(self.kvs) if metadata_count is None else metadata_count
        # Magic is a byte signature, always written as the little-endian int.
        return pack("I", self.magic, "<") + pack("i", self.version, o) + pack("Q", nt, o) + pack("Q", nkv, o)

    def build(
        self,
        *,
        alignment: int = 32,
        pad: bytes = b"\x00",
        payload: bytes = b"",
        tensor_count: Optional[int] = None,
        metadata_count: Optional[int] = None,
    ) -> bytes:
        body = self.header_bytes(tensor_count, metadata_count) + b"".join(self.kvs) + b"".join(self.tensors)
        padding = -len(body) % alignment
        return body + pad * padding + payload

    def sections(self) -> Tuple[int, int, int]:
        """End offsets of header, metadata and tensor table."""
        header_end = len(self.header_bytes())
        metadata_end = header_end + sum(len(k) for k in self.kvs)
        return header_end, metadata_end, metadata_end + sum(len(t) for t in self.tensors)
