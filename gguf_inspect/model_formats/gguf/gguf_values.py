# gguf_inspect/model_formats/gguf/gguf_values.py
"""
GGUF metadata value types and the value decoder.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Tuple

from gguf_inspect.errors import ArrayTooLargeError, NestedArrayError, UnknownValueTypeError
from gguf_inspect.io.binary_reader import BinaryReader


class GGUFValueType(IntEnum):
    """GGUF metadata value type codes."""

    UINT8 = 0
    INT8 = 1
    UINT16 = 2
    INT16 = 3
    UINT32 = 4
    INT32 = 5
    FLOAT32 = 6
    BOOL = 7
    STRING = 8
    ARRAY = 9
    UINT64 = 10
    INT64 = 11
    FLOAT64 = 12

    @classmethod
    def from_tag(cls, tag: int) -> "GGUFValueType":
        try:
            return cls(tag)
        except ValueError:
            raise UnknownValueTypeError(f"Unknown GGUF value type {tag}") from None


INTEGER_TYPES = frozenset(
    {
        GGUFValueType.UINT8,
        GGUFValueType.INT8,
        GGUFValueType.UINT16,
        GGUFValueType.INT16,
        GGUFValueType.UINT32,
        GGUFValueType.INT32,
        GGUFValueType.UINT64,
        GGUFValueType.INT64,
    }
)
FLOAT_TYPES = frozenset({GGUFValueType.FLOAT32, GGUFValueType.FLOAT64})

# Integer families accepted for counts, lengths and token ids.
WIDE_INTEGER_TYPES = frozenset(
    {GGUFValueType.UINT32, GGUFValueType.INT32, GGUFValueType.UINT64, GGUFValueType.INT64}
)

# One reader per non-array type; ARRAY is handled by read_value itself.
SCALAR_READERS: Dict[GGUFValueType, Callable[[BinaryReader], Any]] = {
    GGUFValueType.UINT8: BinaryReader.read_uint8,
    GGUFValueType.INT8: BinaryReader.read_int8,
    GGUFValueType.UINT16: BinaryReader.read_uint16,
    GGUFValueType.INT16: BinaryReader.read_int16,
    GGUFValueType.UINT32: BinaryReader.read_uint32,
    GGUFValueType.INT32: BinaryReader.read_int32,
    GGUFValueType.FLOAT32: BinaryReader.read_float32,
    GGUFValueType.BOOL: BinaryReader.read_bool,
    GGUFValueType.STRING: BinaryReader.read_string,
    GGUFValueType.UINT64: BinaryReader.read_uint64,
    GGUFValueType.INT64: BinaryReader.read_int64,
    GGUFValueType.FLOAT64: BinaryReader.read_float64,
}


@dataclass(frozen=True)
class GGUFValue:
    """A decoded metadata value.

    For arrays ``value`` is a tuple of plain Python values and
    ``element_type`` names their type. For scalars ``element_type`` is None.
    """

    type: GGUFValueType
    value: Any
    element_type: Optional[GGUFValueType] = None

    @property
    def is_array(self) -> bool:
        return self.type is GGUFValueType.ARRAY

    @property
    def is_string(self) -> bool:
        return self.type is GGUFValueType.STRING

    @property
    def is_bool(self) -> bool:
        return self.type is GGUFValueType.BOOL

    @property
    def is_float(self) -> bool:
        return self.type in FLOAT_TYPES

    @property
    def is_integer(self) -> bool:
        return self.type in INTEGER_TYPES

    @property
    def is_uint32(self) -> bool:
        return self.type is GGUFValueType.UINT32

    @property
    def is_int32(self) -> bool:
        return self.type is GGUFValueType.INT32

    @property
    def is_uint64(self) -> bool:
        return self.type is GGUFValueType.UINT64

    @property
    def is_int64(self) -> bool:
        return self.type is GGUFValueType.INT64

    def _expect(self, ok: bool, wanted: str) -> None:
        if not ok:
            raise TypeError(f"Expected {wanted} value, got {self.type.name}")

    def as_string(self) -> str:
        self._expect(self.is_string, "STRING")
        return self.value

    def as_int(self) -> int:
        self._expect(self.is_integer, "integer")
        return self.value

    def as_float(self) -> float:
        self._expect(self.is_float, "float")
        return self.value

    def as_bool(self) -> bool:
        self._expect(self.is_bool, "BOOL")
        return self.value

    def as_array(self) -> Tuple[Any, ...]:
        self._expect(self.is_array, "ARRAY")
        return self.value

    def __len__(self) -> int:
        self._expect(self.is_array, "ARRAY")
        return len(self.value)

    def to_python(self) -> Any:
        """Plain Python value (arrays become lists)."""
        if self.is_array:
            return list(self.value)
        return self.value


def read_value(reader: BinaryReader, *, max_array_length: int = sys.maxsize) -> GGUFValue:
    """Read a type tag and the value it announces."""
    vtype = GGUFValueType.from_tag(reader.read_int32())
    if vtype is GGUFValueType.ARRAY:
        return _read_array(reader, max_array_length)
    return GGUFValue(vtype, SCALAR_READERS[vtype](reader))


def _read_array(reader: BinaryReader, max_array_length: int) -> GGUFValue:
    start = reader.position
    etype = GGUFValueType.from_tag(reader.read_int32())
    if etype is GGUFValueType.ARRAY:
        raise NestedArrayError(f"Nested array at offset {start}; arrays of arrays are not allowed")
    count = reader.read_uint64()
    if count > max_array_length:
        raise ArrayTooLargeError(
            f"Array of {etype.name} at offset {start} has {count} elements (limit {max_array_length})"
        )
    read = SCALAR_READERS[etype]
    values = tuple(read(reader) for _ in range(count))
    return GGUFValue(GGUFValueType.ARRAY, values, element_type=etype)
