# gguf_inspect/errors.py
"""
Decode error taxonomy.

Every failure raised while decoding a GGUF stream derives from
:class:`GGUFParseError`. Each subclass carries a stable ``kind`` string so
presentation layers can report which class of failure occurred without
matching on message text.
"""
from __future__ import annotations


class GGUFParseError(Exception):
    """Raised when a GGUF file is malformed."""

    kind: str = "parse_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MalformedHeaderError(GGUFParseError):
    """Bad magic bytes or an unsupported format version."""

    kind = "malformed_header"


class EndOfStreamError(GGUFParseError):
    """The byte source ran out in the middle of a read."""

    kind = "end_of_stream"


class UnknownTypeError(GGUFParseError):
    kind = "unknown_type_tag"


class UnknownValueTypeError(UnknownTypeError):
    """Unrecognised metadata value type tag."""


class UnknownTensorTypeError(UnknownTypeError):
    """Unrecognised GGML element type tag."""


class NestedArrayError(GGUFParseError):
    kind = "nested_array"


class ArrayTooLargeError(GGUFParseError):
    kind = "array_too_large"


class DimensionTooLargeError(ArrayTooLargeError):
    """Tensor dimension count above the configured maximum."""


class UnsignedOverflowError(GGUFParseError):
    """Unsigned 64-bit field with its sign bit set."""

    kind = "overflow"


class InvalidStringError(GGUFParseError):
    """String bytes that are not valid UTF-8."""

    kind = "invalid_string"


class InvariantViolationError(GGUFParseError):
    """Decoded structures disagree with the counts the header declared."""

    kind = "invariant_violation"
