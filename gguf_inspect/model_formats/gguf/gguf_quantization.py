# gguf_inspect/model_formats/gguf/gguf_quantization.py
"""
GGUF Quantization Types (GGML) and metadata.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict

from gguf_inspect.errors import UnknownTensorTypeError


class GGMLType(IntEnum):
    """GGML tensor types, including quantization."""

    F32 = 0
    F16 = 1
    Q4_0 = 2
    Q4_1 = 3
    # Retired: Q4_2 = 4, Q4_3 = 5
    Q5_0 = 6
    Q5_1 = 7
    Q8_0 = 8
    Q8_1 = 9
    Q2_K = 10
    Q3_K = 11
    Q4_K = 12
    Q5_K = 13
    Q6_K = 14
    Q8_K = 15
    IQ2_XXS = 16
    IQ2_XS = 17
    IQ3_XXS = 18
    IQ1_S = 19
    IQ4_NL = 20
    IQ3_S = 21
    IQ2_S = 22
    IQ4_XS = 23
    I8 = 24
    I16 = 25
    I32 = 26
    I64 = 27
    F64 = 28
    IQ1_M = 29
    BF16 = 30
    Q4_0_4_4 = 31
    Q4_0_4_8 = 32
    Q4_0_8_8 = 33
    TQ1_0 = 34
    TQ2_0 = 35

    @classmethod
    def from_tag(cls, tag: int) -> "GGMLType":
        """Resolve a wire tag, rejecting retired and unknown values."""
        try:
            return cls(tag)
        except ValueError:
            raise UnknownTensorTypeError(f"Unknown GGML tensor type {tag}") from None

    @property
    def info(self) -> "QuantizationInfo":
        return QUANTIZATION_MAP[self]

    @property
    def is_quantized(self) -> bool:
        return QUANTIZATION_MAP[self].is_quantized


@dataclass(frozen=True)
class QuantizationInfo:
    """Storage layout of a GGML type.

    Sizes follow the GGML type traits, block scales included: Q4_0 stores 32
    elements in 18 bytes, and the IQ types use 256-element super-blocks.
    Tables that list a nominal bytes-per-weight (0.5 for Q4_0, 32-element IQ
    blocks) give smaller totals and bits-per-weight for quantized models.

    Attributes:
        block_size: Elements per storage block (1 for dense types).
        type_size: Bytes per block.
    """

    block_size: int
    type_size: int

    @property
    def is_quantized(self) -> bool:
        return self.block_size > 1

    @property
    def bytes_per_element(self) -> float:
        """Nominal bytes per element; fractional for block-quantized types."""
        return self.type_size / self.block_size

    @property
    def bits_per_weight(self) -> float:
        return self.bytes_per_element * 8

    def get_expected_size(self, n_elements: int) -> int:
        """Byte size of a tensor with ``n_elements`` elements of this type.

        Quantized tensors always occupy whole blocks, so a partial trailing
        block is rounded up. ``blocks * type_size`` equals
        ``floor(blocks * bytes_per_element * block_size)`` without going
        through floating point.
        """
        if n_elements < 0:
            raise ValueError(f"Element count must be non-negative, got {n_elements}")
        if not self.is_quantized:
            return n_elements * self.type_size
        n_blocks = -(-n_elements // self.block_size)
        return n_blocks * self.type_size


QK_K = 256

# Mapping from GGMLType to its block layout, after the GGML type traits.
QUANTIZATION_MAP: Dict[GGMLType, QuantizationInfo] = {
    GGMLType.F32: QuantizationInfo(1, 4),
    GGMLType.F16: QuantizationInfo(1, 2),
    GGMLType.Q4_0: QuantizationInfo(32, 2 + 16),
    GGMLType.Q4_1: QuantizationInfo(32, 2 + 2 + 16),
    GGMLType.Q5_0: QuantizationInfo(32, 2 + 4 + 16),
    GGMLType.Q5_1: QuantizationInfo(32, 2 + 2 + 4 + 16),
    GGMLType.Q8_0: QuantizationInfo(32, 2 + 32),
    GGMLType.Q8_1: QuantizationInfo(32, 4 + 4 + 32),
    GGMLType.Q2_K: QuantizationInfo(QK_K, 2 + 2 + QK_K // 16 + QK_K // 4),
    GGMLType.Q3_K: QuantizationInfo(QK_K, 2 + QK_K // 4 + QK_K // 8 + 12),
    GGMLType.Q4_K: QuantizationInfo(QK_K, 2 + 2 + QK_K // 2 + 12),
    GGMLType.Q5_K: QuantizationInfo(QK_K, 2 + 2 + QK_K // 2 + QK_K // 8 + 12),
    GGMLType.Q6_K: QuantizationInfo(QK_K, 2 + QK_K // 2 + QK_K // 4 + QK_K // 16),
    GGMLType.Q8_K: QuantizationInfo(QK_K, 4 + QK_K + QK_K // 8),
    GGMLType.IQ2_XXS: QuantizationInfo(QK_K, 2 + QK_K // 4),
    GGMLType.IQ2_XS: QuantizationInfo(QK_K, 2 + QK_K // 4 + QK_K // 32),
    GGMLType.IQ3_XXS: QuantizationInfo(QK_K, 2 + QK_K // 4 + QK_K // 8),
    GGMLType.IQ1_S: QuantizationInfo(QK_K, 2 + QK_K // 8 + QK_K // 16),
    GGMLType.IQ4_NL: QuantizationInfo(32, 2 + 16),
    GGMLType.IQ3_S: QuantizationInfo(QK_K, 2 + QK_K // 4 + QK_K // 8 + QK_K // 32 + 4),
    GGMLType.IQ2_S: QuantizationInfo(QK_K, 2 + QK_K // 4 + QK_K // 16),
    GGMLType.IQ4_XS: QuantizationInfo(QK_K, 2 + 2 + QK_K // 2 + QK_K // 64),
    GGMLType.I8: QuantizationInfo(1, 1),
    GGMLType.I16: QuantizationInfo(1, 2),
    GGMLType.I32: QuantizationInfo(1, 4),
    GGMLType.I64: QuantizationInfo(1, 8),
    GGMLType.F64: QuantizationInfo(1, 8),
    GGMLType.IQ1_M: QuantizationInfo(QK_K, QK_K // 8 + QK_K // 16 + QK_K // 32),
    GGMLType.BF16: QuantizationInfo(1, 2),
    # Interleaved repacks of Q4_0; same bytes per block.
    GGMLType.Q4_0_4_4: QuantizationInfo(32, 2 + 16),
    GGMLType.Q4_0_4_8: QuantizationInfo(32, 2 + 16),
    GGMLType.Q4_0_8_8: QuantizationInfo(32, 2 + 16),
    GGMLType.TQ1_0: QuantizationInfo(QK_K, 2 + 4 * 13),
    GGMLType.TQ2_0: QuantizationInfo(QK_K, 2 + 64),
}
