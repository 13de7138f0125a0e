# gguf_inspect/model_formats/gguf/gguf.py
"""
GGUF shared structures: header, metadata table, tensor descriptors and the
decoded-model aggregate.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from gguf_inspect.errors import InvariantViolationError, MalformedHeaderError

from . import gguf_keys as keys
from .gguf_quantization import GGMLType
from .gguf_values import GGUFValue, GGUFValueType, WIDE_INTEGER_TYPES

GGUF_MAGIC = 0x46554747  # b"GGUF" read as little-endian int32
GGUF_MAGIC_BYTES = b"GGUF"
SUPPORTED_VERSIONS = (1, 2, 3)
DEFAULT_ALIGNMENT = 32
GGML_MAX_DIMS = 4

_INTEGER_SEGMENT = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class GGUFHeader:
    magic: int
    version: int
    tensor_count: int
    metadata_count: int

    def __post_init__(self) -> None:
        self.check_magic(self.magic)
        self.check_version(self.version)

    @staticmethod
    def check_magic(magic: int) -> None:
        if magic != GGUF_MAGIC:
            raise MalformedHeaderError(f"Invalid magic 0x{magic & 0xFFFFFFFF:08x}; not GGUF")

    @staticmethod
    def check_version(version: int) -> None:
        if version not in SUPPORTED_VERSIONS:
            raise MalformedHeaderError(
                f"Unsupported GGUF version {version}; expected one of {SUPPORTED_VERSIONS}"
            )

    @property
    def version_string(self) -> str:
        return f"v{self.version}"


class GGUFMetadata(Mapping[str, GGUFValue]):
    """Read-only key/value table. Iterates in sorted key order.

    Attributes:
        entry_count: Key/value records decoded, duplicates included.
        duplicates: Keys that appeared more than once (last write won).
    """

    __slots__ = ("_values", "entry_count", "duplicates")

    def __init__(
        self,
        values: Mapping[str, GGUFValue],
        *,
        entry_count: Optional[int] = None,
        duplicates: Tuple[str, ...] = (),
    ):
        self._values: Dict[str, GGUFValue] = dict(values)
        self.entry_count = len(self._values) if entry_count is None else entry_count
        self.duplicates = tuple(duplicates)

    def __getitem__(self, key: str) -> GGUFValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"GGUFMetadata({len(self._values)} entries)"

    def get_string(self, key: str) -> Optional[str]:
        v = self._values.get(key)
        return v.value if v is not None and v.is_string else None

    def get_int(self, key: str, *, types=WIDE_INTEGER_TYPES) -> Optional[int]:
        """Integer value of ``key`` if its type is one of ``types``."""
        v = self._values.get(key)
        if v is None or v.type not in types:
            return None
        return int(v.value)

    def get_arch_int(self, architecture: str, suffix: str) -> Optional[int]:
        return self.get_int(architecture + suffix)


_FILE_TYPE_TYPES = frozenset({GGUFValueType.UINT32, GGUFValueType.INT32})


class _MetadataQueries:
    """Metadata-derived lookups shared by the full model and the header view."""

    metadata: GGUFMetadata

    @property
    def architecture(self) -> Optional[str]:
        return self.metadata.get_string(keys.GENERAL_ARCHITECTURE)

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get_string(keys.GENERAL_NAME)

    @property
    def file_type(self) -> Optional[int]:
        return self.metadata.get_int(keys.GENERAL_FILE_TYPE, types=_FILE_TYPE_TYPES)

    @property
    def file_type_name(self) -> Optional[str]:
        ft = self.file_type
        if ft is None:
            return None
        return keys.FILE_TYPE_NAMES.get(ft, f"UNKNOWN_{ft}")

    @property
    def quantization_version(self) -> Optional[int]:
        return self.metadata.get_int(keys.GENERAL_QUANTIZATION_VERSION)

    def arch_int(self, suffix: str) -> Optional[int]:
        """Integer at ``<architecture><suffix>``, e.g. ``llama.context_length``."""
        arch = self.architecture
        if arch is None:
            return None
        return self.metadata.get_arch_int(arch, suffix)

    @property
    def context_length(self) -> Optional[int]:
        return self.arch_int(keys.CONTEXT_LENGTH)

    @property
    def embedding_length(self) -> Optional[int]:
        return self.arch_int(keys.EMBEDDING_LENGTH)

    @property
    def block_count(self) -> Optional[int]:
        return self.arch_int(keys.BLOCK_COUNT)

    @property
    def feed_forward_length(self) -> Optional[int]:
        return self.arch_int(keys.FEED_FORWARD_LENGTH)

    @property
    def attention_head_count(self) -> Optional[int]:
        return self.arch_int(keys.ATTENTION_HEAD_COUNT)

    @property
    def attention_head_count_kv(self) -> Optional[int]:
        return self.arch_int(keys.ATTENTION_HEAD_COUNT_KV)

    @property
    def rope_dimension_count(self) -> Optional[int]:
        return self.arch_int(keys.ROPE_DIMENSION_COUNT)

    @property
    def tokenizer_model(self) -> Optional[str]:
        return self.metadata.get_string(keys.TOKENIZER_MODEL)

    @property
    def bos_token_id(self) -> Optional[int]:
        return self.metadata.get_int(keys.TOKENIZER_BOS_TOKEN_ID)

    @property
    def eos_token_id(self) -> Optional[int]:
        return self.metadata.get_int(keys.TOKENIZER_EOS_TOKEN_ID)

    @property
    def unk_token_id(self) -> Optional[int]:
        return self.metadata.get_int(keys.TOKENIZER_UNK_TOKEN_ID)

    @property
    def pad_token_id(self) -> Optional[int]:
        return self.metadata.get_int(keys.TOKENIZER_PAD_TOKEN_ID)


def _check_metadata_count(header: GGUFHeader, metadata: GGUFMetadata) -> None:
    if metadata.entry_count != header.metadata_count:
        raise InvariantViolationError(
            f"Metadata count mismatch: header says {header.metadata_count}, "
            f"got {metadata.entry_count} entries"
        )


@dataclass(frozen=True)
class GGUFTensorInfo:
    name: str
    dims: Tuple[int, ...]
    ggml_type: GGMLType
    offset: int  # relative to data section

    def __post_init__(self) -> None:
        if not self.name:
            raise InvariantViolationError("Tensor name cannot be empty")
        if not self.dims:
            raise InvariantViolationError(f"Tensor {self.name!r} has no dimensions")

    @property
    def n_dims(self) -> int:
        return len(self.dims)

    @property
    def n_elements(self) -> int:
        """Total number of elements in the tensor."""
        p = 1
        for d in self.dims:
            p *= d
        return p

    @property
    def size_in_bytes(self) -> int:
        return self.ggml_type.info.get_expected_size(self.n_elements)

    @property
    def is_weight(self) -> bool:
        return self.name.endswith(".weight")

    @property
    def is_bias(self) -> bool:
        return self.name.endswith(".bias")

    @property
    def layer_number(self) -> int:
        """Block index from names like ``blk.7.attn_q.weight``; -1 when absent."""
        parts = self.name.split(".")
        for i in range(len(parts) - 1):
            if parts[i] == "blk" and _INTEGER_SEGMENT.fullmatch(parts[i + 1]):
                return int(parts[i + 1])
        return -1

    def data_range(self, data_offset: int) -> Tuple[int, int]:
        """Absolute ``[start, end)`` of this tensor's payload."""
        start = data_offset + self.offset
        return start, start + self.size_in_bytes


@dataclass(frozen=True)
class GGUFLayout:
    """Absolute byte offsets at which each section ended."""

    header_end: int
    metadata_end: int
    tensor_info_end: int
    data_offset: int


@dataclass(frozen=True)
class GGUFModel(_MetadataQueries):
    header: GGUFHeader
    metadata: GGUFMetadata
    tensors: Tuple[GGUFTensorInfo, ...]
    tensor_data_offset: int  # absolute offset of data section
    alignment: int = DEFAULT_ALIGNMENT
    byte_order: str = "little"
    layout: Optional[GGUFLayout] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tensors", tuple(self.tensors))
        if len(self.tensors) != self.header.tensor_count:
            raise InvariantViolationError(
                f"Tensor count mismatch: header says {self.header.tensor_count}, "
                f"got {len(self.tensors)} tensors"
            )
        _check_metadata_count(self.header, self.metadata)

    @property
    def version(self) -> int:
        return self.header.version

    @property
    def tensor_count(self) -> int:
        return self.header.tensor_count

    @property
    def metadata_count(self) -> int:
        return self.header.metadata_count

    @property
    def total_parameters(self) -> int:
        return sum(t.n_elements for t in self.tensors)

    @property
    def total_size_in_bytes(self) -> int:
        return sum(t.size_in_bytes for t in self.tensors)

    @property
    def average_bits_per_weight(self) -> float:
        n = self.total_parameters
        if n == 0:
            return 0.0
        return self.total_size_in_bytes * 8.0 / n

    def find_tensor(self, name: str) -> Optional[GGUFTensorInfo]:
        for t in self.tensors:
            if t.name == name:
                return t
        return None

    def find_tensors(self, pattern: str) -> List[GGUFTensorInfo]:
        """Tensors whose whole name matches the regular expression ``pattern``."""
        rx = re.compile(pattern)
        return [t for t in self.tensors if rx.fullmatch(t.name)]

    def tensors_by_layer(self, layer: int) -> List[GGUFTensorInfo]:
        return [t for t in self.tensors if t.layer_number == layer]

    def weight_tensors(self) -> List[GGUFTensorInfo]:
        return [t for t in self.tensors if t.is_weight]

    def bias_tensors(self) -> List[GGUFTensorInfo]:
        return [t for t in self.tensors if t.is_bias]

    def tensors_by_type(self) -> Dict[GGMLType, List[GGUFTensorInfo]]:
        groups: Dict[GGMLType, List[GGUFTensorInfo]] = {}
        for t in self.tensors:
            groups.setdefault(t.ggml_type, []).append(t)
        return groups

    def quantization_profile(self) -> Dict[str, int]:
        """Tensor count per GGML type name, sorted by name."""
        counts = Counter(t.ggml_type.name for t in self.tensors)
        return dict(sorted(counts.items()))

    def tensor_bounds(self) -> List[Tuple[str, int, int]]:
        """``(name, start, end)`` absolute payload extents, ordered by offset."""
        order = sorted(self.tensors, key=lambda t: t.offset)
        return [(t.name, *t.data_range(self.tensor_data_offset)) for t in order]

    def is_valid(self) -> bool:
        return (
            self.header.version in SUPPORTED_VERSIONS
            and len(self.tensors) == self.header.tensor_count
            and self.metadata.entry_count == self.header.metadata_count
        )

    def summary(self) -> str:
        lines = [
            "GGUF File Summary:",
            f"  Version: {self.header.version_string}",
            f"  Architecture: {self.architecture or 'Unknown'}",
            f"  Name: {self.name or 'Unknown'}",
            f"  Tensors: {self.tensor_count}",
            f"  Parameters: {self.total_parameters}",
            f"  Size: {self.total_size_in_bytes / (1024.0 * 1024.0):.2f} MB",
            f"  Avg BPW: {self.average_bits_per_weight:.2f}",
        ]
        if self.context_length is not None:
            lines.append(f"  Context Length: {self.context_length}")
        if self.block_count is not None:
            lines.append(f"  Layers: {self.block_count}")
        return "\n".join(lines)


@dataclass(frozen=True)
class HeaderAndMetadataView(_MetadataQueries):
    """Header and metadata decoded without the tensor table.

    ``header.tensor_count`` keeps the value stored in the file; there is no
    tensor list to compare it with.
    """

    header: GGUFHeader
    metadata: GGUFMetadata
    byte_order: str = "little"
    metadata_end: int = 0

    def __post_init__(self) -> None:
        _check_metadata_count(self.header, self.metadata)

    @property
    def version(self) -> int:
        return self.header.version

    @property
    def tensor_count(self) -> int:
        return self.header.tensor_count

    @property
    def metadata_count(self) -> int:
        return self.header.metadata_count
