# gguf_inspect/model_formats/gguf/gguf_parser.py
"""
GGUF decoding: header, metadata table and tensor descriptors (v1/v2/v3).
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from loguru import logger

from gguf_inspect.errors import (
    DimensionTooLargeError,
    GGUFParseError,
    MalformedHeaderError,
)
from gguf_inspect.io.binary_reader import BYTE_ORDERS, BinaryReader, ByteSource
from gguf_inspect.io.file_reader import LocalFileSource
from gguf_inspect.observability import Timer

from . import gguf_keys as keys
from .gguf import (
    DEFAULT_ALIGNMENT,
    GGML_MAX_DIMS,
    GGUF_MAGIC,
    GGUF_MAGIC_BYTES,
    SUPPORTED_VERSIONS,
    GGUFHeader,
    GGUFLayout,
    GGUFMetadata,
    GGUFModel,
    GGUFTensorInfo,
    HeaderAndMetadataView,
)
from .gguf_quantization import GGMLType
from .gguf_values import GGUFValue, read_value


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True)
class DecodeOptions:
    """Decoder settings.

    Attributes:
        byte_order: ``"little"`` (GGUF's wire order), ``"big"``, or ``"auto"``
            to pick whichever order yields a supported version field.
        alignment: Tensor data alignment used when the file does not set one.
        honor_alignment_key: Use ``general.alignment`` from the metadata when
            it holds a valid value.
        max_dims: Upper bound on a tensor's dimension count.
        max_array_length: Upper bound on metadata array element counts.
    """

    byte_order: str = "little"
    alignment: int = DEFAULT_ALIGNMENT
    honor_alignment_key: bool = True
    max_dims: int = GGML_MAX_DIMS
    max_array_length: int = sys.maxsize

    def __post_init__(self) -> None:
        if self.byte_order not in BYTE_ORDERS + ("auto",):
            raise ValueError(f"byte_order must be little, big or auto, got {self.byte_order!r}")
        if not _is_power_of_two(self.alignment):
            raise ValueError(f"alignment must be a positive power of two, got {self.alignment}")
        if self.max_dims < 1:
            raise ValueError(f"max_dims must be at least 1, got {self.max_dims}")
        if self.max_array_length < 0:
            raise ValueError(f"max_array_length must be non-negative, got {self.max_array_length}")


DEFAULT_OPTIONS = DecodeOptions()


def _open_reader(source: ByteSource, options: DecodeOptions) -> BinaryReader:
    order = "little" if options.byte_order == "auto" else options.byte_order
    return BinaryReader(source, byte_order=order)


def _read_magic(reader: BinaryReader) -> int:
    raw = reader.read_bytes(4)
    if raw != GGUF_MAGIC_BYTES:
        raise MalformedHeaderError(f"Invalid magic {raw!r}; not GGUF")
    return GGUF_MAGIC


def _read_version(reader: BinaryReader, byte_order: str) -> int:
    raw = reader.read_bytes(4)
    if byte_order == "auto":
        for order in BYTE_ORDERS:
            version = int.from_bytes(raw, order, signed=True)
            if version in SUPPORTED_VERSIONS:
                reader.set_byte_order(order)
                return version
        le = int.from_bytes(raw, "little", signed=True)
        be = int.from_bytes(raw, "big", signed=True)
        raise MalformedHeaderError(
            f"Unsupported version field (LE={le}, BE={be}); expected one of {SUPPORTED_VERSIONS}"
        )
    version = int.from_bytes(raw, reader.byte_order, signed=True)
    GGUFHeader.check_version(version)
    return version


def _read_header(reader: BinaryReader, options: DecodeOptions) -> GGUFHeader:
    magic = _read_magic(reader)
    version = _read_version(reader, options.byte_order)
    n_tensors = reader.read_uint64()
    n_kv = reader.read_uint64()
    header = GGUFHeader(magic=magic, version=version, tensor_count=n_tensors, metadata_count=n_kv)
    logger.debug(
        "GGUF {v} ({order}-endian): {nt} tensors, {nkv} metadata entries",
        v=header.version_string,
        order=reader.byte_order,
        nt=n_tensors,
        nkv=n_kv,
    )
    return header


def _read_metadata(reader: BinaryReader, count: int, options: DecodeOptions) -> GGUFMetadata:
    kv: Dict[str, GGUFValue] = {}
    duplicates: List[str] = []
    for _ in range(count):
        key = reader.read_string()
        value = read_value(reader, max_array_length=options.max_array_length)
        if key in kv:
            # Last write wins.
            logger.warning("Duplicate metadata key {key!r}; keeping the later value", key=key)
            duplicates.append(key)
        kv[key] = value
    return GGUFMetadata(kv, entry_count=count, duplicates=tuple(duplicates))


def _read_tensor_info(reader: BinaryReader, options: DecodeOptions) -> GGUFTensorInfo:
    start = reader.position
    name = reader.read_string()
    n_dims = reader.read_uint32()
    if n_dims > options.max_dims:
        raise DimensionTooLargeError(
            f"Tensor {name!r} at offset {start} has {n_dims} dimensions (limit {options.max_dims})"
        )
    dims = tuple(reader.read_uint64() for _ in range(n_dims))
    ggml_type = GGMLType.from_tag(reader.read_int32())
    rel_off = reader.read_uint64()  # offset relative to data section
    return GGUFTensorInfo(name=name, dims=dims, ggml_type=ggml_type, offset=rel_off)


def _resolve_alignment(metadata: GGUFMetadata, options: DecodeOptions) -> int:
    if not options.honor_alignment_key or keys.GENERAL_ALIGNMENT not in metadata:
        return options.alignment
    value = metadata.get_int(keys.GENERAL_ALIGNMENT)
    if value is None or not _is_power_of_two(value):
        logger.warning(
            "Ignoring invalid {key}={value!r}; using {default}",
            key=keys.GENERAL_ALIGNMENT,
            value=metadata[keys.GENERAL_ALIGNMENT].value,
            default=options.alignment,
        )
        return options.alignment
    return value


def _decode(reader: BinaryReader, options: DecodeOptions) -> GGUFModel:
    header = _read_header(reader, options)
    header_end = reader.position

    with Timer("metadata") as t_kv:
        metadata = _read_metadata(reader, header.metadata_count, options)
    metadata_end = reader.position
    logger.debug("Metadata decoded in {ms:.2f}ms", ms=t_kv.duration_ms)

    alignment = _resolve_alignment(metadata, options)

    with Timer("tensor_info") as t_ti:
        tensors = tuple(_read_tensor_info(reader, options) for _ in range(header.tensor_count))
    tensor_info_end = reader.position
    logger.debug("Tensor descriptors decoded in {ms:.2f}ms", ms=t_ti.duration_ms)

    reader.align(alignment)
    data_start = reader.position

    return GGUFModel(
        header=header,
        metadata=metadata,
        tensors=tensors,
        tensor_data_offset=data_start,
        alignment=alignment,
        byte_order=reader.byte_order,
        layout=GGUFLayout(
            header_end=header_end,
            metadata_end=metadata_end,
            tensor_info_end=tensor_info_end,
            data_offset=data_start,
        ),
    )


def _decode_header_and_metadata(reader: BinaryReader, options: DecodeOptions) -> HeaderAndMetadataView:
    header = _read_header(reader, options)
    metadata = _read_metadata(reader, header.metadata_count, options)
    return HeaderAndMetadataView(
        header=header,
        metadata=metadata,
        byte_order=reader.byte_order,
        metadata_end=reader.position,
    )


def decode(source: ByteSource, options: Optional[DecodeOptions] = None) -> GGUFModel:
    """Decode header, metadata and tensor descriptors from ``source``.

    Args:
        source: Bytes-like object or binary stream positioned at the start of
            the file. Streams are read forward only and are not closed.
        options: Decoder settings; defaults to :data:`DEFAULT_OPTIONS`.

    Raises:
        GGUFParseError: Any structural problem, see :mod:`gguf_inspect.errors`.
    """
    options = options or DEFAULT_OPTIONS
    with _open_reader(source, options) as reader:
        with Timer("decode") as t:
            model = _decode(reader, options)
    logger.debug(
        "Decoded {n} tensors, data offset {off}, in {ms:.2f}ms",
        n=model.tensor_count,
        off=model.tensor_data_offset,
        ms=t.duration_ms,
    )
    return model


def decode_header_and_metadata(
    source: ByteSource, options: Optional[DecodeOptions] = None
) -> HeaderAndMetadataView:
    """Decode only the header and metadata table, skipping tensor descriptors.

    The returned view reports the tensor count stored in the header, not 0,
    even though no tensor descriptor is read.
    """
    options = options or DEFAULT_OPTIONS
    with _open_reader(source, options) as reader:
        return _decode_header_and_metadata(reader, options)


def decode_file(path: str, options: Optional[DecodeOptions] = None) -> GGUFModel:
    """Memory-map ``path`` and decode it. The mapping is released on every exit path."""
    with LocalFileSource(path).open() as mf:
        logger.debug("Decoding {path} ({size} bytes)", path=path, size=mf.size)
        return decode(mf.view, options)


def decode_file_header_and_metadata(
    path: str, options: Optional[DecodeOptions] = None
) -> HeaderAndMetadataView:
    with LocalFileSource(path).open() as mf:
        return decode_header_and_metadata(mf.view, options)


def _sniff(source: ByteSource) -> Tuple[bytes, bytes]:
    with BinaryReader(source) as reader:
        return reader.read_bytes(4), reader.read_bytes(4)


def is_gguf(source: ByteSource) -> bool:
    """True when ``source`` starts with the GGUF magic and a supported version."""
    try:
        magic, raw_version = _sniff(source)
    except GGUFParseError:
        return False
    return (
        magic == GGUF_MAGIC_BYTES
        and int.from_bytes(raw_version, "little", signed=True) in SUPPORTED_VERSIONS
    )


def read_version(source: ByteSource, *, byte_order: str = "little") -> int:
    """Version field of a GGUF stream, without validating its range."""
    with BinaryReader(source, byte_order=byte_order) as reader:
        _read_magic(reader)
        return reader.read_int32()
