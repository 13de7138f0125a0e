"""
Tests for the decoded-model aggregate and tensor descriptor helpers.
"""

import pytest

from gguf_inspect.errors import InvariantViolationError, MalformedHeaderError
from gguf_inspect.model_formats.gguf.gguf import (
    GGUF_MAGIC,
    GGUFHeader,
    GGUFMetadata,
    GGUFModel,
    GGUFTensorInfo,
    HeaderAndMetadataView,
)
from gguf_inspect.model_formats.gguf.gguf_quantization import GGMLType
from gguf_inspect.model_formats.gguf.gguf_values import GGUFValue, GGUFValueType as T


def header(tensors=0, kvs=0, version=3) -> GGUFHeader:
    return GGUFHeader(magic=GGUF_MAGIC, version=version, tensor_count=tensors, metadata_count=kvs)


def tensor(name, dims=(4,), ggml_type=GGMLType.F32, offset=0) -> GGUFTensorInfo:
    return GGUFTensorInfo(name=name, dims=tuple(dims), ggml_type=ggml_type, offset=offset)


def model(tensors=(), **kv) -> GGUFModel:
    meta = GGUFMetadata({k.replace("__", "."): v for k, v in kv.items()})
    return GGUFModel(
        header=header(len(tensors), len(meta)),
        metadata=meta,
        tensors=tuple(tensors),
        tensor_data_offset=0,
    )


def s(value) -> GGUFValue:
    return GGUFValue(T.STRING, value)


class TestHeader:
    def test_valid(self):
        h = header(version=2)
        assert h.version_string == "v2"

    def test_bad_magic(self):
        with pytest.raises(MalformedHeaderError):
            GGUFHeader(magic=0x12345678, version=3, tensor_count=0, metadata_count=0)

    @pytest.mark.parametrize("version", [0, 4, -1])
    def test_bad_version(self, version):
        with pytest.raises(MalformedHeaderError):
            header(version=version)


class TestTensorInfo:
    def test_layer_number(self):
        assert tensor("blk.7.attn_q.weight").layer_number == 7
        assert tensor("output.weight").layer_number == -1
        assert tensor("blk.x.blk.3.ffn.weight").layer_number == 3
        assert tensor("model.blk.12.bias").layer_number == 12
        assert tensor("blk").layer_number == -1
        assert tensor("blk.ffn").layer_number == -1

    def test_weight_and_bias(self):
        w = tensor("blk.0.attn_q.weight")
        assert w.is_weight and not w.is_bias
        b = tensor("blk.0.attn_q.bias")
        assert b.is_bias and not b.is_weight
        assert not tensor("rope_freqs").is_weight

    def test_element_count_and_size(self):
        t = tensor("t", dims=(2, 3), ggml_type=GGMLType.F32)
        assert t.n_dims == 2
        assert t.n_elements == 6
        assert t.size_in_bytes == 24

    def test_quantized_size(self):
        t = tensor("t", dims=(4096, 4096), ggml_type=GGMLType.Q4_K)
        assert t.size_in_bytes == 4096 * 4096 // 256 * 144

    def test_zero_sized_dimension(self):
        t = tensor("t", dims=(0, 8), ggml_type=GGMLType.Q8_0)
        assert t.n_elements == 0
        assert t.size_in_bytes == 0

    def test_data_range(self):
        t = tensor("t", dims=(8,), ggml_type=GGMLType.F16, offset=64)
        assert t.data_range(160) == (224, 240)

    def test_invariants(self):
        with pytest.raises(InvariantViolationError):
            tensor("")
        with pytest.raises(InvariantViolationError):
            tensor("t", dims=())


class TestMetadata:
    def test_mapping_is_sorted_and_read_only(self):
        meta = GGUFMetadata({"b": s("2"), "a": s("1")})
        assert list(meta) == ["a", "b"]
        assert "a" in meta and "c" not in meta
        assert meta.get("c") is None
        with pytest.raises(TypeError):
            meta["c"] = s("3")

    def test_get_int_accepts_wide_integer_families(self):
        meta = GGUFMetadata(
            {
                "u32": GGUFValue(T.UINT32, 1),
                "i32": GGUFValue(T.INT32, -2),
                "u64": GGUFValue(T.UINT64, 3),
                "i64": GGUFValue(T.INT64, 4),
                "u8": GGUFValue(T.UINT8, 5),
                "f": GGUFValue(T.FLOAT32, 6.0),
            }
        )
        assert [meta.get_int(k) for k in ("u32", "i32", "u64", "i64")] == [1, -2, 3, 4]
        assert meta.get_int("u8") is None
        assert meta.get_int("f") is None
        assert meta.get_int("missing") is None

    def test_get_string(self):
        meta = GGUFMetadata({"k": s("v"), "n": GGUFValue(T.UINT32, 1)})
        assert meta.get_string("k") == "v"
        assert meta.get_string("n") is None


class TestAggregate:
    def test_count_invariants(self):
        with pytest.raises(InvariantViolationError):
            GGUFModel(
                header=header(tensors=2),
                metadata=GGUFMetadata({}),
                tensors=(tensor("a"),),
                tensor_data_offset=0,
            )
        with pytest.raises(InvariantViolationError):
            GGUFModel(
                header=header(kvs=3),
                metadata=GGUFMetadata({"a": s("x")}),
                tensors=(),
                tensor_data_offset=0,
            )

    def test_entry_count_covers_duplicates(self):
        meta = GGUFMetadata({"a": s("x")}, entry_count=2, duplicates=("a",))
        m = GGUFModel(header=header(kvs=2), metadata=meta, tensors=(), tensor_data_offset=0)
        assert m.is_valid()

    def test_empty_model_bits_per_weight(self):
        m = model()
        assert m.total_parameters == 0
        assert m.total_size_in_bytes == 0
        assert m.average_bits_per_weight == 0.0

    def test_totals(self):
        m = model(
            [
                tensor("a.weight", (32,), GGMLType.Q4_0),
                tensor("b.weight", (32,), GGMLType.F16, offset=32),
            ]
        )
        assert m.total_parameters == 64
        assert m.total_size_in_bytes == 18 + 64
        assert m.average_bits_per_weight == (18 + 64) * 8 / 64

    def test_architecture_scoped_lookups(self):
        m = model(
            general__architecture=s("llama"),
            general__name=s("tiny"),
            general__file_type=GGUFValue(T.UINT32, 15),
            llama__context_length=GGUFValue(T.UINT64, 4096),
            llama__block_count=GGUFValue(T.INT32, 2),
            llama__embedding_length=GGUFValue(T.INT64, 256),
            llama__attention__head_count=GGUFValue(T.UINT32, 8),
            llama__attention__head_count_kv=GGUFValue(T.UINT16, 4),
        )
        assert m.architecture == "llama"
        assert m.name == "tiny"
        assert m.file_type == 15
        assert m.file_type_name == "MOSTLY_Q4_K_M"
        assert m.context_length == 4096
        assert m.block_count == 2
        assert m.embedding_length == 256
        assert m.attention_head_count == 8
        # u16 is outside the accepted integer families
        assert m.attention_head_count_kv is None
        assert m.feed_forward_length is None

    def test_lookups_without_architecture(self):
        m = model(llama__context_length=GGUFValue(T.UINT32, 4096))
        assert m.architecture is None
        assert m.context_length is None
        assert m.file_type is None
        assert m.file_type_name is None

    def test_tokenizer_ids(self):
        m = model(
            tokenizer__ggml__model=s("llama"),
            tokenizer__ggml__bos_token_id=GGUFValue(T.UINT32, 1),
            tokenizer__ggml__eos_token_id=GGUFValue(T.UINT32, 2),
        )
        assert m.tokenizer_model == "llama"
        assert (m.bos_token_id, m.eos_token_id, m.pad_token_id) == (1, 2, None)

    def test_tensor_queries(self):
        m = model(
            [
                tensor("token_embd.weight", offset=0),
                tensor("blk.0.attn_q.weight", offset=16),
                tensor("blk.0.attn_q.bias", offset=32),
                tensor("blk.1.attn_q.weight", (64,), GGMLType.Q8_0, offset=48),
            ]
        )
        assert m.find_tensor("blk.0.attn_q.bias").offset == 32
        assert m.find_tensor("missing") is None
        assert [t.name for t in m.find_tensors(r"blk\.\d+\.attn_q\.weight")] == [
            "blk.0.attn_q.weight",
            "blk.1.attn_q.weight",
        ]
        assert m.find_tensors("blk") == []
        assert len(m.tensors_by_layer(0)) == 2
        assert len(m.tensors_by_layer(-1)) == 1
        assert len(m.weight_tensors()) == 3
        assert [t.name for t in m.bias_tensors()] == ["blk.0.attn_q.bias"]
        assert {k.name: len(v) for k, v in m.tensors_by_type().items()} == {"F32": 3, "Q8_0": 1}
        assert m.quantization_profile() == {"F32": 3, "Q8_0": 1}

    def test_tensor_bounds_sorted_by_offset(self):
        m = GGUFModel(
            header=header(tensors=2),
            metadata=GGUFMetadata({}),
            tensors=(tensor("late", offset=16), tensor("early", offset=0)),
            tensor_data_offset=96,
        )
        assert m.tensor_bounds() == [("early", 96, 112), ("late", 112, 128)]

    def test_summary(self):
        m = model([tensor("t.weight", (2, 3))], general__architecture=s("llama"))
        text = m.summary()
        assert "Architecture: llama" in text
        assert "Parameters: 6" in text
        assert "Avg BPW: 32.00" in text


class TestHeaderAndMetadataView:
    def test_keeps_header_counts(self):
        view = HeaderAndMetadataView(
            header=header(tensors=291, kvs=1),
            metadata=GGUFMetadata({"general.architecture": s("llama")}),
        )
        assert view.tensor_count == 291
        assert view.metadata_count == 1
        assert view.architecture == "llama"

    def test_metadata_count_invariant(self):
        with pytest.raises(InvariantViolationError):
            HeaderAndMetadataView(header=header(kvs=2), metadata=GGUFMetadata({}))
