"""
Well-known GGUF metadata keys and file-type names.
"""

from __future__ import annotations

from typing import Dict

# General
GENERAL_ARCHITECTURE = "general.architecture"
GENERAL_NAME = "general.name"
GENERAL_AUTHOR = "general.author"
GENERAL_DESCRIPTION = "general.description"
GENERAL_LICENSE = "general.license"
GENERAL_ALIGNMENT = "general.alignment"
GENERAL_FILE_TYPE = "general.file_type"
GENERAL_QUANTIZATION_VERSION = "general.quantization_version"

# Architecture-scoped suffixes, appended to the value of general.architecture
CONTEXT_LENGTH = ".context_length"
EMBEDDING_LENGTH = ".embedding_length"
BLOCK_COUNT = ".block_count"
FEED_FORWARD_LENGTH = ".feed_forward_length"
ATTENTION_HEAD_COUNT = ".attention.head_count"
ATTENTION_HEAD_COUNT_KV = ".attention.head_count_kv"
ATTENTION_LAYER_NORM_RMS_EPSILON = ".attention.layer_norm_rms_epsilon"
ROPE_DIMENSION_COUNT = ".rope.dimension_count"
ROPE_FREQ_BASE = ".rope.freq_base"
EXPERT_COUNT = ".expert_count"
EXPERT_USED_COUNT = ".expert_used_count"

# Tokenizer
TOKENIZER_MODEL = "tokenizer.ggml.model"
TOKENIZER_TOKENS = "tokenizer.ggml.tokens"
TOKENIZER_SCORES = "tokenizer.ggml.scores"
TOKENIZER_MERGES = "tokenizer.ggml.merges"
TOKENIZER_BOS_TOKEN_ID = "tokenizer.ggml.bos_token_id"
TOKENIZER_EOS_TOKEN_ID = "tokenizer.ggml.eos_token_id"
TOKENIZER_UNK_TOKEN_ID = "tokenizer.ggml.unknown_token_id"
TOKENIZER_PAD_TOKEN_ID = "tokenizer.ggml.padding_token_id"
TOKENIZER_CHAT_TEMPLATE = "tokenizer.chat_template"

# general.file_type values (llama.cpp LLAMA_FTYPE_*)
FILE_TYPE_NAMES: Dict[int, str] = {
    0: "ALL_F32",
    1: "MOSTLY_F16",
    2: "MOSTLY_Q4_0",
    3: "MOSTLY_Q4_1",
    4: "MOSTLY_Q4_1_SOME_F16",
    7: "MOSTLY_Q8_0",
    8: "MOSTLY_Q5_0",
    9: "MOSTLY_Q5_1",
    10: "MOSTLY_Q2_K",
    11: "MOSTLY_Q3_K_S",
    12: "MOSTLY_Q3_K_M",
    13: "MOSTLY_Q3_K_L",
    14: "MOSTLY_Q4_K_S",
    15: "MOSTLY_Q4_K_M",
    16: "MOSTLY_Q5_K_S",
    17: "MOSTLY_Q5_K_M",
    18: "MOSTLY_Q6_K",
    19: "MOSTLY_IQ2_XXS",
    20: "MOSTLY_IQ2_XS",
    21: "MOSTLY_Q2_K_S",
    22: "MOSTLY_IQ3_XS",
    23: "MOSTLY_IQ3_XXS",
    24: "MOSTLY_IQ1_S",
    25: "MOSTLY_IQ4_NL",
    26: "MOSTLY_IQ3_S",
    27: "MOSTLY_IQ2_S",
    28: "MOSTLY_IQ4_XS",
    29: "MOSTLY_IQ1_M",
    30: "MOSTLY_BF16",
    31: "MOSTLY_Q4_0_4_4",
    32: "MOSTLY_Q4_0_4_8",
    33: "MOSTLY_Q4_0_8_8",
    34: "MOSTLY_TQ1_0",
    35: "MOSTLY_TQ2_0",
}
