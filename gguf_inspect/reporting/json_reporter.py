# gguf_inspect/reporting/json_reporter.py
"""
JSON reporting utilities (optional).
"""

from __future__ import annotations

import json
from typing import Any, Dict, Union

from gguf_inspect.model_formats.gguf.gguf import GGUFModel, HeaderAndMetadataView
from gguf_inspect.observability import to_dict


def to_json_dict(model: Union[GGUFModel, HeaderAndMetadataView]) -> Dict[str, Any]:
    """Convert a decoded model (or header view) to a JSON-serializable dict."""
    out: Dict[str, Any] = {
        "header": to_dict(model.header),
        "byte_order": model.byte_order,
        "summary": {
            "architecture": model.architecture,
            "name": model.name,
            "file_type": model.file_type,
            "file_type_name": model.file_type_name,
            "context_length": model.context_length,
            "block_count": model.block_count,
        },
        "metadata": {k: v.to_python() for k, v in model.metadata.items()},
    }
    if isinstance(model, GGUFModel):
        out["summary"].update(
            {
                "total_parameters": model.total_parameters,
                "total_size_in_bytes": model.total_size_in_bytes,
                "average_bits_per_weight": model.average_bits_per_weight,
                "quantization_profile": model.quantization_profile(),
            }
        )
        out["alignment"] = model.alignment
        out["tensor_data_offset"] = model.tensor_data_offset
        out["layout"] = to_dict(model.layout)
        out["tensors"] = [
            {**to_dict(t), "n_elements": t.n_elements, "size_in_bytes": t.size_in_bytes}
            for t in model.tensors
        ]
    return out


def write_json(model: Union[GGUFModel, HeaderAndMetadataView], path: str) -> None:
    """Write report to a file as pretty JSON."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_json_dict(model), f, indent=2)
