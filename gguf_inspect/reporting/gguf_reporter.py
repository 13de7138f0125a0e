# gguf_inspect/reporting/gguf_reporter.py
"""
GGUF console reporting functions.
"""
from __future__ import annotations

from typing import Optional, Union

from rich import box
from rich.console import Console
from rich.table import Table

from gguf_inspect.model_formats.gguf.gguf import GGUFModel, HeaderAndMetadataView
from gguf_inspect.model_formats.gguf.gguf_values import GGUFValue, GGUFValueType

console = Console()

MAX_VALUE_WIDTH = 70


def format_number(n: int) -> str:
    """Human-friendly count: 6.74B, 4.10M, 512."""
    for scale, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if n >= scale:
            return f"{n / scale:.2f}{suffix}"
    return str(n)


def format_bytes(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024.0:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} TB"


def format_value(v: GGUFValue) -> str:
    """One-line rendering of a metadata value, truncated for table cells."""
    if v.is_array:
        count = len(v.value)
        fmt = repr if v.element_type is GGUFValueType.STRING else str
        preview = f"[{', '.join(map(fmt, v.value[:3]))}"
        preview += ", ...]" if count > 3 else "]"
        value_str = f"Array[{v.element_type.name}], Count={count}, Preview={preview}"
    elif v.is_float:
        value_str = f"{v.value:.6f}"
    else:
        value_str = str(v.value)

    # Truncate long strings to keep the table clean
    if len(value_str) > MAX_VALUE_WIDTH:
        value_str = value_str[: MAX_VALUE_WIDTH - 3] + "..."
    return value_str


def _render_summary(model: Union[GGUFModel, HeaderAndMetadataView], path: Optional[str]) -> None:
    t = Table(title="GGUF Summary", box=box.SIMPLE_HEAVY)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    if path:
        t.add_row("Path", path)
    t.add_row("Version", f"{model.header.version_string} ({model.byte_order}-endian)")
    t.add_row("Architecture", model.architecture or "Unknown")
    t.add_row("Name", model.name or "Unknown")
    if model.file_type is not None:
        t.add_row("File Type", f"{model.file_type_name} ({model.file_type})")
    t.add_row("Tensors", str(model.tensor_count))
    t.add_row("Metadata Entries", str(model.metadata_count))

    if isinstance(model, GGUFModel):
        t.add_row("Parameters", format_number(model.total_parameters))
        t.add_row("Model Size", format_bytes(model.total_size_in_bytes))
        t.add_row("Avg BPW", f"{model.average_bits_per_weight:.2f}")
        t.add_row("Alignment", str(model.alignment))
        t.add_row("Data Offset", str(model.tensor_data_offset))

    for label, value in (
        ("Context Length", model.context_length),
        ("Layers", model.block_count),
        ("Embedding Length", model.embedding_length),
        ("Attention Heads", model.attention_head_count),
    ):
        if value is not None:
            t.add_row(label, format_number(value) if label == "Context Length" else str(value))
    console.print(t)


def _render_metadata_table(
    model: Union[GGUFModel, HeaderAndMetadataView], max_entries: Optional[int]
) -> None:
    table = Table(title="Metadata", box=box.ROUNDED, title_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Value", style="white")

    keys = list(model.metadata)  # sorted
    shown = keys if max_entries is None else keys[:max_entries]
    for index, key in enumerate(shown, start=1):
        v = model.metadata[key]
        table.add_row(str(index), key, v.type.name, format_value(v))
    console.print(table)
    if len(shown) < len(keys):
        console.print(f"[dim]... {len(keys) - len(shown)} more entries[/dim]")


def _render_tensor_table(model: GGUFModel) -> None:
    table = Table(title="Tensors", box=box.ROUNDED, show_lines=False, title_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Tensor Name", style="cyan", no_wrap=True)
    table.add_column("Start Address", justify="right", style="white")
    table.add_column("End Address", justify="right", style="white")
    table.add_column("Size", justify="right", style="white")
    table.add_column("GGML Type", justify="left", style="yellow")
    table.add_column("Dimensions", justify="left", style="green")

    for index, ti in enumerate(sorted(model.tensors, key=lambda t: t.offset), start=1):
        start, end = ti.data_range(model.tensor_data_offset)
        table.add_row(
            str(index),
            ti.name,
            str(start),
            str(end),
            format_bytes(end - start),
            ti.ggml_type.name,
            str(list(ti.dims)),
        )
    console.print(table)


def _render_type_profile(model: GGUFModel) -> None:
    profile = model.quantization_profile()
    if not profile:
        return
    table = Table(title="Tensors by Type", box=box.SIMPLE_HEAVY)
    table.add_column("GGML Type", style="yellow")
    table.add_column("Tensors", justify="right")
    for type_name, count in profile.items():
        table.add_row(type_name, str(count))
    console.print(table)


def render_report(
    model: Union[GGUFModel, HeaderAndMetadataView],
    *,
    path: Optional[str] = None,
    max_metadata: Optional[int] = None,
    show_tensors: bool = True,
) -> None:
    """Render the console report for a decoded model or header view."""
    _render_summary(model, path)
    _render_metadata_table(model, max_metadata)
    if isinstance(model, GGUFModel) and show_tensors:
        _render_tensor_table(model)
        _render_type_profile(model)
