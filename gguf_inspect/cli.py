# gguf_inspect/cli.py
"""
cli.py

Rich console CLI:
- inspect: decode a .gguf file and print summary, metadata and tensor tables.
- version: show the package version.
"""
from __future__ import annotations

import argparse
import os
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from gguf_inspect import __version__
from gguf_inspect.errors import GGUFParseError
from gguf_inspect.logging import configure_logging
from gguf_inspect.model_formats.gguf.gguf_parser import (
    DecodeOptions,
    decode_file,
    decode_file_header_and_metadata,
)
from gguf_inspect.reporting import gguf_reporter
from gguf_inspect.reporting.json_reporter import write_json

console = Console()


def _positive_int(text: str) -> int:
    n = int(text)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return n


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gguf-inspect",
        description="Decode GGUF model files: header, metadata and tensor descriptors.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    sub = p.add_subparsers(dest="cmd", title="Available Commands", metavar="<command>")

    sp = sub.add_parser("inspect", help="Decode a local .gguf file")
    sp.add_argument("path", help="Path to model file (.gguf)")
    sp.add_argument("--debug", action="store_true", help="Enable debug logging")
    sp.add_argument("--verbose", action="store_true", help="Enable info logging")
    sp.add_argument(
        "--metadata-only",
        action="store_true",
        help="Decode only the header and metadata (skip the tensor table)",
    )
    sp.add_argument(
        "--byte-order",
        choices=["little", "big", "auto"],
        default="little",
        help="Byte order of multi-byte fields (default: little)",
    )
    sp.add_argument(
        "--alignment",
        type=_positive_int,
        default=None,
        help="Tensor data alignment when the file sets none (default: 32)",
    )
    sp.add_argument(
        "--max-metadata", type=_positive_int, default=None, help="Show at most N metadata entries"
    )
    sp.add_argument("--no-tensors", action="store_true", help="Do not print the tensor table")
    sp.add_argument("--json-out", type=str, default=None, help="Write JSON report to this path")

    sub.add_parser("version", help="Show the version of gguf-inspect")

    return p


def _options_from_args(args: argparse.Namespace) -> DecodeOptions:
    if args.alignment is None:
        return DecodeOptions(byte_order=args.byte_order)
    return DecodeOptions(byte_order=args.byte_order, alignment=args.alignment)


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    if args.cmd == "version":
        console.print(f"gguf-inspect version {__version__}")
        return 0

    if args.cmd == "inspect":
        configure_logging(debug=args.debug, verbose=args.verbose)
        path = args.path
        if not os.path.exists(path):
            console.print(f"[red]File not found:[/red] {path}")
            return 2

        try:
            options = _options_from_args(args)
        except ValueError as e:
            console.print(f"[red]Invalid option:[/red] {e}")
            return 2

        try:
            if args.metadata_only:
                model = decode_file_header_and_metadata(path, options)
            else:
                model = decode_file(path, options)
        except GGUFParseError as e:
            console.print(
                Panel(f"[bold red]{e.kind}[/bold red]: {e.detail}", title="Decode failed", style="red")
            )
            return 1
        except OSError as e:
            console.print(f"[red]Cannot read file:[/red] {path} ({e.strerror or e})")
            return 2

        gguf_reporter.render_report(
            model,
            path=path,
            max_metadata=args.max_metadata,
            show_tensors=not args.no_tensors,
        )

        if args.json_out:
            write_json(model, args.json_out)
            console.print(f"[dim]Wrote JSON report → {args.json_out}[/dim]")

        return 0

    parser.print_help()
    return 1
