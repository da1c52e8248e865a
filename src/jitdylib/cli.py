"""Command-line interface.

Usage:
    jitdylib build NAME -o OUT [--c FILE] [--cpp FILE] [--asm FILE] [--object FILE] [--json]
    jitdylib symbols LIB SYMBOL [SYMBOL ...]
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from jitdylib.builder import LibraryBuilder
from jitdylib.errors import BuildStatus, IOFailureError, JitDylibError
from jitdylib.library import LibrarySpec
from jitdylib.loader import load_library
from jitdylib.models import Language
from jitdylib.observability import StructuredLogger
from jitdylib.toolchain import Toolchain


class _AppendSource(argparse.Action):
    """Collect ``--c/--cpp/--asm`` files in command-line order."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: object,
        option_string: str | None = None,
    ) -> None:
        entries = list(getattr(namespace, self.dest, None) or [])
        entries.append((self.const, values))
        setattr(namespace, self.dest, entries)


def cmd_build(args: argparse.Namespace) -> int:
    logger = StructuredLogger()
    toolchain = Toolchain.from_environ()
    if args.sdk_root:
        toolchain = replace(toolchain, sdk_root=args.sdk_root)
    try:
        spec = LibrarySpec.create(args.name)
        for language, path in args.sources or []:
            spec.add_source(_read_text(path), language)
        for path in args.objects or []:
            spec.add_object(_read_bytes(path))
        result = LibraryBuilder(toolchain=toolchain, logger=logger).build(spec, args.output)
    except JitDylibError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return -int(exc.status)
    finally:
        if args.log_json:
            logger.to_json_lines(args.log_json)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        print(f"Built {result.output_path} (install name {result.install_name})")
    return int(BuildStatus.SUCCESS)


def cmd_symbols(args: argparse.Namespace) -> int:
    try:
        handle = load_library(args.library)
    except JitDylibError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return -int(exc.status)
    missing = 0
    with handle:
        for name in args.symbols:
            address = handle.symbol(name)
            if address is None:
                missing += 1
                print(f"{name} <absent>")
            else:
                print(f"{name} {address:#x}")
    return 1 if missing else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jitdylib",
        description="Just-in-time shared library builder",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build_p = sub.add_parser("build", help="Compile sources and objects into one shared library")
    build_p.add_argument("name", help="Library name used in diagnostics")
    build_p.add_argument("-o", "--output", required=True, help="Output image path")
    for language in Language:
        build_p.add_argument(
            f"--{language.value}",
            dest="sources",
            action=_AppendSource,
            const=language,
            metavar="FILE",
            help=f"Add a {language.value} source file (repeatable)",
        )
    build_p.add_argument(
        "--object",
        dest="objects",
        action="append",
        metavar="FILE",
        help="Add a precompiled object file (repeatable)",
    )
    build_p.add_argument("--sdk-root", help="SDK root; defaults to xcrun discovery")
    build_p.add_argument("--log-json", help="Write structured build log as JSON lines")
    build_p.add_argument("--json", action="store_true", help="Print the build result as JSON")

    symbols_p = sub.add_parser("symbols", help="Load a library and resolve symbols")
    symbols_p.add_argument("library", help="Path of the image to load")
    symbols_p.add_argument("symbols", nargs="+", help="Symbol names to resolve")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "build":
        return cmd_build(args)
    return cmd_symbols(args)


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise IOFailureError("Failed to read source file.", context={"path": path}) from exc


def _read_bytes(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise IOFailureError("Failed to read object file.", context={"path": path}) from exc
