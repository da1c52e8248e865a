"""Combine C, C++, assembly and a precompiled object into one image."""

import sys
from pathlib import Path

from jitdylib import BuildStatus, LibrarySpec, StructuredLogger, build_status

ASM = ".globl _seven\n.p2align 2\n_seven:\n  mov w0, #7\n  ret\n"


def main(output: str, object_file: str | None = None) -> int:
    spec = (
        LibrarySpec.create("Mixed")
        .add_source("int add(int a, int b) { return a + b; }", "c")
        .add_source('extern "C" int mul(int a, int b) { return a * b; }', "cpp")
        .add_source(ASM, "asm")
    )
    if object_file is not None:
        spec.add_object(Path(object_file).read_bytes())

    logger = StructuredLogger()
    status = build_status(spec, output, logger=logger)
    logger.to_json_lines(Path(output).with_suffix(".build.jsonl"))
    print(f"{spec.name}: {status.name}")
    return 0 if status is BuildStatus.SUCCESS else 1


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:]))
