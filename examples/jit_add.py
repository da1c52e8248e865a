"""Build a one-function library from C source, load it, and call it."""

import ctypes
import sys

from jitdylib import LibrarySpec, Toolchain, build_library, load_library


def main(output: str = "/tmp/libFoo.dylib") -> int:
    spec = LibrarySpec.create("Foo").add_source("int add(int a,int b){return a+b;}", "c")
    result = build_library(spec, output, toolchain=Toolchain.from_environ())
    print(f"built {result.output_path} as {result.install_name}")

    with load_library(result.output_path) as handle:
        add = handle.function("add", ctypes.c_int, ctypes.c_int, ctypes.c_int)
        print(f"add(2, 3) = {add(2, 3)}")
    return 0


if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:]))
