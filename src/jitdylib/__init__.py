"""Public package entrypoint for the just-in-time shared library builder."""

from .builder import LibraryBuilder, build_library, build_status
from .errors import (
    BuildStatus,
    BuildToolError,
    ErrorCode,
    InvalidArgumentError,
    IOFailureError,
    JitDylibError,
    LoadError,
    OutOfMemoryError,
    status_of,
)
from .library import LibrarySpec, add_object, add_source, create_library, destroy_library
from .loader import (
    LibraryHandle,
    executable_path,
    get_symbol,
    is_code_signing_enforced,
    is_library_loaded,
    last_error,
    load_library,
    unload_library,
)
from .models import BuildResult, Language, ObjectEntry, SourceEntry
from .observability import StructuredLogger
from .toolchain import Toolchain

__all__ = [
    "BuildResult",
    "BuildStatus",
    "BuildToolError",
    "ErrorCode",
    "IOFailureError",
    "InvalidArgumentError",
    "JitDylibError",
    "Language",
    "LibraryBuilder",
    "LibraryHandle",
    "LibrarySpec",
    "LoadError",
    "ObjectEntry",
    "OutOfMemoryError",
    "SourceEntry",
    "StructuredLogger",
    "Toolchain",
    "add_object",
    "add_source",
    "build_library",
    "build_status",
    "create_library",
    "destroy_library",
    "executable_path",
    "get_symbol",
    "is_code_signing_enforced",
    "is_library_loaded",
    "last_error",
    "load_library",
    "status_of",
    "unload_library",
]
