"""Dynamic loading of built images through the process's ``dlopen`` family.

``dlerror`` state is shared by the whole process, so every call that can fail
reads it under one lock and stores the text in a module-level slot that
:func:`last_error` returns.
"""

from __future__ import annotations

import ctypes
import os
import sys
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Self

from jitdylib.errors import InvalidArgumentError, LoadError

_LOCK = threading.Lock()
_last_error: str | None = None

# <sys/codesign.h>
_CS_OPS_STATUS = 0
_CS_ENFORCEMENT = 0x00001000


@lru_cache(maxsize=1)
def _libc() -> ctypes.CDLL:
    libc = ctypes.CDLL(None)
    libc.dlopen.argtypes = [ctypes.c_char_p, ctypes.c_int]
    libc.dlopen.restype = ctypes.c_void_p
    libc.dlsym.argtypes = [ctypes.c_void_p, ctypes.c_char_p]
    libc.dlsym.restype = ctypes.c_void_p
    libc.dlclose.argtypes = [ctypes.c_void_p]
    libc.dlclose.restype = ctypes.c_int
    libc.dlerror.argtypes = []
    libc.dlerror.restype = ctypes.c_char_p
    return libc


def _take_dlerror(default: str) -> str:
    """Read and record ``dlerror``; caller holds ``_LOCK``."""
    global _last_error
    raw = _libc().dlerror()
    message = raw.decode("utf-8", errors="replace") if raw else default
    _last_error = message
    return message


def _encode_path(path: str | os.PathLike[str]) -> bytes:
    raw = os.fspath(path)
    if not raw:
        raise InvalidArgumentError("A library path is required.", context={"operation": "load"})
    return os.fsencode(raw)


@dataclass(slots=True)
class LibraryHandle:
    """Opaque handle to a loaded image."""

    path: str
    _handle: int | None = field(default=None, repr=False)

    @property
    def closed(self) -> bool:
        return self._handle is None

    def symbol(self, name: str) -> int | None:
        return get_symbol(self, name)

    def function(self, name: str, restype: Any, *argtypes: Any) -> Any:
        """Return a callable for *name* with the given C signature."""
        address = self.symbol(name)
        if address is None:
            raise LoadError(
                f"Symbol not found: {name}.",
                context={"path": self.path, "symbol": name, "error": last_error() or ""},
            )
        return ctypes.CFUNCTYPE(restype, *argtypes)(address)

    def close(self) -> None:
        unload_library(self)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def is_library_loaded(path: str | os.PathLike[str]) -> bool:
    """Return whether an image with *path* is already resident."""
    encoded = _encode_path(path)
    libc = _libc()
    with _LOCK:
        handle = libc.dlopen(encoded, os.RTLD_LAZY | os.RTLD_NOLOAD)
        if not handle:
            # Clear the slot dlopen set; "not loaded" is not a failure.
            libc.dlerror()
            return False
        libc.dlclose(handle)
    return True


def load_library(path: str | os.PathLike[str], *, global_symbols: bool = False) -> LibraryHandle:
    encoded = _encode_path(path)
    mode = os.RTLD_NOW | (os.RTLD_GLOBAL if global_symbols else os.RTLD_LOCAL)
    with _LOCK:
        handle = _libc().dlopen(encoded, mode)
        if not handle:
            message = _take_dlerror(f"dlopen failed for {os.fspath(path)}")
            raise LoadError(
                "Failed to load library.",
                hint="Check that the image exists and matches this process architecture.",
                context={"path": os.fspath(path), "error": message},
            )
    return LibraryHandle(path=os.fspath(path), _handle=handle)


def get_symbol(handle: LibraryHandle, name: str) -> int | None:
    """Return the address of *name* in *handle*, or ``None`` when absent."""
    if not isinstance(handle, LibraryHandle) or handle.closed:
        raise InvalidArgumentError(
            "An open library handle is required.",
            context={"operation": "get_symbol", "symbol": str(name)},
        )
    if not name:
        raise InvalidArgumentError("A symbol name is required.", context={"path": handle.path})
    libc = _libc()
    with _LOCK:
        libc.dlerror()
        address = libc.dlsym(handle._handle, name.encode("utf-8"))
        if not address:
            _take_dlerror(f"symbol not found: {name}")
            return None
    return int(address)


def unload_library(handle: LibraryHandle) -> None:
    """Release *handle*. Unloading an already closed handle does nothing."""
    if handle.closed:
        return
    with _LOCK:
        rc = _libc().dlclose(handle._handle)
        handle._handle = None
        if rc != 0:
            message = _take_dlerror(f"dlclose failed for {handle.path}")
            raise LoadError(
                "Failed to unload library.",
                context={"path": handle.path, "error": message},
            )


def last_error() -> str | None:
    with _LOCK:
        return _last_error


def executable_path() -> str:
    """Return the path of the image the current process was started from."""
    if sys.platform == "darwin":
        libc = _libc()
        size = ctypes.c_uint32(0)
        libc._NSGetExecutablePath(None, ctypes.byref(size))
        buffer = ctypes.create_string_buffer(size.value)
        if libc._NSGetExecutablePath(buffer, ctypes.byref(size)) == 0:
            return os.fsdecode(buffer.value)
    proc_exe = Path("/proc/self/exe")
    if proc_exe.exists():
        return str(proc_exe.resolve())
    return os.path.realpath(sys.executable)


def is_code_signing_enforced() -> bool:
    """Return whether the kernel enforces code signing for this process."""
    if sys.platform != "darwin":
        return False
    libc = _libc()
    flags = ctypes.c_uint32(0)
    libc.csops.argtypes = [ctypes.c_int, ctypes.c_uint, ctypes.c_void_p, ctypes.c_size_t]
    libc.csops.restype = ctypes.c_int
    if libc.csops(os.getpid(), _CS_OPS_STATUS, ctypes.byref(flags), ctypes.sizeof(flags)) != 0:
        return False
    return bool(flags.value & _CS_ENFORCEMENT)
