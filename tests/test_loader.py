import ctypes
import ctypes.util
import os
import sys
from pathlib import Path

import pytest

from jitdylib.errors import InvalidArgumentError, LoadError
from jitdylib.loader import (
    LibraryHandle,
    executable_path,
    get_symbol,
    is_code_signing_enforced,
    is_library_loaded,
    last_error,
    load_library,
    unload_library,
)

LIBM = ctypes.util.find_library("m")
LIBC = ctypes.util.find_library("c")


def test_loading_missing_image_fails_and_records_error(tmp_path: Path) -> None:
    missing = tmp_path / "libMissing.dylib"

    with pytest.raises(LoadError) as excinfo:
        load_library(missing)

    assert excinfo.value.code == "E_LOAD"
    assert excinfo.value.context["path"] == str(missing)
    assert last_error()


def test_loading_non_image_file_fails(tmp_path: Path) -> None:
    bogus = tmp_path / "libBogus.dylib"
    bogus.write_bytes(b"not a shared library")

    with pytest.raises(LoadError):
        load_library(bogus)


def test_load_requires_path() -> None:
    with pytest.raises(InvalidArgumentError):
        load_library("")


def test_missing_image_is_not_loaded(tmp_path: Path) -> None:
    assert is_library_loaded(tmp_path / "libNope.dylib") is False


@pytest.mark.skipif(LIBM is None, reason="libm not found.")
def test_symbols_resolve_and_call_through_handle() -> None:
    with load_library(LIBM) as handle:
        address = get_symbol(handle, "cos")
        assert isinstance(address, int) and address != 0
        cos = handle.function("cos", ctypes.c_double, ctypes.c_double)
        assert cos(0.0) == 1.0

    assert handle.closed


@pytest.mark.skipif(LIBM is None, reason="libm not found.")
def test_absent_symbol_returns_none_and_sets_last_error() -> None:
    handle = load_library(LIBM)
    try:
        assert handle.symbol("definitely_not_a_symbol_xyz") is None
        assert last_error()
        with pytest.raises(LoadError):
            handle.function("definitely_not_a_symbol_xyz", None)
    finally:
        unload_library(handle)


@pytest.mark.skipif(LIBM is None, reason="libm not found.")
def test_unload_is_idempotent_and_closed_handle_is_rejected() -> None:
    handle = load_library(LIBM)
    unload_library(handle)
    unload_library(handle)

    with pytest.raises(InvalidArgumentError):
        get_symbol(handle, "cos")


def test_get_symbol_rejects_foreign_handle() -> None:
    with pytest.raises(InvalidArgumentError):
        get_symbol(LibraryHandle(path="x"), "cos")


@pytest.mark.skipif(
    not sys.platform.startswith("linux") or LIBC is None,
    reason="Resident libc lookup by soname is Linux-specific.",
)
def test_resident_libc_is_reported_loaded() -> None:
    assert is_library_loaded(LIBC) is True


def test_executable_path_points_at_running_image() -> None:
    path = executable_path()
    assert path
    assert os.path.exists(path)


@pytest.mark.skipif(sys.platform == "darwin", reason="Code signing is only queried on Darwin.")
def test_code_signing_is_not_enforced_off_darwin() -> None:
    assert is_code_signing_enforced() is False
