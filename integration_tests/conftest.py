"""Shared helpers for integration tests against a real Apple toolchain."""

from __future__ import annotations

import platform
import shutil
import sys

import pytest

from jitdylib.toolchain import Toolchain

HAS_APPLE_TOOLCHAIN = (
    sys.platform == "darwin" and platform.machine() == "arm64" and shutil.which("xcrun") is not None
)

requires_apple_toolchain = pytest.mark.skipif(
    not HAS_APPLE_TOOLCHAIN,
    reason="Needs an arm64 macOS host with Xcode command line tools.",
)


@pytest.fixture
def host_toolchain() -> Toolchain:
    """Toolchain whose output the test process itself can load.

    Images built for the iPhone SDK cannot be loaded into a macOS process, so
    these tests target the host SDK with the same argument layout.
    """
    return Toolchain(
        sdk="macosx",
        os_name="macos",
        min_os_version="11.0",
        frameworks=("Foundation",),
        defines=(),
    )
