"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from jitdylib.observability import StructuredLogger
from jitdylib.toolchain import Toolchain

FAKE_SDK = "/fake/iPhoneOS.sdk"
FAKE_IMAGE = b"\xcf\xfa\xed\xfe fake mach-o"


@dataclass
class FakeResult:
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


@dataclass
class FakeToolchainRun:
    """Stand-in for ``subprocess.run`` that mimics compilers and linkers.

    Every call is recorded. Successful calls write a file at the ``-o`` path.
    The contents of every input file are captured at call time, because the
    workspace is gone once the build returns.
    """

    calls: list[list[str]] = field(default_factory=list)
    inputs: dict[str, bytes] = field(default_factory=dict)
    fail_when: Callable[[list[str]], bool] | None = None
    raise_when: Callable[[list[str]], BaseException | None] | None = None
    partial_output_on_failure: bool = False
    sdk_path: str = FAKE_SDK

    def __call__(self, argv: list[str], **_kwargs: object) -> FakeResult:
        argv = list(argv)
        self.calls.append(argv)
        if argv[0] == "xcrun":
            return FakeResult(stdout=f"{self.sdk_path}\n")
        if self.raise_when is not None:
            exc = self.raise_when(argv)
            if exc is not None:
                raise exc
        for arg in argv:
            if arg.startswith("/") and Path(arg).is_file():
                self.inputs[arg] = Path(arg).read_bytes()
        output = Path(argv[argv.index("-o") + 1])
        if self.fail_when is not None and self.fail_when(argv):
            if self.partial_output_on_failure:
                output.write_bytes(b"partial")
            return FakeResult(returncode=1, stderr="error: something went wrong")
        output.write_bytes(FAKE_IMAGE)
        return FakeResult()

    @property
    def tool_calls(self) -> list[list[str]]:
        return [call for call in self.calls if call[0] != "xcrun"]

    @property
    def link_calls(self) -> list[list[str]]:
        return [call for call in self.calls if "-shared" in call]

    @property
    def compile_calls(self) -> list[list[str]]:
        return [call for call in self.tool_calls if "-shared" not in call]


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeToolchainRun:
    fake = FakeToolchainRun()
    monkeypatch.setattr("jitdylib.runner.subprocess.run", fake)
    return fake


@pytest.fixture
def toolchain() -> Toolchain:
    return Toolchain(sdk_root=FAKE_SDK)


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger()

