"""Toolchain configuration and command-line construction.

Every command is an argument vector. Nothing here is ever passed through a
shell, so source paths and output paths need no quoting.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath

from jitdylib.errors import BuildToolError, InvalidArgumentError
from jitdylib.models import Language
from jitdylib.runner import run_tool

ENV_PREFIX = "JITDYLIB_"


@dataclass(frozen=True, slots=True)
class Toolchain:
    cc: str = "clang"
    cxx: str = "clang++"
    assembler: str = "as"
    arch: str = "arm64"
    sdk: str = "iphoneos"
    os_name: str = "ios"
    min_os_version: str = "12.0"
    sdk_root: str | None = None
    frameworks: tuple[str, ...] = ("Foundation", "UIKit")
    defines: tuple[str, ...] = ("TARGET_OS_IPHONE=1",)
    include_dirs: tuple[str, ...] = (".",)
    assembler_flags: tuple[str, ...] = ("-force_cpusubtype_ALL",)
    install_name_prefix: str = "@rpath/"
    timeout: float | None = 600.0

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> Toolchain:
        """Build a toolchain from ``JITDYLIB_*`` overrides in *environ*."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for key, field_name in (
            ("CC", "cc"),
            ("CXX", "cxx"),
            ("AS", "assembler"),
            ("SDK", "sdk"),
            ("SDK_ROOT", "sdk_root"),
            ("MIN_OS_VERSION", "min_os_version"),
        ):
            value = env.get(ENV_PREFIX + key)
            if value:
                overrides[field_name] = value
        raw_timeout = env.get(ENV_PREFIX + "TOOL_TIMEOUT")
        if raw_timeout:
            overrides["timeout"] = _parse_timeout(raw_timeout)
        return cls(**overrides)

    @property
    def version_min_flag(self) -> str:
        return f"-m{self.os_name}-version-min={self.min_os_version}"

    def resolve_sdk_root(self) -> str:
        """Return the configured SDK root, asking ``xcrun`` when unset."""
        if self.sdk_root:
            return self.sdk_root
        result = run_tool(
            ("xcrun", "--sdk", self.sdk, "--show-sdk-path"),
            tool="xcrun",
            timeout=self.timeout,
        )
        sdk_root = result.stdout.strip()
        if not sdk_root:
            raise BuildToolError(
                "xcrun returned an empty SDK path.",
                hint=f"Install the {self.sdk} SDK or set {ENV_PREFIX}SDK_ROOT.",
                context={"tool": "xcrun", "sdk": self.sdk},
            )
        return sdk_root

    def compiler_for(self, language: Language) -> str:
        if language is Language.C:
            return self.cc
        if language is Language.CPP:
            return self.cxx
        return self.assembler

    def compile_command(
        self,
        language: Language,
        source: Path,
        obj: Path,
        *,
        sdk_root: str | None,
    ) -> tuple[str, ...]:
        if language is Language.ASM:
            return (
                self.assembler,
                "-arch",
                self.arch,
                "-o",
                str(obj),
                str(source),
                *self.assembler_flags,
            )
        if sdk_root is None:
            raise InvalidArgumentError(
                "An SDK root is required to compile C or C++ sources.",
                context={"language": language.value},
            )
        return (
            self.compiler_for(language),
            "-c",
            "-arch",
            self.arch,
            "-isysroot",
            sdk_root,
            self.version_min_flag,
            "-o",
            str(obj),
            str(source),
            *_flag_pairs("-I", self.include_dirs),
            *_flag_pairs("-framework", self.frameworks),
            *(f"-D{define}" for define in self.defines),
        )

    def link_command(
        self,
        objects: Sequence[str | Path],
        output: Path,
        *,
        sdk_root: str,
    ) -> tuple[str, ...]:
        return (
            self.cc,
            "-shared",
            "-arch",
            self.arch,
            "-isysroot",
            sdk_root,
            self.version_min_flag,
            "-o",
            str(output),
            *(str(obj) for obj in objects),
            *_flag_pairs("-framework", self.frameworks),
            "-install_name",
            self.install_name_for(output),
        )

    def install_name_for(self, output: str | PurePath) -> str:
        return f"{self.install_name_prefix}{PurePath(output).name}"


def display_command(command: Iterable[str]) -> str:
    return shlex.join(list(command))


def _flag_pairs(flag: str, values: Iterable[str]) -> list[str]:
    pairs: list[str] = []
    for value in values:
        pairs.extend((flag, value))
    return pairs


def _parse_timeout(raw: str) -> float | None:
    if raw.strip().lower() in {"none", "0", "off"}:
        return None
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise InvalidArgumentError(
            "Tool timeout must be a number of seconds.",
            hint=f"Set {ENV_PREFIX}TOOL_TIMEOUT to e.g. 600, or 'none' to disable.",
            context={"value": raw},
        ) from exc
    if timeout < 0:
        raise InvalidArgumentError(
            "Tool timeout must not be negative.",
            context={"value": raw},
        )
    return timeout
