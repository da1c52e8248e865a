"""Build orchestration: compile staged sources and link one shared library.

A build runs in four steps inside a fresh workspace:

1. every source is written to ``src_<i>.<ext>`` and compiled to ``obj_<i>.o``
   in insertion order,
2. every object blob is written to ``existing_<i>.o`` in insertion order,
3. compiled objects followed by existing objects are linked into the output
   image,
4. the workspace is removed whatever happened before.

The first failure aborts the build. There are no retries and no caching; each
call recompiles every source.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from jitdylib.errors import (
    BuildStatus,
    InvalidArgumentError,
    IOFailureError,
    JitDylibError,
    status_of,
)
from jitdylib.library import LibrarySpec
from jitdylib.models import BuildResult, Language
from jitdylib.observability import StructuredLogger
from jitdylib.runner import run_tool
from jitdylib.toolchain import Toolchain, display_command
from jitdylib.workspace import Workspace, open_workspace


@dataclass(slots=True)
class LibraryBuilder:
    toolchain: Toolchain = field(default_factory=Toolchain)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    workspace_parent: Path | None = None

    def build(self, spec: LibrarySpec | None, output_path: str | Path | None) -> BuildResult:
        if not isinstance(spec, LibrarySpec):
            raise InvalidArgumentError(
                "A library specification is required.",
                context={"operation": "build"},
            )
        spec.ensure_usable("build")
        if output_path is None or not str(output_path):
            raise InvalidArgumentError(
                "An output path is required.",
                context={"library": spec.name, "operation": "build"},
            )
        output = Path(output_path)
        build_id = uuid.uuid4().hex[:12]
        with self.logger.bind(build_id=build_id):
            return self._logged_build(spec, output, build_id)

    def _logged_build(self, spec: LibrarySpec, output: Path, build_id: str) -> BuildResult:
        self.logger.log(
            operation="build_start",
            library=spec.name,
            phase="build",
            tool=None,
            message="Starting library build.",
            extra={
                "output_path": str(output),
                "sources": len(spec.sources),
                "objects": len(spec.objects),
            },
        )
        started = time.monotonic()
        try:
            result = self._build(spec, output, build_id)
        except JitDylibError as exc:
            self.logger.log(
                operation="build_failed",
                library=spec.name,
                phase="build",
                tool=exc.context.get("tool"),
                message=exc.args[0] if exc.args else "Build failed.",
                level="error",
                extra={"code": exc.code, "duration_ms": _elapsed_ms(started)},
            )
            raise
        self.logger.log(
            operation="build_complete",
            library=spec.name,
            phase="build",
            tool=None,
            message="Completed library build.",
            extra={
                "output_path": str(result.output_path),
                "duration_ms": _elapsed_ms(started),
            },
        )
        return result

    def _build(self, spec: LibrarySpec, output: Path, build_id: str) -> BuildResult:
        with open_workspace(
            library=spec.name,
            logger=self.logger,
            parent=self.workspace_parent,
        ) as workspace:
            run = _BuildRun(
                spec=spec,
                workspace=workspace,
                toolchain=self.toolchain,
                logger=self.logger,
            )
            compiled = run.compile_sources()
            existing = run.materialize_objects()
            run.link([*compiled, *existing], output)
            return BuildResult(
                name=spec.name,
                build_id=build_id,
                output_path=output,
                install_name=self.toolchain.install_name_for(output),
                workspace=workspace.path,
                compiled_objects=tuple(compiled),
                existing_objects=tuple(existing),
                commands=tuple(run.commands),
            )


@dataclass(slots=True)
class _BuildRun:
    """State of a single build call."""

    spec: LibrarySpec
    workspace: Workspace
    toolchain: Toolchain
    logger: StructuredLogger
    commands: list[tuple[str, ...]] = field(default_factory=list)
    _sdk_root: str | None = None

    def sdk_root(self) -> str:
        if self._sdk_root is None:
            self._sdk_root = self.toolchain.resolve_sdk_root()
        return self._sdk_root

    def compile_sources(self) -> list[str]:
        compiled: list[str] = []
        for index, entry in enumerate(self.spec.sources):
            language = Language.parse(entry.language)
            source_path = self.workspace.write_source(index, entry.text, language)
            object_path = self.workspace.object_path(index)
            sdk_root = None if language is Language.ASM else self.sdk_root()
            command = self.toolchain.compile_command(
                language,
                source_path,
                object_path,
                sdk_root=sdk_root,
            )
            tool = self.toolchain.compiler_for(language)
            self.logger.log(
                operation="compile_source",
                library=self.spec.name,
                phase="compile",
                tool=tool,
                message="Compiling source fragment.",
                extra={
                    "index": index,
                    "language": language.value,
                    "command": display_command(command),
                },
            )
            self.commands.append(command)
            run_tool(command, tool=tool, timeout=self.toolchain.timeout)
            compiled.append(str(object_path))
        return compiled

    def materialize_objects(self) -> list[str]:
        existing: list[str] = []
        for index, entry in enumerate(self.spec.objects):
            path = self.workspace.write_object(index, entry.data)
            self.logger.log(
                operation="materialize_object",
                library=self.spec.name,
                phase="compile",
                tool=None,
                message="Wrote precompiled object.",
                extra={"index": index, "size": entry.size},
            )
            existing.append(str(path))
        return existing

    def link(self, objects: list[str], output: Path) -> None:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailureError(
                "Failed to create output directory.",
                context={"library": self.spec.name, "path": str(output.parent), "error": str(exc)},
            ) from exc

        command = self.toolchain.link_command(objects, output, sdk_root=self.sdk_root())
        self.logger.log(
            operation="link",
            library=self.spec.name,
            phase="link",
            tool=self.toolchain.cc,
            message="Linking shared library.",
            extra={"inputs": len(objects), "command": display_command(command)},
        )
        self.commands.append(command)
        try:
            run_tool(command, tool=self.toolchain.cc, timeout=self.toolchain.timeout)
        except JitDylibError:
            # A failed link must not leave a partial image behind.
            self._discard_partial_output(output)
            raise

    def _discard_partial_output(self, output: Path) -> None:
        if not output.is_file():
            return
        try:
            output.unlink()
        except OSError as exc:
            self.logger.log(
                operation="partial_output_cleanup_failed",
                library=self.spec.name,
                phase="cleanup",
                tool=None,
                message="Could not remove partial image after failed link.",
                level="warning",
                extra={"output_path": str(output), "error": str(exc)},
            )


def _elapsed_ms(started: float) -> int:
    return round((time.monotonic() - started) * 1000)


def build_library(
    spec: LibrarySpec | None,
    output_path: str | Path | None,
    *,
    toolchain: Toolchain | None = None,
    logger: StructuredLogger | None = None,
) -> BuildResult:
    builder = LibraryBuilder(
        toolchain=toolchain or Toolchain.from_environ(),
        logger=logger or StructuredLogger(),
    )
    return builder.build(spec, output_path)


def build_status(
    spec: LibrarySpec | None,
    output_path: str | Path | None,
    *,
    toolchain: Toolchain | None = None,
    logger: StructuredLogger | None = None,
) -> BuildStatus:
    """Run a build and report its outcome as a ``BuildStatus`` instead of raising."""
    try:
        build_library(spec, output_path, toolchain=toolchain, logger=logger)
    except (JitDylibError, OSError, MemoryError) as exc:
        return status_of(exc)
    return BuildStatus.SUCCESS
