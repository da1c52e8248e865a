"""Per-build scratch directory for materialized sources and objects."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from jitdylib.errors import IOFailureError
from jitdylib.models import Language
from jitdylib.observability import StructuredLogger

WORKSPACE_PREFIX = "jitdylib_"


@dataclass(frozen=True, slots=True)
class Workspace:
    path: Path

    def source_path(self, index: int, language: Language) -> Path:
        return self.path / f"src_{index}{language.extension}"

    def object_path(self, index: int) -> Path:
        return self.path / f"obj_{index}.o"

    def existing_object_path(self, index: int) -> Path:
        return self.path / f"existing_{index}.o"

    def write_source(self, index: int, text: str, language: Language) -> Path:
        path = self.source_path(index, language)
        try:
            # newline="" keeps the text verbatim on every platform.
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except (OSError, UnicodeEncodeError) as exc:
            raise IOFailureError(
                "Failed to write source file.",
                context={"path": str(path), "index": str(index), "error": str(exc)},
            ) from exc
        return path

    def write_object(self, index: int, data: bytes) -> Path:
        path = self.existing_object_path(index)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise IOFailureError(
                "Failed to write object file.",
                context={"path": str(path), "index": str(index), "error": str(exc)},
            ) from exc
        return path


@contextmanager
def open_workspace(
    *,
    library: str | None = None,
    logger: StructuredLogger | None = None,
    parent: Path | None = None,
) -> Iterator[Workspace]:
    """Create a fresh workspace and remove it on every exit path.

    Removal problems are logged as warnings and never raised, so they cannot
    replace the outcome of the build that used the workspace.
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=parent))
    except OSError as exc:
        raise IOFailureError(
            "Failed to create build workspace.",
            hint="Check that the temporary directory exists and is writable.",
            context={"library": library or "", "error": str(exc)},
        ) from exc

    if logger is not None:
        logger.log(
            operation="workspace_created",
            library=library,
            phase="prepare",
            tool=None,
            message="Created build workspace.",
            extra={"workspace": str(path)},
        )
    try:
        yield Workspace(path=path)
    finally:
        _remove_workspace(path, library=library, logger=logger)


def _remove_workspace(path: Path, *, library: str | None, logger: StructuredLogger | None) -> None:
    failures: list[str] = []

    def _record(_func: object, failed_path: str, exc: BaseException) -> None:
        failures.append(f"{failed_path}: {exc}")

    shutil.rmtree(path, onexc=_record)
    if logger is None:
        return
    if failures or path.exists():
        logger.log(
            operation="workspace_cleanup_failed",
            library=library,
            phase="cleanup",
            tool=None,
            message="Could not fully remove build workspace.",
            level="warning",
            extra={"workspace": str(path), "failures": failures},
        )
    else:
        logger.log(
            operation="workspace_removed",
            library=library,
            phase="cleanup",
            tool=None,
            message="Removed build workspace.",
            extra={"workspace": str(path)},
        )
