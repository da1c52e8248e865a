"""Typed error model with stable error codes and build status values."""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum, StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    INVALID_ARGUMENT = "E_INVALID_ARGUMENT"
    OUT_OF_MEMORY = "E_OUT_OF_MEMORY"
    IO = "E_IO"
    BUILD_TOOL = "E_BUILD_TOOL"
    LOAD = "E_LOAD"


class BuildStatus(IntEnum):
    """Numeric status returned by the status-code build API."""

    SUCCESS = 0
    INVALID_ARGUMENT = -1
    OUT_OF_MEMORY = -2
    IO_FAILURE = -3
    BUILD_TOOL_FAILURE = -4
    LOAD_FAILURE = -5


_STATUS_BY_CODE: dict[ErrorCode, BuildStatus] = {
    ErrorCode.INVALID_ARGUMENT: BuildStatus.INVALID_ARGUMENT,
    ErrorCode.OUT_OF_MEMORY: BuildStatus.OUT_OF_MEMORY,
    ErrorCode.IO: BuildStatus.IO_FAILURE,
    ErrorCode.BUILD_TOOL: BuildStatus.BUILD_TOOL_FAILURE,
    ErrorCode.LOAD: BuildStatus.LOAD_FAILURE,
}


class JitDylibError(Exception):
    """Base error class that carries code, status, optional hint, and context."""

    code: str
    status: BuildStatus
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.status = _STATUS_BY_CODE[code]
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "status": int(self.status),
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class InvalidArgumentError(JitDylibError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INVALID_ARGUMENT, hint=hint, context=context)


class OutOfMemoryError(JitDylibError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.OUT_OF_MEMORY, hint=hint, context=context)


class IOFailureError(JitDylibError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.IO, hint=hint, context=context)


class BuildToolError(JitDylibError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.BUILD_TOOL, hint=hint, context=context)


class LoadError(JitDylibError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.LOAD, hint=hint, context=context)


def status_of(error: BaseException | None) -> BuildStatus:
    """Map a build outcome to its status value; ``None`` means success."""
    if error is None:
        return BuildStatus.SUCCESS
    if isinstance(error, JitDylibError):
        return error.status
    if isinstance(error, MemoryError):
        return BuildStatus.OUT_OF_MEMORY
    if isinstance(error, OSError):
        return BuildStatus.IO_FAILURE
    raise TypeError(f"No build status for {type(error).__name__}")


__all__ = [
    "BuildStatus",
    "BuildToolError",
    "ErrorCode",
    "IOFailureError",
    "InvalidArgumentError",
    "JitDylibError",
    "LoadError",
    "OutOfMemoryError",
    "status_of",
]
