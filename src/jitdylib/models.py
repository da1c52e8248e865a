"""Core data types for library specifications and build results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from jitdylib.errors import InvalidArgumentError


class Language(StrEnum):
    """Source languages the toolchain knows how to compile."""

    C = "c"
    CPP = "cpp"
    ASM = "asm"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @classmethod
    def parse(cls, value: object) -> Language:
        """Return the language for *value* or raise ``InvalidArgumentError``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        raise InvalidArgumentError(
            f"Unrecognized source language: {value!r}.",
            hint=f"Use one of: {', '.join(member.value for member in cls)}.",
            context={"language": str(value)},
        )


_EXTENSIONS: dict[Language, str] = {
    Language.C: ".c",
    Language.CPP: ".cpp",
    Language.ASM: ".s",
}


@dataclass(frozen=True, slots=True)
class SourceEntry:
    # Tag is kept as given and only checked when a build reads it.
    text: str
    language: Language | str


@dataclass(frozen=True, slots=True)
class ObjectEntry:
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class BuildResult:
    name: str
    output_path: Path
    install_name: str
    workspace: Path
    build_id: str = ""
    compiled_objects: tuple[str, ...] = ()
    existing_objects: tuple[str, ...] = ()
    commands: tuple[tuple[str, ...], ...] = ()

    @property
    def link_inputs(self) -> tuple[str, ...]:
        return self.compiled_objects + self.existing_objects

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "build_id": self.build_id,
            "output_path": str(self.output_path),
            "install_name": self.install_name,
            "workspace": str(self.workspace),
            "compiled_objects": list(self.compiled_objects),
            "existing_objects": list(self.existing_objects),
            "commands": [list(command) for command in self.commands],
        }
