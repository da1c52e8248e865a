"""In-memory staging of sources and object blobs for one library build.

A ``LibrarySpec`` does no I/O. It copies every source string and object
buffer handed to it, keeps them in insertion order, and is read by
:func:`jitdylib.builder.build_library`. Language tags are not checked here;
an unknown tag fails the build instead.

Instances have no internal locking. Callers serialize mutation, builds and
``destroy()`` on the same spec.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from jitdylib.errors import InvalidArgumentError, OutOfMemoryError
from jitdylib.models import Language, ObjectEntry, SourceEntry

BytesLike = bytes | bytearray | memoryview


@dataclass(slots=True)
class LibrarySpec:
    """Named, append-only collection of source fragments and object blobs."""

    name: str
    _sources: list[SourceEntry] = field(default_factory=list, init=False, repr=False)
    _objects: list[ObjectEntry] = field(default_factory=list, init=False, repr=False)
    _destroyed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise InvalidArgumentError(
                "Library name must be a non-empty string.",
                context={"operation": "create"},
            )

    @classmethod
    def create(cls, name: str) -> LibrarySpec:
        return cls(name=name)

    @property
    def sources(self) -> tuple[SourceEntry, ...]:
        return tuple(self._sources)

    @property
    def objects(self) -> tuple[ObjectEntry, ...]:
        return tuple(self._objects)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def add_source(self, text: str, language: Language | str) -> Self:
        self.ensure_usable("add_source")
        if not isinstance(text, str):
            raise InvalidArgumentError(
                "Source text must be a string.",
                context={"library": self.name, "operation": "add_source"},
            )
        if language is None:
            raise InvalidArgumentError(
                "Source language is required.",
                context={"library": self.name, "operation": "add_source"},
            )
        try:
            self._sources.append(SourceEntry(text=text, language=language))
        except MemoryError as exc:
            raise OutOfMemoryError(
                "Could not store source fragment.",
                context={"library": self.name, "operation": "add_source"},
            ) from exc
        return self

    def add_object(self, data: BytesLike, size: int | None = None) -> Self:
        self.ensure_usable("add_object")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                "Object data must be a bytes-like buffer.",
                context={"library": self.name, "operation": "add_object"},
            )
        view = memoryview(data)
        if not view.c_contiguous:
            view = memoryview(view.tobytes())
        # Sizes count bytes whatever the buffer's item format is.
        view = view.cast("B")
        length = view.nbytes if size is None else size
        if length <= 0 or length > view.nbytes:
            raise InvalidArgumentError(
                "Object size must be positive and within the buffer.",
                context={
                    "library": self.name,
                    "operation": "add_object",
                    "size": str(length),
                    "buffer": str(view.nbytes),
                },
            )
        try:
            # bytes() copies, so later changes to a caller's bytearray are not seen.
            blob = bytes(view[:length])
            self._objects.append(ObjectEntry(data=blob))
        except MemoryError as exc:
            raise OutOfMemoryError(
                "Could not copy object data.",
                context={"library": self.name, "operation": "add_object", "size": str(length)},
            ) from exc
        return self

    def destroy(self) -> None:
        """Release every stored fragment. Calling it again does nothing."""
        if self._destroyed:
            return
        self._sources.clear()
        self._objects.clear()
        self._destroyed = True

    def ensure_usable(self, operation: str) -> None:
        if self._destroyed:
            raise InvalidArgumentError(
                "Library specification has been destroyed.",
                hint="Create a new specification with create_library().",
                context={"library": self.name, "operation": operation},
            )


def create_library(name: str) -> LibrarySpec:
    return LibrarySpec.create(name)


def add_source(spec: LibrarySpec | None, text: str, language: Language | str) -> None:
    _require_spec(spec, "add_source").add_source(text, language)


def add_object(spec: LibrarySpec | None, data: BytesLike, size: int | None = None) -> None:
    _require_spec(spec, "add_object").add_object(data, size)


def destroy_library(spec: LibrarySpec | None) -> None:
    if spec is None:
        return
    spec.destroy()


def _require_spec(spec: LibrarySpec | None, operation: str) -> LibrarySpec:
    if not isinstance(spec, LibrarySpec):
        raise InvalidArgumentError(
            "A library specification is required.",
            context={"operation": operation},
        )
    return spec
