"""Meta records: typed, tagged package metadata."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from stonekit.stone.ioext import read_exact, read_string, read_uint
from stonekit.stone.payload import PayloadDecodeError


class UnknownMetaKindError(PayloadDecodeError):
    def __init__(self, kind: int) -> None:
        self.kind = kind
        super().__init__(f"Unknown metadata type: {kind}")


class UnknownMetaTagError(PayloadDecodeError):
    def __init__(self, tag: int) -> None:
        self.tag = tag
        super().__init__(f"Unknown metadata tag: {tag}")


class UnknownDependencyError(PayloadDecodeError):
    def __init__(self, dependency: int) -> None:
        self.dependency = dependency
        super().__init__(f"Unknown dependency type: {dependency}")


class Dependency(enum.IntEnum):
    PACKAGE_NAME = 0
    SHARED_LIBRARY = 1
    PKG_CONFIG = 2
    INTERPRETER = 3
    CMAKE = 4
    PYTHON = 5
    BINARY = 6
    SYSTEM_BINARY = 7
    PKG_CONFIG32 = 8

    def __str__(self) -> str:
        return _DEPENDENCY_NAMES[self]


_DEPENDENCY_NAMES = {
    Dependency.PACKAGE_NAME: "name",
    Dependency.SHARED_LIBRARY: "soname",
    Dependency.PKG_CONFIG: "pkgconfig",
    Dependency.INTERPRETER: "interpreter",
    Dependency.CMAKE: "cmake",
    Dependency.PYTHON: "python",
    Dependency.BINARY: "binary",
    Dependency.SYSTEM_BINARY: "sysbinary",
    Dependency.PKG_CONFIG32: "pkgconfig32",
}


class Tag(enum.IntEnum):
    NAME = 1
    ARCHITECTURE = 2
    VERSION = 3
    SUMMARY = 4
    DESCRIPTION = 5
    HOMEPAGE = 6
    SOURCE_ID = 7
    DEPENDS = 8
    PROVIDES = 9
    CONFLICTS = 10
    RELEASE = 11
    LICENSE = 12
    BUILD_RELEASE = 13
    PACKAGE_URI = 14
    PACKAGE_HASH = 15
    PACKAGE_SIZE = 16
    BUILD_DEPENDS = 17
    SOURCE_URI = 18
    SOURCE_PATH = 19
    SOURCE_REF = 20


class MetaKind(enum.IntEnum):
    INT8 = 1
    UINT8 = 2
    INT16 = 3
    UINT16 = 4
    INT32 = 5
    UINT32 = 6
    INT64 = 7
    UINT64 = 8
    STRING = 9
    DEPENDENCY = 10
    PROVIDER = 11


# (byte width, signed)
_INT_KINDS = {
    MetaKind.INT8: (1, True),
    MetaKind.UINT8: (1, False),
    MetaKind.INT16: (2, True),
    MetaKind.UINT16: (2, False),
    MetaKind.INT32: (4, True),
    MetaKind.UINT32: (4, False),
    MetaKind.INT64: (8, True),
    MetaKind.UINT64: (8, False),
}
_DEPENDENCY_KINDS = frozenset({MetaKind.DEPENDENCY, MetaKind.PROVIDER})


def _sanitize(text: str) -> str:
    return text.rstrip("\0")


@dataclass(frozen=True)
class Meta:
    """One metadata record: a tag, a value type and the value itself.

    `dependency` is set only for DEPENDENCY and PROVIDER records.
    """

    tag: Tag
    kind: MetaKind
    value: Union[int, str]
    dependency: Optional[Dependency] = None

    def __post_init__(self) -> None:
        if self.kind in _INT_KINDS:
            width, signed = _INT_KINDS[self.kind]
            if not isinstance(self.value, int):
                raise ValueError(f"{self.kind.name} value must be an integer")
            bits = width * 8
            low, high = (-(1 << (bits - 1)), (1 << (bits - 1)) - 1) if signed else (0, (1 << bits) - 1)
            if not low <= self.value <= high:
                raise ValueError(f"{self.value} out of range for {self.kind.name}")
        elif not isinstance(self.value, str):
            raise ValueError(f"{self.kind.name} value must be a string")
        if (self.kind in _DEPENDENCY_KINDS) != (self.dependency is not None):
            raise ValueError("dependency is required exactly for dependency and provider kinds")

    def _value_size(self) -> int:
        if self.kind in _INT_KINDS:
            return _INT_KINDS[self.kind][0]
        size = len(str(self.value).encode("utf-8"))
        return size + 1 if self.kind in _DEPENDENCY_KINDS else size

    def encode(self) -> bytes:
        head = (
            self._value_size().to_bytes(4, "big")
            + int(self.tag).to_bytes(2, "big")
            + bytes([int(self.kind), 0])
        )
        if self.kind in _INT_KINDS:
            width, _ = _INT_KINDS[self.kind]
            mask = (1 << (width * 8)) - 1
            body = (int(self.value) & mask).to_bytes(width, "big")
        elif self.kind in _DEPENDENCY_KINDS:
            assert self.dependency is not None
            body = bytes([int(self.dependency)]) + str(self.value).encode("utf-8")
        else:
            body = str(self.value).encode("utf-8")
        return head + body

    @classmethod
    def decode(cls, reader: BinaryIO) -> "Meta":
        length = read_uint(reader, 4)

        tag_raw = read_uint(reader, 2)
        try:
            tag = Tag(tag_raw)
        except ValueError:
            raise UnknownMetaTagError(tag_raw) from None

        kind_raw = read_uint(reader, 1)
        read_exact(reader, 1)

        try:
            kind = MetaKind(kind_raw)
        except ValueError:
            raise UnknownMetaKindError(kind_raw) from None

        if kind in _INT_KINDS:
            width, signed = _INT_KINDS[kind]
            value = int.from_bytes(read_exact(reader, width), "big", signed=signed)
            return cls(tag, kind, value)

        if kind is MetaKind.STRING:
            return cls(tag, kind, _sanitize(read_string(reader, length)))

        if length < 1:
            raise PayloadDecodeError("dependency record has zero length")
        dependency_raw = read_uint(reader, 1)
        try:
            dependency = Dependency(dependency_raw)
        except ValueError:
            raise UnknownDependencyError(dependency_raw) from None
        value = _sanitize(read_string(reader, length - 1))
        return cls(tag, kind, value, dependency)

    def size(self) -> int:
        return 4 + 2 + 1 + 1 + self._value_size()