"""Layout records: how each file is rebuilt on the target system."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import BinaryIO, Union

from stonekit.stone.ioext import read_exact, read_string, read_uint
from stonekit.stone.payload import PayloadDecodeError

_PADDING = 11


class UnknownFileTypeError(PayloadDecodeError):
    def __init__(self, file_type: int) -> None:
        self.file_type = file_type
        super().__init__(f"Unknown file type: {file_type}")


class UnsupportedFileTypeError(PayloadDecodeError):
    def __init__(self, file_type: "LayoutFileType") -> None:
        self.file_type = file_type
        super().__init__(f"Unsupported layout file type: {file_type.name.lower()}")


class LayoutFileType(enum.IntEnum):
    REGULAR = 1
    SYMLINK = 2
    DIRECTORY = 3
    CHARACTER_DEVICE = 4
    BLOCK_DEVICE = 5
    FIFO = 6
    SOCKET = 7


_SPECIAL_TYPES = frozenset(
    {
        LayoutFileType.CHARACTER_DEVICE,
        LayoutFileType.BLOCK_DEVICE,
        LayoutFileType.FIFO,
        LayoutFileType.SOCKET,
    }
)


@dataclass(frozen=True)
class RegularEntry:
    """A regular file whose content is identified by its 128-bit digest."""

    hash: int
    target: str


@dataclass(frozen=True)
class SymlinkEntry:
    source: str
    target: str


@dataclass(frozen=True)
class DirectoryEntry:
    target: str


@dataclass(frozen=True)
class SpecialEntry:
    """Device, fifo or socket node; these can be encoded but not decoded."""

    file_type: LayoutFileType
    target: str

    def __post_init__(self) -> None:
        if self.file_type not in _SPECIAL_TYPES:
            raise ValueError(f"{self.file_type!r} is not a special file type")


Entry = Union[RegularEntry, SymlinkEntry, DirectoryEntry, SpecialEntry]


def _entry_parts(entry: Entry) -> tuple[LayoutFileType, bytes, bytes]:
    target = entry.target.encode("utf-8")
    if isinstance(entry, RegularEntry):
        return LayoutFileType.REGULAR, entry.hash.to_bytes(16, "big"), target
    if isinstance(entry, SymlinkEntry):
        return LayoutFileType.SYMLINK, entry.source.encode("utf-8"), target
    if isinstance(entry, DirectoryEntry):
        return LayoutFileType.DIRECTORY, b"", target
    return entry.file_type, b"", target


def _sanitize(text: str) -> str:
    return text.rstrip("\0")


@dataclass(frozen=True)
class Layout:
    """Ownership, permissions and placement of one filesystem entry."""

    uid: int
    gid: int
    mode: int
    tag: int
    entry: Entry

    def encode(self) -> bytes:
        file_type, source, target = _entry_parts(self.entry)
        return b"".join(
            (
                self.uid.to_bytes(4, "big"),
                self.gid.to_bytes(4, "big"),
                self.mode.to_bytes(4, "big"),
                self.tag.to_bytes(4, "big"),
                len(source).to_bytes(2, "big"),
                len(target).to_bytes(2, "big"),
                bytes([int(file_type)]),
                bytes(_PADDING),
                source,
                target,
            )
        )

    @classmethod
    def decode(cls, reader: BinaryIO) -> "Layout":
        uid = read_uint(reader, 4)
        gid = read_uint(reader, 4)
        mode = read_uint(reader, 4)
        tag = read_uint(reader, 4)
        source_length = read_uint(reader, 2)
        target_length = read_uint(reader, 2)

        type_raw = read_uint(reader, 1)
        try:
            file_type = LayoutFileType(type_raw)
        except ValueError:
            raise UnknownFileTypeError(type_raw) from None

        read_exact(reader, _PADDING)

        entry: Entry
        if file_type is LayoutFileType.REGULAR:
            source = read_exact(reader, source_length)
            if len(source) != 16:
                raise PayloadDecodeError(
                    f"regular layout source must be 16 bytes, got {len(source)}"
                )
            entry = RegularEntry(
                int.from_bytes(source, "big"),
                _sanitize(read_string(reader, target_length)),
            )
        elif file_type is LayoutFileType.SYMLINK:
            entry = SymlinkEntry(
                _sanitize(read_string(reader, source_length)),
                _sanitize(read_string(reader, target_length)),
            )
        elif file_type is LayoutFileType.DIRECTORY:
            entry = DirectoryEntry(_sanitize(read_string(reader, target_length)))
        else:
            raise UnsupportedFileTypeError(file_type)

        return cls(uid=uid, gid=gid, mode=mode, tag=tag, entry=entry)

    def size(self) -> int:
        _, source, target = _entry_parts(self.entry)
        return 4 + 4 + 4 + 4 + 2 + 2 + 1 + _PADDING + len(source) + len(target)