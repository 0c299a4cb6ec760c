"""The fixed 32-byte stone container header."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import BinaryIO, ClassVar

from stonekit.stone.ioext import read_exact

STONE_MAGIC = b"\0mos"
INTEGRITY_CHECK = bytes([0, 0, 1, 0, 0, 2, 0, 0, 3, 0, 0, 4, 0, 0, 5, 0, 0, 6, 0, 0, 7])
HEADER_SIZE = 32


class HeaderDecodeError(ValueError):
    """Base error for header decoding."""


class NotEnoughBytesError(HeaderDecodeError):
    def __init__(self) -> None:
        super().__init__(f"Header must be {HEADER_SIZE} bytes long")


class InvalidMagicError(HeaderDecodeError):
    def __init__(self) -> None:
        super().__init__("Invalid magic")


class UnknownVersionError(HeaderDecodeError):
    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Unknown version: {version}")


class CorruptHeaderError(HeaderDecodeError):
    def __init__(self) -> None:
        super().__init__("Corrupt header, failed integrity check")


class UnknownFileTypeError(HeaderDecodeError):
    def __init__(self, file_type: int) -> None:
        self.file_type = file_type
        super().__init__(f"Unknown file type: {file_type}")


class Version(enum.IntEnum):
    V1 = 1


class FileType(enum.IntEnum):
    BINARY = 1
    DELTA = 2
    REPOSITORY = 3
    BUILD_MANIFEST = 4


@dataclass(frozen=True)
class Header:
    """A v1 stone header: payload count and file type."""

    num_payloads: int
    file_type: FileType

    SIZE: ClassVar[int] = HEADER_SIZE

    def version(self) -> Version:
        return Version.V1

    def encode(self) -> bytes:
        """The 32 bytes of the header: magic, v1 data, version."""
        data = (
            self.num_payloads.to_bytes(2, "big")
            + INTEGRITY_CHECK
            + bytes([int(self.file_type)])
        )
        return STONE_MAGIC + data + int(self.version()).to_bytes(4, "big")

    @classmethod
    def decode(cls, reader: BinaryIO) -> "Header":
        """Read and validate a header from a binary stream."""
        try:
            raw = read_exact(reader, HEADER_SIZE)
        except EOFError:
            raise NotEnoughBytesError() from None

        magic, data, version = raw[:4], raw[4:28], raw[28:]
        if magic != STONE_MAGIC:
            raise InvalidMagicError()

        version_number = int.from_bytes(version, "big")
        if version_number != Version.V1:
            raise UnknownVersionError(version_number)

        if data[2:23] != INTEGRITY_CHECK:
            raise CorruptHeaderError()
        try:
            file_type = FileType(data[23])
        except ValueError:
            raise UnknownFileTypeError(data[23]) from None

        return cls(num_payloads=int.from_bytes(data[:2], "big"), file_type=file_type)