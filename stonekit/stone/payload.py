"""Payload headers and the generic record types of a stone payload."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import BinaryIO, Generic, Iterable, Protocol, TypeVar

from stonekit.stone.ioext import read_exact, read_uint

T = TypeVar("T")
R = TypeVar("R", bound="_Record")


class PayloadDecodeError(ValueError):
    """Base error for payload and record decoding."""


class UnknownKindError(PayloadDecodeError):
    def __init__(self, kind: int) -> None:
        self.kind = kind
        super().__init__(f"Unknown header type: {kind}")


class UnknownCompressionError(PayloadDecodeError):
    def __init__(self, compression: int) -> None:
        self.compression = compression
        super().__init__(f"Unknown header compression: {compression}")


class PayloadKind(enum.IntEnum):
    META = 1
    CONTENT = 2
    LAYOUT = 3
    INDEX = 4
    ATTRIBUTES = 5
    DUMB = 6


class Compression(enum.IntEnum):
    NONE = 1
    ZSTD = 2


class _Record(Protocol):
    def encode(self) -> bytes: ...

    def size(self) -> int: ...


@dataclass(frozen=True)
class PayloadHeader:
    """Header preceding every payload body in a stone file."""

    stored_size: int
    plain_size: int
    checksum: bytes
    num_records: int
    version: int
    kind: PayloadKind
    compression: Compression

    SIZE = 8 + 8 + 8 + 4 + 2 + 1 + 1

    def __post_init__(self) -> None:
        if len(self.checksum) != 8:
            raise ValueError("checksum must be exactly 8 bytes")

    def encode(self) -> bytes:
        return b"".join(
            (
                self.stored_size.to_bytes(8, "big"),
                self.plain_size.to_bytes(8, "big"),
                bytes(self.checksum),
                self.num_records.to_bytes(4, "big"),
                self.version.to_bytes(2, "big"),
                bytes([int(self.kind), int(self.compression)]),
            )
        )

    @classmethod
    def decode(cls, reader: BinaryIO) -> "PayloadHeader":
        stored_size = read_uint(reader, 8)
        plain_size = read_uint(reader, 8)
        checksum = read_exact(reader, 8)
        num_records = read_uint(reader, 4)
        version = read_uint(reader, 2)

        kind_raw = read_uint(reader, 1)
        try:
            kind = PayloadKind(kind_raw)
        except ValueError:
            raise UnknownKindError(kind_raw) from None

        compression_raw = read_uint(reader, 1)
        try:
            compression = Compression(compression_raw)
        except ValueError:
            raise UnknownCompressionError(compression_raw) from None

        return cls(
            stored_size=stored_size,
            plain_size=plain_size,
            checksum=checksum,
            num_records=num_records,
            version=version,
            kind=kind,
            compression=compression,
        )


@dataclass
class Payload(Generic[T]):
    """A decoded payload: its header and its body."""

    header: PayloadHeader
    body: T


@dataclass(frozen=True)
class Attribute:
    """A free-form key/value attribute record."""

    key: bytes
    value: bytes

    def encode(self) -> bytes:
        return (
            len(self.key).to_bytes(8, "big")
            + len(self.value).to_bytes(8, "big")
            + bytes(self.key)
            + bytes(self.value)
        )

    @classmethod
    def decode(cls, reader: BinaryIO) -> "Attribute":
        key_length = read_uint(reader, 8)
        value_length = read_uint(reader, 8)
        key = read_exact(reader, key_length)
        value = read_exact(reader, value_length)
        return cls(key=key, value=value)

    def size(self) -> int:
        return 8 + 8 + len(self.key) + len(self.value)


@dataclass(frozen=True)
class Index:
    """Offsets of one unique file within the decompressed content payload."""

    start: int
    end: int
    digest: int

    def encode(self) -> bytes:
        return (
            self.start.to_bytes(8, "big")
            + self.end.to_bytes(8, "big")
            + self.digest.to_bytes(16, "big")
        )

    @classmethod
    def decode(cls, reader: BinaryIO) -> "Index":
        start = read_uint(reader, 8)
        end = read_uint(reader, 8)
        digest = read_uint(reader, 16)
        return cls(start=start, end=end, digest=digest)

    def size(self) -> int:
        return 8 + 8 + 16


def decode_records(record_type: type[R], reader: BinaryIO, num_records: int) -> list[R]:
    """Decode `num_records` consecutive records of the given type."""
    return [record_type.decode(reader) for _ in range(num_records)]  # type: ignore[attr-defined]


def encode_records(records: Iterable[_Record]) -> bytes:
    """Concatenate the encoded form of every record."""
    return b"".join(record.encode() for record in records)


def records_total_size(records: Iterable[_Record]) -> int:
    """Total encoded size of the records."""
    return sum(record.size() for record in records)