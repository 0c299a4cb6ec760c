"""Reading stone containers: header, payloads and content."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Optional, Union

import zstandard

from stonekit.stone.digest import Hasher, HashingReader
from stonekit.stone.header import Header
from stonekit.stone.ioext import read_exact
from stonekit.stone.layout import Layout
from stonekit.stone.meta import Meta
from stonekit.stone.payload import (
    Attribute,
    Compression,
    Index,
    Payload,
    PayloadHeader,
    PayloadKind,
    decode_records,
)

_WINDOW_LOG_MAX = 31
_CHUNK_SIZE = 1 << 16

_RECORD_TYPES = {
    PayloadKind.META: Meta,
    PayloadKind.LAYOUT: Layout,
    PayloadKind.INDEX: Index,
    PayloadKind.ATTRIBUTES: Attribute,
}


class StoneReadError(Exception):
    """Base error for reading stone payloads."""


class PayloadChecksumError(StoneReadError):
    def __init__(self, got: int, expected: int) -> None:
        self.got = got
        self.expected = expected
        super().__init__(f"payload checksum mismatch: got {got:02x}, expected {expected:02x}")


@dataclass(frozen=True)
class Content:
    """Location of the content payload body; unpacked later on request."""

    offset: int


def _decompress(stored: bytes, compression: Compression) -> bytes:
    if compression is Compression.NONE:
        return stored
    decompressor = zstandard.ZstdDecompressor(max_window_size=1 << _WINDOW_LOG_MAX)
    output = bytearray()
    try:
        with decompressor.stream_reader(io.BytesIO(stored), read_across_frames=True) as reader:
            while chunk := reader.read(_CHUNK_SIZE):
                output += chunk
    except zstandard.ZstdError as error:
        raise StoneReadError(f"zstd decompression failed: {error}") from error
    return bytes(output)


def _validate_checksum(hasher: Hasher, header: PayloadHeader) -> None:
    got = hasher.digest()
    expected = int.from_bytes(header.checksum, "big")
    if got != expected:
        raise PayloadChecksumError(got, expected)


class Reader:
    """A stone container opened on a seekable binary stream."""

    def __init__(self, reader: BinaryIO) -> None:
        self._reader = reader
        self._hasher = Hasher()
        self.header = Header.decode(reader)

    def payloads(self) -> Iterator[Payload]:
        """Iterate over the payloads, rewinding to the first one.

        Record payloads are decoded and checksummed; the content payload is
        only located, see unpack_content.
        """
        if self._reader.tell() != Header.SIZE:
            self._reader.seek(Header.SIZE)
        return self._iter_payloads()

    def _iter_payloads(self) -> Iterator[Payload]:
        for _ in range(self.header.num_payloads):
            payload = self._decode_payload()
            if payload is not None:
                yield payload

    def _decode_payload(self) -> Optional[Payload]:
        try:
            header = PayloadHeader.decode(self._reader)
        except EOFError:
            return None

        self._hasher.reset()

        if header.kind is PayloadKind.CONTENT:
            offset = self._reader.tell()
            self._reader.seek(header.stored_size, io.SEEK_CUR)
            return Payload(header, Content(offset))

        record_type = _RECORD_TYPES.get(header.kind)
        if record_type is None:
            raise StoneReadError(f"unsupported payload kind: {header.kind.name.lower()}")

        stored = read_exact(HashingReader(self._reader, self._hasher), header.stored_size)
        plain = _decompress(stored, header.compression)
        body = decode_records(record_type, io.BytesIO(plain), header.num_records)
        _validate_checksum(self._hasher, header)
        return Payload(header, body)

    def unpack_content(self, content: Payload, writer: BinaryIO) -> None:
        """Decompress the content payload into `writer` and verify its checksum."""
        self._reader.seek(content.body.offset)
        self._hasher.reset()
        stored = read_exact(HashingReader(self._reader, self._hasher), content.header.stored_size)
        writer.write(_decompress(stored, content.header.compression))
        _validate_checksum(self._hasher, content.header)


def read(reader: BinaryIO) -> Reader:
    """Open a stone container from a seekable binary stream."""
    return Reader(reader)


def read_bytes(data: Union[bytes, bytearray, memoryview]) -> Reader:
    """Open a stone container held in memory."""
    return Reader(io.BytesIO(bytes(data)))


def find_payload(payloads: Iterable[Payload], kind: PayloadKind) -> Optional[Payload]:
    """First payload of the given kind, or None."""
    return next((payload for payload in payloads if payload.header.kind == kind), None)