"""Writing stone containers: record payloads plus an optional content payload."""

from __future__ import annotations

import io
import shutil
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Optional, Union

import zstandard

from stonekit.stone.digest import Hasher, HashingWriter, xxh3_64
from stonekit.stone.header import FileType, Header
from stonekit.stone.layout import Layout
from stonekit.stone.meta import Meta
from stonekit.stone.payload import (
    Attribute,
    Compression,
    Index,
    PayloadHeader,
    PayloadKind,
    encode_records,
)

_COMPRESSION_LEVEL = 18
_WINDOW_LOG = 31
_CHUNK_SIZE = 1 << 16
_PAYLOAD_VERSION = 1

_PUBLIC_KINDS = {
    Meta: PayloadKind.META,
    Attribute: PayloadKind.ATTRIBUTES,
    Layout: PayloadKind.LAYOUT,
}

Record = Union[Meta, Attribute, Layout]


def _compressor() -> zstandard.ZstdCompressor:
    params = zstandard.ZstdCompressionParameters.from_level(
        _COMPRESSION_LEVEL, window_log=_WINDOW_LOG
    )
    return zstandard.ZstdCompressor(compression_params=params)


@dataclass
class _EncodedPayload:
    header: PayloadHeader
    content: bytes


@dataclass
class _ContentState:
    buffer: BinaryIO
    compressor: "zstandard.ZstdCompressionObj"
    plain_size: int = 0
    stored_size: int = 0
    indices: list[Index] = field(default_factory=list)
    # Digest of one file's plain bytes, for its Index record
    index_hasher: Hasher = field(default_factory=Hasher)
    # Digest of all compressed content, for the content payload header
    buffer_hasher: Hasher = field(default_factory=Hasher)


def _payload_kind(records: list) -> PayloadKind:
    if not records:
        raise ValueError("cannot add an empty payload")
    types = {type(record) for record in records}
    if len(types) != 1:
        raise ValueError("all records of a payload must have the same type")
    (record_type,) = types
    if record_type is Index:
        raise ValueError("index payloads are produced by add_content")
    kind = _PUBLIC_KINDS.get(record_type)
    if kind is None:
        raise ValueError(f"unsupported record type: {record_type.__name__}")
    return kind


class Writer:
    """Builds a stone container and writes it to a binary stream on finalize."""

    def __init__(self, writer: BinaryIO, file_type: FileType) -> None:
        self._writer = writer
        self._file_type = FileType(file_type)
        self._payloads: list[_EncodedPayload] = []
        self._compressor = _compressor()
        self._content: Optional[_ContentState] = None
        self._finalized = False

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("writer has already been finalized")

    def with_content(self, buffer: BinaryIO, pledged_size: Optional[int] = None) -> "Writer":
        """Enable a content payload staged in `buffer` (readable, writable, seekable).

        `pledged_size` is the total plain size of all content, if known.
        """
        self._check_open()
        if self._content is not None:
            raise RuntimeError("content buffer already configured")
        size = -1 if pledged_size is None else pledged_size
        self._content = _ContentState(
            buffer=buffer, compressor=_compressor().compressobj(size=size)
        )
        return self

    def add_payload(self, records: Iterable[Record]) -> None:
        """Add a meta, attributes or layout payload made of the given records."""
        self._check_open()
        records = list(records)
        kind = _payload_kind(records)
        self._payloads.append(self._encode(kind, records))

    def _encode(self, kind: PayloadKind, records: list) -> _EncodedPayload:
        plain = encode_records(records)
        compressed = self._compressor.compress(plain)
        header = PayloadHeader(
            stored_size=len(compressed),
            plain_size=len(plain),
            checksum=xxh3_64(compressed).to_bytes(8, "big"),
            num_records=len(records),
            version=_PAYLOAD_VERSION,
            kind=kind,
            compression=Compression.ZSTD,
        )
        return _EncodedPayload(header, compressed)

    def add_content(self, content: Union[BinaryIO, bytes, bytearray, memoryview]) -> None:
        """Compress one file's bytes into the content payload and index them."""
        self._check_open()
        state = self._content
        if state is None:
            raise RuntimeError("no content buffer configured, call with_content first")
        if isinstance(content, (bytes, bytearray, memoryview)):
            content = io.BytesIO(bytes(content))

        state.index_hasher.reset()
        start = state.plain_size
        sink = HashingWriter(state.buffer, state.buffer_hasher)

        while chunk := content.read(_CHUNK_SIZE):
            state.index_hasher.update(chunk)
            state.plain_size += len(chunk)
            sink.write(state.compressor.compress(chunk))

        state.stored_size += sink.bytes
        state.indices.append(
            Index(start=start, end=state.plain_size, digest=state.index_hasher.digest128())
        )

    def finalize(self) -> None:
        """Write the header, every payload and the content to the output stream."""
        self._check_open()
        self._finalized = True
        content = self._content
        checksum = 0

        if content is not None:
            sink = HashingWriter(content.buffer, content.buffer_hasher)
            sink.write(content.compressor.flush())
            content.stored_size += sink.bytes
            checksum = content.buffer_hasher.digest()
            self._payloads.append(self._encode(PayloadKind.INDEX, content.indices))

        out = self._writer
        num_payloads = len(self._payloads) + (1 if content is not None else 0)
        out.write(Header(num_payloads=num_payloads, file_type=self._file_type).encode())

        for payload in self._payloads:
            out.write(payload.header.encode())
            out.write(payload.content)

        if content is not None:
            header = PayloadHeader(
                stored_size=content.stored_size,
                plain_size=content.plain_size,
                checksum=checksum.to_bytes(8, "big"),
                num_records=0,
                version=_PAYLOAD_VERSION,
                kind=PayloadKind.CONTENT,
                compression=Compression.ZSTD,
            )
            out.write(header.encode())
            content.buffer.seek(0)
            shutil.copyfileobj(content.buffer, out)

        out.flush()