import io

import pytest
import zstandard

from stonekit.stone.digest import xxh3_128, xxh3_64
from stonekit.stone.header import FileType, Header, NotEnoughBytesError, Version
from stonekit.stone.layout import DirectoryEntry, Layout, RegularEntry
from stonekit.stone.meta import Meta, MetaKind, Tag
from stonekit.stone.payload import (
    Compression,
    Index,
    PayloadHeader,
    PayloadKind,
    UnknownKindError,
    encode_records,
)
from stonekit.stone.read import (
    Content,
    PayloadChecksumError,
    StoneReadError,
    find_payload,
    read,
    read_bytes,
)

BASH_TEST_STONE = bytes(
    [
        0x0, 0x6D, 0x6F, 0x73, 0x0, 0x4, 0x0, 0x0, 0x1, 0x0, 0x0, 0x2, 0x0, 0x0, 0x3, 0x0, 0x0,
        0x4, 0x0, 0x0, 0x5, 0x0, 0x0, 0x6, 0x0, 0x0, 0x7, 0x1, 0x0, 0x0, 0x0, 0x1,
    ]
)

FILES = [b"#!/bin/sh\necho completion\n", b"complete -F _foo foo\n" * 12]


def _payload(kind, body, num_records, compression=Compression.ZSTD, checksum=None):
    stored = zstandard.ZstdCompressor().compress(body) if compression is Compression.ZSTD else body
    if checksum is None:
        checksum = xxh3_64(stored)
    header = PayloadHeader(
        stored_size=len(stored),
        plain_size=len(body),
        checksum=checksum.to_bytes(8, "big"),
        num_records=num_records,
        version=1,
        kind=kind,
        compression=compression,
    )
    return header.encode() + stored


def _stone(*payloads, num_payloads=None):
    count = len(payloads) if num_payloads is None else num_payloads
    return Header(count, FileType.BINARY).encode() + b"".join(payloads)


def _package():
    content = b"".join(FILES)
    indices = []
    start = 0
    for data in FILES:
        indices.append(Index(start, start + len(data), xxh3_128(data)))
        start += len(data)
    metas = [
        Meta(Tag.NAME, MetaKind.STRING, "bash-completion"),
        Meta(Tag.RELEASE, MetaKind.UINT64, 1),
    ]
    layouts = [
        Layout(0, 0, 0o40755, 0, DirectoryEntry("/usr/share")),
        Layout(0, 0, 0o100644, 0, RegularEntry(indices[0].digest, "/usr/share/a")),
        Layout(0, 0, 0o100644, 0, RegularEntry(indices[1].digest, "/usr/share/b")),
    ]
    data = _stone(
        _payload(PayloadKind.META, encode_records(metas), len(metas)),
        _payload(PayloadKind.LAYOUT, encode_records(layouts), len(layouts)),
        _payload(PayloadKind.INDEX, encode_records(indices), len(indices)),
        _payload(PayloadKind.CONTENT, content, 0),
    )
    return data, metas, layouts, indices, content


def test_read_header():
    stone = read_bytes(BASH_TEST_STONE)
    assert stone.header.version() == Version.V1
    assert stone.header.num_payloads == 4
    assert stone.header.file_type == FileType.BINARY


def test_truncated_header_is_rejected():
    with pytest.raises(NotEnoughBytesError):
        read_bytes(BASH_TEST_STONE[:20])


def test_read_records_and_content():
    data, metas, layouts, indices, content = _package()
    stone = read_bytes(data)
    payloads = list(stone.payloads())

    assert [p.header.kind for p in payloads] == [
        PayloadKind.META,
        PayloadKind.LAYOUT,
        PayloadKind.INDEX,
        PayloadKind.CONTENT,
    ]
    assert find_payload(payloads, PayloadKind.META).body == metas
    assert find_payload(payloads, PayloadKind.LAYOUT).body == layouts
    assert find_payload(payloads, PayloadKind.INDEX).body == indices

    content_payload = find_payload(payloads, PayloadKind.CONTENT)
    assert isinstance(content_payload.body, Content)
    unpacked = io.BytesIO()
    stone.unpack_content(content_payload, unpacked)
    assert unpacked.getvalue() == content


def test_index_digests_match_content_and_layouts():
    data, *_ = _package()
    stone = read_bytes(data)
    payloads = list(stone.payloads())
    unpacked = io.BytesIO()
    stone.unpack_content(find_payload(payloads, PayloadKind.CONTENT), unpacked)
    raw = unpacked.getvalue()
    layouts = find_payload(payloads, PayloadKind.LAYOUT).body

    for index in find_payload(payloads, PayloadKind.INDEX).body:
        assert xxh3_128(raw[index.start : index.end]) == index.digest
        assert any(
            isinstance(layout.entry, RegularEntry) and layout.entry.hash == index.digest
            for layout in layouts
        )


def test_read_from_stream_into_sink():
    data, *_, content = _package()
    stone = read(io.BytesIO(data))
    payloads = list(stone.payloads())
    sink = io.BytesIO()
    stone.unpack_content(find_payload(payloads, PayloadKind.CONTENT), sink)
    assert len(sink.getvalue()) == len(content)


def test_payloads_rewinds_on_each_call():
    data, metas, *_ = _package()
    stone = read_bytes(data)
    first = list(stone.payloads())
    second = list(stone.payloads())
    assert len(first) == len(second) == 4
    assert find_payload(second, PayloadKind.META).body == metas


def test_missing_payloads_are_skipped():
    metas = [Meta(Tag.NAME, MetaKind.STRING, "nano")]
    data = _stone(_payload(PayloadKind.META, encode_records(metas), 1), num_payloads=3)
    payloads = list(read_bytes(data).payloads())
    assert len(payloads) == 1
    assert payloads[0].body == metas


def test_uncompressed_payload():
    indices = [Index(0, 4, 99)]
    data = _stone(_payload(PayloadKind.INDEX, encode_records(indices), 1, Compression.NONE))
    payload = next(read_bytes(data).payloads())
    assert payload.body == indices
    assert payload.header.compression is Compression.NONE


def test_find_payload_missing_kind():
    data = _stone(_payload(PayloadKind.INDEX, encode_records([Index(0, 1, 2)]), 1))
    assert find_payload(read_bytes(data).payloads(), PayloadKind.CONTENT) is None


def test_record_checksum_mismatch():
    body = encode_records([Meta(Tag.NAME, MetaKind.STRING, "nano")])
    data = _stone(_payload(PayloadKind.META, body, 1, checksum=1234))
    with pytest.raises(PayloadChecksumError) as info:
        list(read_bytes(data).payloads())
    assert info.value.expected == 1234


def test_content_checksum_mismatch():
    stored = zstandard.ZstdCompressor().compress(b"payload bytes")
    data = _stone(_payload(PayloadKind.CONTENT, b"payload bytes", 0, checksum=7))
    stone = read_bytes(data)
    content = find_payload(stone.payloads(), PayloadKind.CONTENT)
    with pytest.raises(PayloadChecksumError) as info:
        stone.unpack_content(content, io.BytesIO())
    assert info.value.got == xxh3_64(stored)
    assert info.value.expected == 7


def test_unknown_payload_kind():
    raw = bytearray(_payload(PayloadKind.INDEX, encode_records([Index(0, 1, 2)]), 1))
    raw[30] = 9
    with pytest.raises(UnknownKindError):
        list(read_bytes(_stone(bytes(raw))).payloads())


def test_dumb_payload_is_unsupported():
    data = _stone(_payload(PayloadKind.DUMB, b"", 0))
    with pytest.raises(StoneReadError):
        list(read_bytes(data).payloads())