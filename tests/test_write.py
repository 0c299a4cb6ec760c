import io

import pytest

from stonekit.stone.digest import xxh3_128
from stonekit.stone.header import FileType, Header
from stonekit.stone.layout import DirectoryEntry, Layout, RegularEntry, SymlinkEntry
from stonekit.stone.meta import Dependency, Meta, MetaKind, Tag
from stonekit.stone.payload import (
    Attribute,
    Compression,
    Index,
    PayloadKind,
    records_total_size,
)
from stonekit.stone.read import PayloadChecksumError, find_payload, read_bytes
from stonekit.stone.write import Writer

FILES = [
    b"#!/bin/bash\ncomplete -F _foo foo\n",
    b"hello world\n" * 50,
    b"",
    b"\x00\x01binary\xff" * 300,
]

META = [
    Meta(Tag.NAME, MetaKind.STRING, "bash-completion"),
    Meta(Tag.VERSION, MetaKind.STRING, "2.11"),
    Meta(Tag.RELEASE, MetaKind.UINT64, 1),
    Meta(Tag.BUILD_RELEASE, MetaKind.UINT64, 1),
    Meta(Tag.DEPENDS, MetaKind.DEPENDENCY, "bash", Dependency.PACKAGE_NAME),
]


def _layouts():
    layouts = [Layout(0, 0, 0o40755, 0, DirectoryEntry("/usr/share/completions"))]
    layouts += [
        Layout(0, 0, 0o100644, 0, RegularEntry(xxh3_128(data), f"/usr/share/completions/f{i}"))
        for i, data in enumerate(FILES)
    ]
    layouts.append(Layout(0, 0, 0o120777, 0, SymlinkEntry("f0", "/usr/share/completions/link")))
    return layouts


def _build(files=FILES):
    out = io.BytesIO()
    writer = Writer(out, FileType.BINARY).with_content(
        io.BytesIO(), sum(len(data) for data in files)
    )
    writer.add_payload(META)
    for data in files:
        writer.add_content(io.BytesIO(data))
    writer.add_payload(_layouts())
    writer.finalize()
    return out.getvalue()


def _payloads(data):
    reader = read_bytes(data)
    return reader, list(reader.payloads())


def test_roundtrip():
    data = _build()
    reader, payloads = _payloads(data)
    assert reader.header == Header(num_payloads=4, file_type=FileType.BINARY)

    meta = find_payload(payloads, PayloadKind.META)
    layouts = find_payload(payloads, PayloadKind.LAYOUT)
    indices = find_payload(payloads, PayloadKind.INDEX)
    content = find_payload(payloads, PayloadKind.CONTENT)

    assert meta.body == META
    assert layouts.body == _layouts()

    unpacked = io.BytesIO()
    reader.unpack_content(content, unpacked)
    plain = unpacked.getvalue()
    assert plain == b"".join(FILES)

    assert len(indices.body) == len(FILES)
    for index, original in zip(indices.body, FILES):
        assert plain[index.start : index.end] == original
        assert index.digest == xxh3_128(original)
        assert any(
            isinstance(layout.entry, RegularEntry) and layout.entry.hash == index.digest
            for layout in layouts.body
        )


def test_indices_are_contiguous():
    _, payloads = _payloads(_build())
    indices = find_payload(payloads, PayloadKind.INDEX).body
    assert indices[0].start == 0
    for previous, current in zip(indices, indices[1:]):
        assert current.start == previous.end
    assert indices[-1].end == sum(len(data) for data in FILES)


def test_header_bytes():
    data = _build()
    assert data[:4] == b"\0mos"
    assert data[4:6] == (4).to_bytes(2, "big")
    assert data[27] == int(FileType.BINARY)
    assert data[28:32] == (1).to_bytes(4, "big")


def test_payload_headers():
    _, payloads = _payloads(_build())
    assert [p.header.kind for p in payloads] == [
        PayloadKind.META,
        PayloadKind.LAYOUT,
        PayloadKind.INDEX,
        PayloadKind.CONTENT,
    ]
    for payload in payloads:
        assert payload.header.version == 1
        assert payload.header.compression is Compression.ZSTD

    meta = find_payload(payloads, PayloadKind.META)
    assert meta.header.num_records == len(META)
    assert meta.header.plain_size == records_total_size(META)

    index = find_payload(payloads, PayloadKind.INDEX)
    assert index.header.num_records == len(FILES)
    assert index.header.plain_size == 32 * len(FILES)

    content = find_payload(payloads, PayloadKind.CONTENT)
    assert content.header.num_records == 0
    assert content.header.plain_size == sum(len(data) for data in FILES)


def test_content_accepts_bytes():
    out = io.BytesIO()
    writer = Writer(out, FileType.BINARY).with_content(io.BytesIO(), 6)
    writer.add_content(b"abc")
    writer.add_content(bytearray(b"def"))
    writer.finalize()

    reader, payloads = _payloads(out.getvalue())
    unpacked = io.BytesIO()
    reader.unpack_content(find_payload(payloads, PayloadKind.CONTENT), unpacked)
    assert unpacked.getvalue() == b"abcdef"
    indices = find_payload(payloads, PayloadKind.INDEX).body
    assert [(i.start, i.end) for i in indices] == [(0, 3), (3, 6)]


def test_without_content():
    out = io.BytesIO()
    writer = Writer(out, FileType.REPOSITORY)
    writer.add_payload(META)
    writer.finalize()

    reader, payloads = _payloads(out.getvalue())
    assert reader.header == Header(num_payloads=1, file_type=FileType.REPOSITORY)
    assert len(payloads) == 1
    assert payloads[0].body == META


def test_attributes_roundtrip():
    attributes = [Attribute(b"key", b"value"), Attribute(b"", b"\x00\x01")]
    out = io.BytesIO()
    writer = Writer(out, FileType.BINARY)
    writer.add_payload(attributes)
    writer.finalize()

    _, payloads = _payloads(out.getvalue())
    payload = find_payload(payloads, PayloadKind.ATTRIBUTES)
    assert payload.body == attributes


def test_corrupt_checksum_detected():
    data = bytearray(_build())
    # Meta payload header follows the 32 byte stone header; checksum at 16..24
    data[32 + 16] ^= 0xFF
    reader = read_bytes(bytes(data))
    with pytest.raises(PayloadChecksumError):
        list(reader.payloads())


def test_index_payload_rejected():
    writer = Writer(io.BytesIO(), FileType.BINARY)
    with pytest.raises(ValueError):
        writer.add_payload([Index(0, 1, 2)])


def test_empty_and_mixed_payloads_rejected():
    writer = Writer(io.BytesIO(), FileType.BINARY)
    with pytest.raises(ValueError):
        writer.add_payload([])
    with pytest.raises(ValueError):
        writer.add_payload([META[0], Attribute(b"k", b"v")])


def test_add_content_requires_buffer():
    writer = Writer(io.BytesIO(), FileType.BINARY)
    with pytest.raises(RuntimeError):
        writer.add_content(b"data")


def test_finalize_only_once():
    out = io.BytesIO()
    writer = Writer(out, FileType.BINARY)
    writer.finalize()
    assert len(out.getvalue()) == Header.SIZE
    with pytest.raises(RuntimeError):
        writer.finalize()