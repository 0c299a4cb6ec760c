import io

import pytest

from stonekit.stone.digest import Hasher, HashingReader, HashingWriter, xxh3_128, xxh3_64

# Lengths that exercise every size class of the algorithm.
LENGTHS = [0, 1, 2, 3, 4, 7, 8, 9, 15, 16, 17, 32, 33, 64, 65, 96, 97, 128, 129,
           160, 200, 240, 241, 1024, 1025, 2049]


def _sample(length):
    return bytes((i * 31 + 7) % 256 for i in range(length))


def test_empty_digests():
    assert xxh3_64(b"") == 0x2D06800538D394C2
    assert xxh3_128(b"") == 0x99AA06D3014798D86001C324468D497F


@pytest.mark.parametrize("length", LENGTHS)
def test_digest_ranges(length):
    data = _sample(length)
    assert 0 <= xxh3_64(data) < 2**64
    assert 0 <= xxh3_128(data) < 2**128


def test_digests_differ_between_inputs():
    digests64 = {xxh3_64(_sample(n)) for n in LENGTHS}
    digests128 = {xxh3_128(_sample(n)) for n in LENGTHS}
    assert len(digests64) == len(LENGTHS)
    assert len(digests128) == len(LENGTHS)


@pytest.mark.parametrize("length", [5, 12, 100, 200, 3000])
def test_single_bit_change_changes_digest(length):
    data = bytearray(_sample(length))
    original64 = xxh3_64(data)
    original128 = xxh3_128(data)
    data[length // 2] ^= 1
    assert xxh3_64(data) != original64
    assert xxh3_128(data) != original128


@pytest.mark.parametrize("length", LENGTHS)
def test_hasher_matches_one_shot(length):
    data = _sample(length)
    hasher = Hasher()
    for start in range(0, length, 37):
        hasher.update(data[start:start + 37])
    assert hasher.digest() == xxh3_64(data)
    assert hasher.digest128() == xxh3_128(data)


def test_hasher_reset():
    hasher = Hasher()
    hasher.update(b"something")
    hasher.reset()
    hasher.update(b"abc")
    assert hasher.digest() == xxh3_64(b"abc")
    assert hasher.digest128() == xxh3_128(b"abc")


def test_hashing_reader():
    data = _sample(500)
    hasher = Hasher()
    reader = HashingReader(io.BytesIO(data), hasher)
    assert reader.read(100) + reader.read() == data
    assert hasher.digest() == xxh3_64(data)


def test_hashing_writer():
    data = _sample(300)
    hasher = Hasher()
    sink = io.BytesIO()
    writer = HashingWriter(sink, hasher)
    assert writer.write(data[:120]) == 120
    writer.write(data[120:])
    writer.flush()
    assert writer.bytes == len(data)
    assert sink.getvalue() == data
    assert hasher.digest128() == xxh3_128(data)