"""XXH3 hashing (64 and 128 bit, seed 0, default secret) and hashing streams."""

from __future__ import annotations

import struct
from typing import BinaryIO

_M64 = 0xFFFFFFFFFFFFFFFF
_M32 = 0xFFFFFFFF

_P32_1 = 0x9E3779B1
_P32_2 = 0x85EBCA77
_P32_3 = 0xC2B2AE3D
_P64_1 = 0x9E3779B185EBCA87
_P64_2 = 0xC2B2AE3D27D4EB4F
_P64_3 = 0x165667B19E3779F9
_P64_4 = 0x85EBCA77C2B2AE63
_P64_5 = 0x27D4EB2F165667C5
_PRIME_MX1 = 0x165667919E3779F9
_PRIME_MX2 = 0x9FB21C651E98DF25

_SECRET = bytes(
    [
        0xB8, 0xFE, 0x6C, 0x39, 0x23, 0xA4, 0x4B, 0xBE, 0x7C, 0x01, 0x81, 0x2C, 0xF7, 0x21, 0xAD, 0x1C,
        0xDE, 0xD4, 0x6D, 0xE9, 0x83, 0x90, 0x97, 0xDB, 0x72, 0x40, 0xA4, 0xA4, 0xB7, 0xB3, 0x67, 0x1F,
        0xCB, 0x79, 0xE6, 0x4E, 0xCC, 0xC0, 0xE5, 0x78, 0x82, 0x5A, 0xD0, 0x7D, 0xCC, 0xFF, 0x72, 0x21,
        0xB8, 0x08, 0x46, 0x74, 0xF7, 0x43, 0x24, 0x8E, 0xE0, 0x35, 0x90, 0xE6, 0x81, 0x3A, 0x26, 0x4C,
        0x3C, 0x28, 0x52, 0xBB, 0x91, 0xC3, 0x00, 0xCB, 0x88, 0xD0, 0x65, 0x8B, 0x1B, 0x53, 0x2E, 0xA3,
        0x71, 0x64, 0x48, 0x97, 0xA2, 0x0D, 0xF9, 0x4E, 0x38, 0x19, 0xEF, 0x46, 0xA9, 0xDE, 0xAC, 0xD8,
        0xA8, 0xFA, 0x76, 0x3F, 0xE3, 0x9C, 0x34, 0x3F, 0xF9, 0xDC, 0xBB, 0xC7, 0xC7, 0x0B, 0x4F, 0x1D,
        0x8A, 0x51, 0xE0, 0x4B, 0xCD, 0xB4, 0x59, 0x31, 0xC8, 0x9F, 0x7E, 0xC9, 0xD9, 0x78, 0x73, 0x64,
        0xEA, 0xC5, 0xAC, 0x83, 0x34, 0xD3, 0xEB, 0xC3, 0xC5, 0x81, 0xA0, 0xFF, 0xFA, 0x13, 0x63, 0xEB,
        0x17, 0x0D, 0xDD, 0x51, 0xB7, 0xF0, 0xDA, 0x49, 0xD3, 0x16, 0x55, 0x26, 0x29, 0xD4, 0x68, 0x9E,
        0x2B, 0x16, 0xBE, 0x58, 0x7D, 0x47, 0xA1, 0xFC, 0x8F, 0xF8, 0xB8, 0xD1, 0x7A, 0xD0, 0x31, 0xCE,
        0x45, 0xCB, 0x3A, 0x8F, 0x95, 0x16, 0x04, 0x28, 0xAF, 0xD7, 0xFB, 0xCA, 0xBB, 0x4B, 0x40, 0x7E,
    ]
)
_SECRET_SIZE = len(_SECRET)
_STRIPE_LEN = 64
_SECRET_CONSUME_RATE = 8
_STRIPES_PER_BLOCK = (_SECRET_SIZE - _STRIPE_LEN) // _SECRET_CONSUME_RATE
_BLOCK_LEN = _STRIPE_LEN * _STRIPES_PER_BLOCK
_MIDSIZE_MAX = 240
_MIDSIZE_STARTOFFSET = 3
_MIDSIZE_LASTOFFSET = 17
_SECRET_SIZE_MIN = 136
_MERGEACCS_START = 11
_LANES = struct.Struct("<8Q")


def _r64(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 8], "little")


def _r32(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 4], "little")


def _swap64(x: int) -> int:
    return int.from_bytes(x.to_bytes(8, "little"), "big")


def _swap32(x: int) -> int:
    return int.from_bytes(x.to_bytes(4, "little"), "big")


def _rotl64(x: int, r: int) -> int:
    return ((x << r) | (x >> (64 - r))) & _M64


def _rotl32(x: int, r: int) -> int:
    return ((x << r) | (x >> (32 - r))) & _M32


def _mul128_fold64(a: int, b: int) -> int:
    product = a * b
    return (product & _M64) ^ (product >> 64)


def _xxh64_avalanche(h: int) -> int:
    h ^= h >> 33
    h = (h * _P64_2) & _M64
    h ^= h >> 29
    h = (h * _P64_3) & _M64
    return h ^ (h >> 32)


def _avalanche(h: int) -> int:
    h &= _M64
    h ^= h >> 37
    h = (h * _PRIME_MX1) & _M64
    return h ^ (h >> 32)


def _rrmxmx(h: int, length: int) -> int:
    h ^= _rotl64(h, 49) ^ _rotl64(h, 24)
    h = (h * _PRIME_MX2) & _M64
    h ^= (h >> 35) + length
    h = (h * _PRIME_MX2) & _M64
    return h ^ (h >> 28)


def _mix16(data: bytes, offset: int, secret_offset: int) -> int:
    return _mul128_fold64(
        _r64(data, offset) ^ _r64(_SECRET, secret_offset),
        _r64(data, offset + 8) ^ _r64(_SECRET, secret_offset + 8),
    )


def _mix32(acc: tuple[int, int], data: bytes, off1: int, off2: int, secret_offset: int) -> tuple[int, int]:
    low, high = acc
    low = (low + _mix16(data, off1, secret_offset)) & _M64
    low ^= (_r64(data, off2) + _r64(data, off2 + 8)) & _M64
    high = (high + _mix16(data, off2, secret_offset + 16)) & _M64
    high ^= (_r64(data, off1) + _r64(data, off1 + 8)) & _M64
    return low, high


def _combined_1to3(data: bytes) -> int:
    length = len(data)
    return (data[0] << 16) | (data[length >> 1] << 24) | data[-1] | (length << 8)


def _accumulate_512(acc: list[int], data: bytes, offset: int, secret_offset: int) -> None:
    values = _LANES.unpack_from(data, offset)
    keys = _LANES.unpack_from(_SECRET, secret_offset)
    for lane, (value, key) in enumerate(zip(values, keys)):
        keyed = value ^ key
        acc[lane ^ 1] = (acc[lane ^ 1] + value) & _M64
        acc[lane] = (acc[lane] + (keyed & _M32) * (keyed >> 32)) & _M64


def _scramble(acc: list[int]) -> None:
    keys = _LANES.unpack_from(_SECRET, _SECRET_SIZE - _STRIPE_LEN)
    for lane, key in enumerate(keys):
        value = acc[lane]
        value ^= value >> 47
        value ^= key
        acc[lane] = (value * _P32_1) & _M64


def _long_accumulators(data: bytes) -> list[int]:
    acc = [_P32_3, _P64_1, _P64_2, _P64_3, _P64_4, _P32_2, _P64_5, _P32_1]
    length = len(data)
    nb_blocks = (length - 1) // _BLOCK_LEN
    for block in range(nb_blocks):
        base = block * _BLOCK_LEN
        for stripe in range(_STRIPES_PER_BLOCK):
            _accumulate_512(acc, data, base + stripe * _STRIPE_LEN, stripe * _SECRET_CONSUME_RATE)
        _scramble(acc)
    base = nb_blocks * _BLOCK_LEN
    for stripe in range(((length - 1) - base) // _STRIPE_LEN):
        _accumulate_512(acc, data, base + stripe * _STRIPE_LEN, stripe * _SECRET_CONSUME_RATE)
    _accumulate_512(acc, data, length - _STRIPE_LEN, _SECRET_SIZE - _STRIPE_LEN - 7)
    return acc


def _merge_accs(acc: list[int], secret_offset: int, start: int) -> int:
    result = start
    for pair in range(4):
        soff = secret_offset + 16 * pair
        result += _mul128_fold64(
            acc[2 * pair] ^ _r64(_SECRET, soff),
            acc[2 * pair + 1] ^ _r64(_SECRET, soff + 8),
        )
    return _avalanche(result)


def xxh3_64(data: bytes) -> int:
    """64-bit XXH3 digest of `data`."""
    data = bytes(data)
    length = len(data)
    if length == 0:
        return _xxh64_avalanche(_r64(_SECRET, 56) ^ _r64(_SECRET, 64))
    if length <= 3:
        keyed = _combined_1to3(data) ^ (_r32(_SECRET, 0) ^ _r32(_SECRET, 4))
        return _xxh64_avalanche(keyed)
    if length <= 8:
        bitflip = _r64(_SECRET, 8) ^ _r64(_SECRET, 16)
        combined = _r32(data, length - 4) + (_r32(data, 0) << 32)
        return _rrmxmx(combined ^ bitflip, length)
    if length <= 16:
        low = _r64(data, 0) ^ (_r64(_SECRET, 24) ^ _r64(_SECRET, 32))
        high = _r64(data, length - 8) ^ (_r64(_SECRET, 40) ^ _r64(_SECRET, 48))
        return _avalanche(length + _swap64(low) + high + _mul128_fold64(low, high))
    if length <= 128:
        acc = length * _P64_1
        if length > 32:
            if length > 64:
                if length > 96:
                    acc += _mix16(data, 48, 96) + _mix16(data, length - 64, 112)
                acc += _mix16(data, 32, 64) + _mix16(data, length - 48, 80)
            acc += _mix16(data, 16, 32) + _mix16(data, length - 32, 48)
        acc += _mix16(data, 0, 0) + _mix16(data, length - 16, 16)
        return _avalanche(acc)
    if length <= _MIDSIZE_MAX:
        acc = length * _P64_1
        for i in range(8):
            acc += _mix16(data, 16 * i, 16 * i)
        acc = _avalanche(acc)
        for i in range(8, length // 16):
            acc += _mix16(data, 16 * i, 16 * (i - 8) + _MIDSIZE_STARTOFFSET)
        acc += _mix16(data, length - 16, _SECRET_SIZE_MIN - _MIDSIZE_LASTOFFSET)
        return _avalanche(acc)
    acc = _long_accumulators(data)
    return _merge_accs(acc, _MERGEACCS_START, (length * _P64_1) & _M64)


def xxh3_128(data: bytes) -> int:
    """128-bit XXH3 digest of `data`, high half in the upper 64 bits."""
    data = bytes(data)
    length = len(data)
    if length == 0:
        low = _xxh64_avalanche(_r64(_SECRET, 64) ^ _r64(_SECRET, 72))
        high = _xxh64_avalanche(_r64(_SECRET, 80) ^ _r64(_SECRET, 88))
    elif length <= 3:
        combined_low = _combined_1to3(data)
        combined_high = _rotl32(_swap32(combined_low), 13)
        low = _xxh64_avalanche(combined_low ^ (_r32(_SECRET, 0) ^ _r32(_SECRET, 4)))
        high = _xxh64_avalanche(combined_high ^ (_r32(_SECRET, 8) ^ _r32(_SECRET, 12)))
    elif length <= 8:
        combined = _r32(data, 0) + (_r32(data, length - 4) << 32)
        keyed = combined ^ (_r64(_SECRET, 16) ^ _r64(_SECRET, 24))
        product = keyed * ((_P64_1 + (length << 2)) & _M64)
        high = product >> 64
        low = product & _M64
        high = (high + (low << 1)) & _M64
        low ^= high >> 3
        low ^= low >> 35
        low = (low * _PRIME_MX2) & _M64
        low ^= low >> 28
        high = _avalanche(high)
    elif length <= 16:
        bitflip_low = _r64(_SECRET, 32) ^ _r64(_SECRET, 40)
        bitflip_high = _r64(_SECRET, 48) ^ _r64(_SECRET, 56)
        input_low = _r64(data, 0)
        input_high = _r64(data, length - 8)
        product = (input_low ^ input_high ^ bitflip_low) * _P64_1
        m_low = ((product & _M64) + ((length - 1) << 54)) & _M64
        m_high = product >> 64
        input_high ^= bitflip_high
        m_high = (m_high + input_high + (input_high & _M32) * (_P32_2 - 1)) & _M64
        m_low ^= _swap64(m_high)
        product = m_low * _P64_2
        low = _avalanche(product & _M64)
        high = _avalanche((product >> 64) + m_high * _P64_2)
    elif length <= _MIDSIZE_MAX:
        acc = ((length * _P64_1) & _M64, 0)
        if length <= 128:
            for i in reversed(range((length - 1) // 32 + 1)):
                acc = _mix32(acc, data, 16 * i, length - 16 * (i + 1), 32 * i)
        else:
            for i in range(32, 160, 32):
                acc = _mix32(acc, data, i - 32, i - 16, i - 32)
            acc = (_avalanche(acc[0]), _avalanche(acc[1]))
            for i in range(160, length + 1, 32):
                acc = _mix32(acc, data, i - 32, i - 16, _MIDSIZE_STARTOFFSET + i - 160)
            acc = _mix32(
                acc,
                data,
                length - 16,
                length - 32,
                _SECRET_SIZE_MIN - _MIDSIZE_LASTOFFSET - 16,
            )
        acc_low, acc_high = acc
        low = _avalanche(acc_low + acc_high)
        high = (-_avalanche(acc_low * _P64_1 + acc_high * _P64_4 + length * _P64_2)) & _M64
    else:
        acc = _long_accumulators(data)
        low = _merge_accs(acc, _MERGEACCS_START, (length * _P64_1) & _M64)
        high = _merge_accs(
            acc,
            _SECRET_SIZE - _STRIPE_LEN - _MERGEACCS_START,
            ~(length * _P64_2) & _M64,
        )
    return (high << 64) | low


class Hasher:
    """Incremental XXH3 hasher producing 64- or 128-bit digests."""

    def __init__(self) -> None:
        self._data = bytearray()

    def update(self, data: bytes) -> None:
        self._data += data

    def reset(self) -> None:
        self._data.clear()

    def digest(self) -> int:
        """64-bit digest of everything fed since the last reset."""
        return xxh3_64(self._data)

    def digest128(self) -> int:
        """128-bit digest of everything fed since the last reset."""
        return xxh3_128(self._data)


class HashingReader:
    """Reader that feeds every byte it returns into a hasher."""

    def __init__(self, inner: BinaryIO, hasher: Hasher) -> None:
        self.inner = inner
        self.hasher = hasher

    def read(self, size: int = -1) -> bytes:
        data = self.inner.read(size)
        self.hasher.update(data)
        return data


class HashingWriter:
    """Writer that hashes and counts every byte passed through it."""

    def __init__(self, inner: BinaryIO, hasher: Hasher) -> None:
        self.inner = inner
        self.hasher = hasher
        self.bytes = 0

    def write(self, data: bytes) -> int:
        self.bytes += len(data)
        self.hasher.update(data)
        self.inner.write(data)
        return len(data)

    def flush(self) -> None:
        self.inner.flush()