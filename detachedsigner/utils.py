# Copyright (C) 2018-2025 The python-bitcoin-utils developers
#
# This file is part of python-bitcoin-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of python-bitcoin-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

import hashlib
import struct

from detachedsigner.ripemd160 import ripemd160


class Secp256k1Params:
    # secp256k1 is y**2 = x**3 + 7 over the prime field of
    # p = 2^256 - 2^32 - 2^9 - 2^8 - 2^7 - 2^6 - 2^4 - 1
    _p = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
    _b = 7


def double_sha256(data: bytes) -> bytes:
    """Bitcoin's hash256: SHA-256 applied twice"""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """Bitcoin's hash160: RIPEMD-160 of the SHA-256 of data"""
    return ripemd160(hashlib.sha256(data).digest())


def encode_varint(i: int) -> bytes:
    """Encodes i as a CompactSize unsigned integer.

    https://bitcoin.org/en/developer-reference#compactsize-unsigned-integers
    """
    if i < 0xFD:
        return bytes([i])
    elif i <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", i)
    elif i <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", i)
    elif i <= 0xFFFFFFFFFFFFFFFF:
        return b"\xff" + struct.pack("<Q", i)
    raise ValueError(f"Integer is too large for a CompactSize: {i}")


def prepend_compact_size(data: bytes) -> bytes:
    """Returns data prefixed with its length as a CompactSize"""
    return encode_varint(len(data)) + data


def parse_compact_size(data: bytes) -> tuple[int, int]:
    """Reads a CompactSize at the start of data

    Returns the value and the number of bytes it occupied
    """
    if not data:
        raise ValueError("Cannot parse compact size from empty data")

    prefix = data[0]
    if prefix < 0xFD:
        return prefix, 1

    fmt, width = {0xFD: ("<H", 2), 0xFE: ("<I", 4), 0xFF: ("<Q", 8)}[prefix]
    if len(data) < 1 + width:
        raise ValueError("Truncated compact size")
    return struct.unpack(fmt, data[1 : 1 + width])[0], 1 + width


def b_to_h(b: bytes) -> str:
    return b.hex()


def h_to_b(h: str) -> bytes:
    return bytes.fromhex(h)


def h_to_i(hex_str: str) -> int:
    return int(hex_str, base=16)
