"""
Pure Python SHA-1 (FIPS 180-4).

All word arithmetic is done modulo 2**32; the masks below are what keeps
Python's unbounded ints behaving like 32-bit registers.
"""
import struct

BLOCK_SIZE = 64
DIGEST_SIZE = 20

_MASK = 0xFFFFFFFF
_INITIAL_STATE = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476, 0xC3D2E1F0)


def _rotl(x: int, n: int) -> int:
    return ((x << n) | (x >> (32 - n))) & _MASK


def pad(message: bytes) -> bytes:
    """
    Appends 0x80, zeros up to 56 mod 64, then the 64-bit big-endian bit length.
    """
    length = len(message)
    zeros = (55 - length) % BLOCK_SIZE
    return message + b"\x80" + b"\x00" * zeros + struct.pack(">Q", (length * 8) & 0xFFFFFFFFFFFFFFFF)


def _compress(state, block: bytes):
    w = list(struct.unpack(">16I", block))
    for j in range(16, 80):
        w.append(_rotl(w[j - 3] ^ w[j - 8] ^ w[j - 14] ^ w[j - 16], 1))

    a, b, c, d, e = state
    for j in range(80):
        if j < 20:
            f = (b & c) | (~b & d)
            k = 0x5A827999
        elif j < 40:
            f = b ^ c ^ d
            k = 0x6ED9EBA1
        elif j < 60:
            f = (b & c) | (b & d) | (c & d)
            k = 0x8F1BBCDC
        else:
            f = b ^ c ^ d
            k = 0xCA62C1D6

        temp = (_rotl(a, 5) + (f & _MASK) + e + k + w[j]) & _MASK
        e = d
        d = c
        c = _rotl(b, 30)
        b = a
        a = temp

    return tuple((x + y) & _MASK for x, y in zip(state, (a, b, c, d, e)))


def sha1(message: bytes) -> bytes:
    """
    Returns the 20 byte SHA-1 digest of ``message``.

    >>> sha1(b"").hex()
    'da39a3ee5e6b4b0d3255bfef95601890afd80709'
    """
    padded = pad(bytes(message))
    state = _INITIAL_STATE
    for i in range(0, len(padded), BLOCK_SIZE):
        state = _compress(state, padded[i : i + BLOCK_SIZE])
    return struct.pack(">5I", *state)
