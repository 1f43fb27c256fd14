import secrets
from typing import Sequence

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

# Lookup for decode(). Anything missing from this table is skipped.
_VALUES = {c: i for i, c in enumerate(ALPHABET)}


def decode(secret: str) -> bytes:
    """
    Decodes an RFC 4648 base32 string into raw bytes.

    Decoding is lenient: characters outside the alphabet (padding, lowercase,
    separators) are dropped instead of rejected, and trailing bits that do not
    fill a whole byte are discarded. Callers are expected to uppercase the
    input first, see :func:`totpgen.utils.normalize_secret`.

    :param secret: base32 text
    :returns: the decoded bytes, possibly empty
    """
    result = bytearray()
    buffer = 0
    bits = 0
    for char in secret:
        value = _VALUES.get(char)
        if value is None:
            continue
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            result.append((buffer >> bits) & 0xFF)
        # only the low `bits` bits are still pending
        buffer &= (1 << bits) - 1
    return bytes(result)


def encode(data: bytes) -> str:
    """
    Encodes bytes as unpadded base32, the form used in otpauth URIs.
    """
    out = []
    buffer = 0
    bits = 0
    for byte in data:
        buffer = (buffer << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            out.append(ALPHABET[(buffer >> bits) & 0x1F])
        buffer &= (1 << bits) - 1
    if bits:
        out.append(ALPHABET[(buffer << (5 - bits)) & 0x1F])
    return "".join(out)


def random_base32(length: int = 32, chars: Sequence[str] = ALPHABET) -> str:
    # Note: the otpauth scheme does not use base32 padding for secret lengths not divisible by 8.
    if length < 32:
        raise ValueError("Secrets should be at least 160 bits")

    return "".join(secrets.choice(chars) for _ in range(length))
