import re
import unicodedata
from hmac import compare_digest
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def normalize_secret(secret: Optional[str]) -> str:
    """Strip all whitespace and uppercase the secret."""
    if not secret:
        return ""
    return _WHITESPACE.sub("", secret).upper()


def int_to_bytestring(i: int, padding: int = 8) -> bytes:
    """
    Big-endian bytes of a non-negative counter, left padded with zeros.
    """
    result = bytearray()
    while i != 0:
        result.append(i & 0xFF)  # lowest byte first,
        i >>= 8
    return bytes(reversed(result)).rjust(padding, b"\0")  # then flipped


def strings_equal(s1: str, s2: str) -> bool:
    """
    Compares two codes in constant time.

    Fullwidth and other compatibility digits are folded with NFKC first, so
    "４８２１９３" matches "482193". Only the length can leak through timing.
    """
    s1 = unicodedata.normalize("NFKC", s1)
    s2 = unicodedata.normalize("NFKC", s2)
    return compare_digest(s1.encode("utf-8"), s2.encode("utf-8"))
