from . import base32, utils
from .hmac_sha1 import hmac_sha1


class InvalidSecret(ValueError):
    """
    The secret produced no usable key.

    Raised for an empty secret and for a non-empty one in which no base32
    characters survive decoding.
    """


class OTP(object):
    """
    Base class for OTP handlers: counter in, RFC 4226 code out.
    """

    def __init__(self, s: str, digits: int = 6) -> None:
        """
        :param s: secret in base32 format, whitespace and case are normalized
        :param digits: number of integers in the OTP
        """
        if digits < 1 or digits > 10:
            raise ValueError("digits must be between 1 and 10")
        self.digits = digits
        self.secret = utils.normalize_secret(s)

    def generate_otp(self, input: int) -> str:
        """
        :param input: the HMAC counter value to use as the OTP input.
            Usually the number of intervals elapsed since the Unix epoch
        """
        if input < 0:
            raise ValueError("input must be positive integer")
        # counter goes in as 8 bytes, big-endian
        hmac_hash = hmac_sha1(self.byte_secret(), utils.int_to_bytestring(input))

        # low nibble of the last byte picks where the 4 byte window starts
        offset = hmac_hash[-1] & 0xF
        # top bit dropped so the value fits in 31 bits
        code = (
            (hmac_hash[offset] & 0x7F) << 24
            | (hmac_hash[offset + 1] & 0xFF) << 16
            | (hmac_hash[offset + 2] & 0xFF) << 8
            | (hmac_hash[offset + 3] & 0xFF)
        )
        # the leading 1 keeps zeros when slicing off the last `digits` characters
        str_code = str(10_000_000_000 + (code % 10**self.digits))
        return str_code[-self.digits :]

    def byte_secret(self) -> bytes:
        # "JBSWY3DPEHPK3PXP" -> b"Hello!\xde\xad\xbe\xef"
        key = base32.decode(self.secret)
        if not key:
            raise InvalidSecret("secret does not decode to any key bytes")
        return key
