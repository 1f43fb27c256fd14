from .sha1 import BLOCK_SIZE, sha1


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """
    HMAC (RFC 2104) over the pure Python SHA-1.

    :param key: HMAC key of any length
    :param message: data to authenticate
    :returns: 20 byte MAC
    """
    if len(key) > BLOCK_SIZE:
        key = sha1(key)
    key = bytes(key).ljust(BLOCK_SIZE, b"\0")

    ipad = bytes(b ^ 0x36 for b in key)
    opad = bytes(b ^ 0x5C for b in key)
    return sha1(opad + sha1(ipad + bytes(message)))
