import time
from typing import Optional

from .base32 import random_base32 as random_base32
from .otp import OTP as OTP
from .otp import InvalidSecret as InvalidSecret
from .scheduler import Scheduler as Scheduler
from .scheduler import State as State
from .scheduler import Tick as Tick
from .totp import TOTP as TOTP
from .totp import ForTime


def code(secret: str, now: Optional[ForTime] = None) -> str:
    """
    Returns the 6 digit TOTP code for ``secret`` at ``now``.

    :param secret: base32 secret, whitespace and case are normalized
    :param now: Unix timestamp or datetime, defaults to the current time
    :raises InvalidSecret: if the secret yields no key bytes
    """
    if now is None:
        now = time.time()
    return TOTP(secret).at(now)
