import calendar
import datetime
import time
from typing import Optional, Union

from . import utils
from .otp import OTP

ForTime = Union[int, float, datetime.datetime]


class TOTP(OTP):
    """
    Handler for time-based OTP counters.
    """

    def __init__(self, s: str, digits: int = 6, interval: int = 30) -> None:
        """
        :param s: secret in base32 format
        :param digits: number of integers in the OTP
        :param interval: the time interval in seconds for OTP. This defaults to 30.
        """
        if interval < 1:
            raise ValueError("interval must be a positive number of seconds")
        self.interval = interval
        super().__init__(s=s, digits=digits)

    def at(self, for_time: ForTime, counter_offset: int = 0) -> str:
        """
        Accepts either a Unix timestamp integer or a datetime object.

        :param for_time: the time to generate an OTP for
        :param counter_offset: the amount of ticks to add to the time counter
        :returns: OTP value
        """
        return self.generate_otp(self.timecode(for_time) + counter_offset)

    def now(self) -> str:
        """
        Generate the current time OTP

        :returns: OTP value
        """
        return self.generate_otp(self.timecode(time.time()))

    def remaining(self, for_time: Optional[ForTime] = None) -> int:
        """
        Seconds left before the code for ``for_time`` expires, in [1, interval].
        """
        if for_time is None:
            for_time = time.time()
        # 0 past the boundary means a full window is left
        return self.interval - (int(self._seconds(for_time)) % self.interval)

    def verify(self, otp: str, for_time: Optional[ForTime] = None, valid_window: int = 0) -> bool:
        """
        Verifies the OTP passed in against the current time OTP.

        :param otp: the OTP to check against
        :param for_time: Time to check OTP at (defaults to now)
        :param valid_window: extends the validity to this many counter ticks before and after the current one
        :returns: True if verification succeeded, False otherwise
        """
        if for_time is None:
            for_time = time.time()

        for i in range(-valid_window, valid_window + 1):
            if utils.strings_equal(str(otp), self.at(for_time, i)):
                return True
        return False

    def timecode(self, for_time: ForTime) -> int:
        """
        Accepts either a timezone naive (`for_time.tzinfo is None`) or
        a timezone aware datetime as argument and returns the
        corresponding counter value (timecode).

        """
        return int(self._seconds(for_time) // self.interval)

    @staticmethod
    def _seconds(for_time: ForTime) -> float:
        if not isinstance(for_time, datetime.datetime):
            return for_time
        if for_time.tzinfo:
            return calendar.timegm(for_time.utctimetuple())
        # naive datetimes are local time
        return time.mktime(for_time.timetuple())
