import asyncio
import enum
import inspect
import logging
import math
import time
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Set

from .otp import InvalidSecret
from .totp import TOTP
from .utils import normalize_secret

logger = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    INVALID = "invalid"


class Tick(NamedTuple):
    """One published value: the code and how long it stays valid."""

    code: str
    seconds_remaining: int
    timecode: int


class Scheduler:
    """
    Re-derives the TOTP code once per second for the current secret.

    A single asyncio task does the ticking. ``set_secret`` replaces the
    session: the previous task is cancelled before the new key is installed,
    and the first tick of the new session is published synchronously.

    :param on_tick: called with a :class:`Tick` on every tick
    :param on_error: called with the :class:`InvalidSecret` when a secret
        yields no key
    :param on_idle: called when a session ends
    :param clock: returns the current Unix time in seconds
    :param sleep: coroutine function used to wait between ticks
    """

    def __init__(
        self,
        on_tick: Callable[[Tick], Any],
        on_error: Optional[Callable[[InvalidSecret], Any]] = None,
        on_idle: Optional[Callable[[], Any]] = None,
        digits: int = 6,
        interval: int = 30,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.digits = digits
        self.interval = interval
        self._on_tick = on_tick
        self._on_error = on_error
        self._on_idle = on_idle
        self._clock = clock
        self._sleep = sleep

        self._state = State.IDLE
        self._totp: Optional[TOTP] = None
        self._task: Optional[asyncio.Task] = None
        self._last_tick: Optional[Tick] = None
        self._copies: Set[asyncio.Task] = set()

    @property
    def state(self) -> State:
        return self._state

    @property
    def last_tick(self) -> Optional[Tick]:
        return self._last_tick

    @property
    def current_code(self) -> Optional[str]:
        return self._last_tick.code if self._last_tick else None

    def set_secret(self, secret: Optional[str]) -> None:
        """
        Starts, restarts or ends the session for ``secret``.

        An empty secret (after whitespace is stripped) ends the session.
        """
        normalized = normalize_secret(secret)
        if not normalized:
            self.stop()
            return

        totp = TOTP(normalized, digits=self.digits, interval=self.interval)
        now = self._clock()
        try:
            tick = self._compute(totp, now)
        except InvalidSecret as exc:
            self._cancel()
            self._totp = None
            self._last_tick = None
            self._state = State.INVALID
            logger.info("Secret rejected, no key bytes after decoding")
            if self._on_error:
                self._on_error(exc)
            return

        # raises before the previous session is touched
        loop = asyncio.get_running_loop()
        self._cancel()
        self._task = loop.create_task(self._run(totp, math.floor(now)))
        self._totp = totp
        self._state = State.ACTIVE
        logger.info("Session started")
        try:
            self._publish(tick)
        except Exception:
            self.stop()
            raise

    def stop(self) -> None:
        """Cancels the ticking and forgets the key."""
        self._cancel()
        previous = self._state
        self._state = State.IDLE
        self._totp = None
        self._last_tick = None
        if previous is not State.IDLE:
            logger.info("Session ended")
            if self._on_idle:
                self._on_idle()

    async def wait_stopped(self) -> None:
        """
        Waits until no session task is left, following secret replacements.
        """
        while self._task is not None:
            task = self._task
            await asyncio.wait([task])
            if task is self._task:
                # ended on its own, only possible through an exception
                self._task = None
                self.stop()
                task.result()

    def copy_code(self, writer: Callable[[str], Any]) -> Optional[asyncio.Task]:
        """
        Hands the current code to ``writer`` without waiting for it.

        ``writer`` may be a plain function or a coroutine function. Its
        failures are logged and dropped.

        :returns: the background task, or None when there is no code
        """
        code = self.current_code
        if code is None:
            return None
        task = asyncio.get_running_loop().create_task(self._copy(writer, code))
        self._copies.add(task)
        task.add_done_callback(self._copies.discard)
        return task

    def _cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _compute(self, totp: TOTP, now: float) -> Tick:
        timecode = totp.timecode(now)
        return Tick(
            code=totp.generate_otp(timecode),
            seconds_remaining=totp.remaining(now),
            timecode=timecode,
        )

    def _publish(self, tick: Tick) -> None:
        self._last_tick = tick
        logger.debug("Tick, %ss remaining", tick.seconds_remaining)
        self._on_tick(tick)

    async def _run(self, totp: TOTP, second: int) -> None:
        while True:
            # never publish the same second twice, even if the wall clock lags the timer
            second = max(second, math.floor(self._clock())) + 1
            await self._sleep(max(second - self._clock(), 0))
            self._publish(self._compute(totp, max(self._clock(), second)))

    @staticmethod
    async def _copy(writer: Callable[[str], Any], code: str) -> None:
        try:
            result = writer(code)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.warning("Copying the code failed", exc_info=True)
