import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import List, Optional

from . import TOTP, InvalidSecret, Scheduler, Tick

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv("TOTPGEN_LOG_LEVEL", "WARNING")).upper()
    # basicConfig skips the level check when the root logger already has handlers
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError("unknown log level: {}".format(level))
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(filename)s:%(lineno)s  - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    logger.debug("Logging configured.")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="totpgen", description="Show the rotating 6 digit TOTP code for a base32 secret.")
    parser.add_argument("secret", nargs="?", help="base32 secret, read from TOTPGEN_SECRET or prompted for if omitted")
    parser.add_argument("--once", action="store_true", help="print the current code and exit")
    parser.add_argument("--log-level", help="logging level, defaults to TOTPGEN_LOG_LEVEL or WARNING")
    return parser.parse_args(argv)


def render(tick: Tick) -> None:
    sys.stdout.write("\r{}  {:>2}s ".format(tick.code, tick.seconds_remaining))
    sys.stdout.flush()


async def run(secret: str) -> int:
    errors: List[InvalidSecret] = []
    scheduler = Scheduler(on_tick=render, on_error=errors.append)
    scheduler.set_secret(secret)
    if errors:
        print("Invalid secret key", file=sys.stderr)
        return 1
    try:
        await scheduler.wait_stopped()
    finally:
        scheduler.stop()
    return 0


def read_secret(args: argparse.Namespace) -> str:
    if args.secret:
        return args.secret
    secret = os.getenv("TOTPGEN_SECRET")
    if secret:
        return secret
    try:
        return getpass.getpass("Secret: ")
    except EOFError:
        return ""


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        print("totpgen: error: {}".format(exc), file=sys.stderr)
        return 2

    totp = TOTP(read_secret(args))
    if not totp.secret:
        print("Enter your secret key", file=sys.stderr)
        return 2

    if args.once:
        try:
            print(totp.now())
        except InvalidSecret:
            print("Invalid secret key", file=sys.stderr)
            return 1
        return 0

    try:
        return asyncio.run(run(totp.secret))
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
