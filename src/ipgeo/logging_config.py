"""Process-wide logging: console output, a daily log file and IP masking."""

from __future__ import annotations

import ipaddress
import logging
import re
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

DETAILED_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] %(message)s"
SIMPLE_FORMAT = "%(levelname)s %(message)s"

# Third-party loggers that are only interesting when something goes wrong
QUIET_LOGGERS = ("aiohttp.access", "httpx", "httpcore", "asyncio")

_IPV4 = re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3})\.\d{1,3}\b")
# Anything that could be an IPv6 address, compressed forms included; each
# candidate is confirmed by parsing before it is rewritten
_IPV6_CANDIDATE = re.compile(
    r"(?<![\w:.%])[0-9A-Fa-f.]*:[0-9A-Fa-f:.]*:[0-9A-Fa-f:.]*(?:%[\w.-]+)?(?![\w:%])"
)
_HOST_BITS_V6 = (1 << 64) - 1


def _mask_ipv6(match: re.Match) -> str:
    token = match.group(0)
    candidate = token.rstrip(".")
    try:
        address = ipaddress.IPv6Address(candidate)
    except ValueError:
        return token
    prefix = ipaddress.IPv6Address(int(address) & ~_HOST_BITS_V6)
    # The last 64 bits of the prefix are zero, so it always ends in "::"
    return f"{prefix}x{token[len(candidate):]}"


class IPMaskFilter(logging.Filter):
    """Replace the host part of addresses: 1.2.3.4 -> 1.2.3.x, 2001:db8::1 -> 2001:db8::x."""

    def filter(self, record: logging.LogRecord) -> bool:
        text = _IPV6_CANDIDATE.sub(_mask_ipv6, record.getMessage())
        record.msg = _IPV4.sub(r"\1.x", text)
        record.args = None
        return True


class ColoredFormatter(logging.Formatter):
    """Colour the level name when writing to a terminal."""

    LEVEL_COLOURS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno)
        if colour is None or not sys.stdout.isatty():
            return super().format(record)
        # Work on a copy so other handlers see the plain level name
        tinted = logging.makeLogRecord(record.__dict__)
        tinted.levelname = f"{colour}{record.levelname}{self.RESET}"
        return super().format(tinted)


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def daily_log_path(log_dir: str | Path, today: Optional[date] = None) -> Path:
    """Log file for the given day, e.g. ``logs/2024-01-31.log``."""
    return Path(log_dir) / f"{(today or date.today()).isoformat()}.log"


def _build_handlers(
    fmt: str, colour: bool, log_dir: Optional[str | Path]
) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(fmt) if colour else logging.Formatter(fmt))
    handlers: List[logging.Handler] = [console]

    if log_dir:
        path = daily_log_path(log_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(path, encoding="utf-8")
        to_file.setFormatter(logging.Formatter(fmt))
        handlers.append(to_file)
    return handlers


def setup_logging(
    level: str = "INFO",
    *,
    log_dir: Optional[str | Path] = "logs",
    format_style: str = "detailed",
    use_color: Optional[bool] = None,
    mask_ips: bool = False,
) -> None:
    """
    Configure the root logger for the CLI and the server.

    Args:
        level: Level name; unknown names fall back to INFO.
        log_dir: Directory for the daily log file, or None for console only.
        format_style: "detailed" adds time, logger and source line; "simple" does not.
        use_color: Colour the console; auto-detected from the TTY when None.
        mask_ips: Mask client addresses in every handler's output.
    """
    numeric_level = _resolve_level(level)
    fmt = DETAILED_FORMAT if format_style == "detailed" else SIMPLE_FORMAT
    colour = sys.stdout.isatty() if use_color is None else use_color

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    for handler in _build_handlers(fmt, colour, log_dir):
        handler.setLevel(numeric_level)
        # Filters on the root logger do not see records propagated from children
        if mask_ips:
            handler.addFilter(IPMaskFilter())
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
