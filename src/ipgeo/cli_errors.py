"""Mapping of ipgeo failures onto CLI messages and exit statuses"""

import logging
import sys
import traceback
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from .exceptions import (
    ConfigError,
    InvalidIPError,
    IPGeoError,
    ProvisioningError,
    SourceInitError,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

INTERRUPTED_EXIT_CODE = 130


class CLIError(Exception):
    """A command finished but has to report failure to the shell."""

    exit_code = 1

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(message)


# (error type, exit status, label shown to the user); first match wins
ERROR_TABLE: Tuple[Tuple[Type[BaseException], int, str], ...] = (
    (SourceInitError, 2, "Database unavailable"),
    (ConfigError, 3, "Invalid configuration"),
    (InvalidIPError, 4, "Invalid IP address"),
    (ProvisioningError, 5, "Database download failed"),
    (IPGeoError, 1, "Lookup failed"),
    (FileNotFoundError, 2, "File not found"),
    (PermissionError, 2, "Permission denied"),
    (TimeoutError, 5, "Operation timeout"),
    (ConnectionError, 5, "Connection failed"),
)


def _classify(error: BaseException) -> Tuple[int, str]:
    if isinstance(error, CLIError):
        return error.exit_code, type(error).__name__
    for error_type, code, label in ERROR_TABLE:
        if isinstance(error, error_type):
            return code, label
    return 1, type(error).__name__


def exit_code_for(error: BaseException) -> int:
    return _classify(error)[0]


def format_error_message(
    error: BaseException, context: Optional[str] = None, include_traceback: bool = False
) -> str:
    """
    Render an error as a single line for stderr.

    Args:
        error: The failure to report
        context: Name of the command or step that failed
        include_traceback: Append the active traceback

    Returns:
        e.g. "❌ Lookup: Invalid IP address - Invalid IP address: 'x'"
    """
    label = _classify(error)[1]
    prefix = f"{context}: {label}" if context else label
    detail = str(error)

    message = f"❌ {prefix} - {detail}" if detail else f"❌ {prefix}"
    if include_traceback:
        message += "\n" + traceback.format_exc()
    return message


def handle_cli_errors(
    context: str = "", exit_on_keyboard_interrupt: bool = True
) -> Callable[[F], F]:
    """
    Turn exceptions escaping a command into a message and an exit status.

    Known ipgeo and OS errors get their own status from ERROR_TABLE; anything
    else exits 1 with a traceback so it can be reported.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except KeyboardInterrupt:
                if not exit_on_keyboard_interrupt:
                    raise
                print("\n⚠️  Interrupted", file=sys.stderr)
                sys.exit(INTERRUPTED_EXIT_CODE)
            except CLIError as e:
                print(format_error_message(e, context or e.context), file=sys.stderr)
                sys.exit(e.exit_code)
            except (IPGeoError, OSError) as e:
                message = format_error_message(e, context or "Operation")
                print(message, file=sys.stderr)
                logger.debug(message, exc_info=True)
                sys.exit(exit_code_for(e))
            except Exception as e:
                print(
                    format_error_message(e, context or "Operation", include_traceback=True),
                    file=sys.stderr,
                )
                sys.exit(1)

        return wrapper  # type: ignore

    return decorator
