"""Coloured status output."""

import os
import sys

# Colors for terminal output
RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
NC = "\033[0m"  # No Color


def _use_colour(stream) -> bool:
    # Terminal setting of the real process, like isatty(); not part of Settings
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def _emit(label: str, colour: str, message: str, stream=None) -> None:
    stream = stream or sys.stdout
    if _use_colour(stream):
        print(f"{colour}[{label}]{NC} {message}", file=stream)
    else:
        print(f"[{label}] {message}", file=stream)


def info(message: str) -> None:
    _emit("INFO", BLUE, message)


def success(message: str) -> None:
    _emit("SUCCESS", GREEN, message)


def warning(message: str) -> None:
    _emit("WARNING", YELLOW, message)


def error(message: str) -> None:
    _emit("ERROR", RED, message, stream=sys.stderr)
