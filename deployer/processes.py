"""Thin wrappers around external commands and background processes."""

import os
import signal
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from deployer.errors import CommandFailedError


# Shell convention for "command not found"
NOT_FOUND_EXIT_CODE = 127


def run(command: Sequence[str], cwd: Optional[Path] = None) -> None:
    """Run a command to completion, streaming its output to the terminal.

    Raises:
        CommandFailedError: If the command exits with a non-zero status, or
            cannot be started because the executable or directory is missing.
    """
    try:
        result = subprocess.run(list(command), cwd=cwd)
    except OSError as e:
        raise CommandFailedError(command, NOT_FOUND_EXIT_CODE, reason=str(e)) from e
    if result.returncode != 0:
        raise CommandFailedError(command, result.returncode)


def spawn(command: Sequence[str], cwd: Path, log_path: Path) -> int:
    """Start a command in the background with output captured to a log file.

    The command leads a new session, so its whole process group can be
    signalled later.

    Returns:
        The process id of the started command.
    """
    try:
        with open(log_path, "wb") as log:
            process = subprocess.Popen(
                list(command),
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
    except OSError as e:
        raise CommandFailedError(command, NOT_FOUND_EXIT_CODE, reason=str(e)) from e
    return process.pid


def write_pid(path: Path, pid: int) -> None:
    Path(path).write_text(f"{pid}\n")


def read_pid(path: Path) -> Optional[int]:
    """Read a pid file, returning None when it is missing or unreadable."""
    try:
        pid = int(Path(path).read_text().strip())
    except (FileNotFoundError, ValueError):
        return None
    # 0 and negative values address process groups, never a single service
    if pid <= 0:
        return None
    return pid


def terminate(pid: int) -> bool:
    """Send SIGTERM to the process group led by pid.

    Returns:
        True if the signal was delivered, False if the group was gone.

    Raises:
        PermissionError: If the pid now belongs to another user's process.
    """
    try:
        os.killpg(pid, signal.SIGTERM)
    except ProcessLookupError:
        return False
    return True
