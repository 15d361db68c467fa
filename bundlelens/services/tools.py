# Bounded external-tool invocation.
#
# Every child runs in its own session (start_new_session=True) so that a
# timeout can kill the whole process group: wrapper scripts and their
# children go down together, and no grandchild keeps the stdout pipe open
# after the direct child dies.
#
# Waiting is done by communicate(timeout=...), which blocks on the pipes
# with a deadline instead of polling.  On expiry the group gets SIGKILL and
# the child is reaped with a second communicate() before returning.

from __future__ import annotations

import logging
import os
import signal
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from result import Err, Ok, Result

log = logging.getLogger(__name__)

T = TypeVar("T")


class ToolErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ToolRun:
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


@dataclass(slots=True, frozen=True)
class ToolError:
    code: ToolErrorCode
    argv: tuple[str, ...]
    message: str


def _kill_group(proc: subprocess.Popen[str]) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        proc.kill()


def run_tool(argv: Sequence[str], timeout: float, cwd: str | None = None) -> Result[ToolRun, ToolError]:
    """Run *argv* and capture its output, killing it after *timeout* seconds.

    A non-zero exit status is not an error here; callers judge the output.
    """
    args = tuple(argv)
    try:
        proc = subprocess.Popen(
            args,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except FileNotFoundError as exc:
        return Err(ToolError(ToolErrorCode.NOT_FOUND, args, str(exc)))
    except OSError as exc:
        return Err(ToolError(ToolErrorCode.FAILED, args, str(exc)))

    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill_group(proc)
        proc.communicate()
        log.warning("Killed %s after %.1fs", args[0], timeout)
        return Err(ToolError(ToolErrorCode.TIMEOUT, args, f"Timed out after {timeout:g}s"))

    return Ok(ToolRun(argv=args, returncode=proc.returncode, stdout=stdout, stderr=stderr))


def query_tool(
    argv: Sequence[str],
    timeout: float,
    parser: Callable[[str], T],
    fallback: T,
    cwd: str | None = None,
) -> T:
    """Run a tool and parse its stdout, returning *fallback* on any failure.

    Failures are: the tool cannot start, it times out, it prints nothing,
    or *parser* raises.
    """
    result = run_tool(argv, timeout, cwd)
    if isinstance(result, Err):
        error = result.unwrap_err()
        log.debug("%s unavailable (%s): %s", error.argv[0], error.code.value, error.message)
        return fallback

    run = result.unwrap()
    if not run.stdout:
        return fallback
    try:
        return parser(run.stdout)
    except Exception:  # noqa: BLE001
        log.debug("Could not parse output of %s", run.argv[0], exc_info=True)
        return fallback
