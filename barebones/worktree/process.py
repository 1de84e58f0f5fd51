"""Running external tools (git, package managers)."""

import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

from .errors import ToolFailureError

logger = logging.getLogger(__name__)

PathLike = Union[Path, str]


def diagnostic(stdout: Optional[str], stderr: Optional[str], returncode: Optional[int]) -> str:
    """Pick the text that best explains a failed command."""
    stderr = (stderr or "").strip()
    if stderr:
        return stderr
    stdout = (stdout or "").strip()
    if stdout:
        return stdout
    return f"exited with code {returncode}"


def run_command(
    args: List[str],
    cwd: Optional[PathLike] = None,
    check: bool = True,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """Run a command, capturing its output.

    Args:
        args: Command and arguments
        cwd: Working directory
        check: Raise on non-zero exit
        timeout: Seconds before the command is killed

    Raises:
        ToolFailureError: non-zero exit (when ``check``), missing executable
            or expired deadline.
    """
    logger.debug(f"Running: {' '.join(args)} (cwd={cwd})")
    try:
        return subprocess.run(
            args,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=check,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        raise ToolFailureError(args, e.returncode, diagnostic(e.stdout, e.stderr, e.returncode)) from e
    except subprocess.TimeoutExpired as e:
        raise ToolFailureError(args, None, f"'{' '.join(args)}' timed out after {timeout}s") from e
    except OSError as e:
        raise ToolFailureError(args, None, f"Could not run '{args[0]}': {e}") from e


def stream_command(
    args: List[str],
    cwd: Optional[PathLike] = None,
    on_line: Optional[Callable[[str], None]] = None,
    timeout: Optional[float] = None,
) -> None:
    """Run a command, passing each non-empty output line to ``on_line``.

    stderr is merged into stdout; git writes its progress there. The
    command runs in its own process group, and an expired ``timeout``
    kills the whole group, so helpers it spawned do not keep the output
    pipe open.
    """
    logger.debug(f"Streaming: {' '.join(args)} (cwd={cwd})")
    try:
        proc = subprocess.Popen(
            args,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            start_new_session=True,
        )
    except OSError as e:
        raise ToolFailureError(args, None, f"Could not run '{args[0]}': {e}") from e

    expired = threading.Event()

    def _kill():
        expired.set()
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.debug(f"Process group {proc.pid} already exited")

    timer = threading.Timer(timeout, _kill) if timeout is not None else None
    if timer:
        timer.start()

    output: List[str] = []
    try:
        with proc:
            for raw in proc.stdout:
                line = raw.strip()
                if not line:
                    continue
                output.append(line)
                if on_line:
                    on_line(line)
            returncode = proc.wait()
    finally:
        if timer:
            timer.cancel()

    if expired.is_set():
        raise ToolFailureError(args, returncode, f"'{' '.join(args)}' timed out after {timeout}s")
    if returncode != 0:
        raise ToolFailureError(args, returncode, "\n".join(output) or None)
