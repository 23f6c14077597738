"""
Process helpers - run external tools and launch detached background processes.
"""

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Union

from subnetbox.commands.errors import ExternalProcessError

logger = logging.getLogger(__name__)

# Conventional shell status for "command not found"
COMMAND_NOT_FOUND = 127


def _redact(text: str, secrets: Sequence[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def run_command(
    args: Sequence[str],
    cwd: Optional[Union[Path, str]] = None,
    env: Optional[dict[str, str]] = None,
    secrets: Sequence[str] = (),
) -> str:
    """
    Run a command to completion and return its combined stdout/stderr.

    Args:
        args: Command and arguments
        cwd: Working directory
        env: Extra environment variables layered over the current environment
        secrets: Values masked in logs and error details

    Raises:
        ExternalProcessError: If the command is missing or exits non-zero
    """
    args = [str(a) for a in args]
    shown = _redact(" ".join(args), secrets)
    logger.debug("Running: %s (cwd=%s)", shown, cwd)

    full_env = os.environ.copy()
    if env:
        full_env.update({k: str(v) for k, v in env.items()})

    try:
        completed = subprocess.run(
            args,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise ExternalProcessError(
            f"Command not found: {args[0]}",
            command=[shown],
            returncode=COMMAND_NOT_FOUND,
        ) from e

    output = completed.stdout or ""
    if completed.returncode != 0:
        raise ExternalProcessError(
            f"Command failed with exit code {completed.returncode}: {shown}",
            command=[shown],
            returncode=completed.returncode,
            output=_redact(output, secrets),
        )
    return output


def launch_detached(
    args: Sequence[str],
    log_file: Union[Path, str],
    cwd: Optional[Union[Path, str]] = None,
    env: Optional[dict[str, str]] = None,
) -> int:
    """
    Start a process in its own session with output appended to ``log_file``.

    The process is not supervised; it outlives the caller.

    Returns:
        The PID of the launched process
    """
    args = [str(a) for a in args]
    full_env = os.environ.copy()
    if env:
        full_env.update({k: str(v) for k, v in env.items()})

    try:
        with open(log_file, "a", encoding="utf-8") as log_f:
            process = subprocess.Popen(
                args,
                cwd=str(cwd) if cwd else None,
                env=full_env,
                stdin=subprocess.DEVNULL,
                stdout=log_f,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
    except FileNotFoundError as e:
        raise ExternalProcessError(
            f"Command not found: {args[0]}",
            command=args,
            returncode=COMMAND_NOT_FOUND,
        ) from e

    logger.debug("Launched %s with PID %d", args[0], process.pid)
    return process.pid


def save_pid(pid_file: Union[Path, str], pid: int) -> None:
    Path(pid_file).write_text(str(pid), encoding="utf-8")


def load_pid(pid_file: Union[Path, str]) -> Optional[int]:
    try:
        return int(Path(pid_file).read_text(encoding="utf-8").strip())
    except (FileNotFoundError, ValueError):
        return None


def terminate_pid_file(pid_file: Union[Path, str]) -> bool:
    """
    Send SIGTERM to the process recorded in ``pid_file`` and remove the file.

    A missing file or an already-exited process counts as success.

    Returns:
        True if a live process was signalled, False if nothing was running
    """
    pid = load_pid(pid_file)
    signalled = False
    if pid is not None:
        try:
            os.kill(pid, signal.SIGTERM)
            signalled = True
        except ProcessLookupError:
            logger.debug("Process %d already exited", pid)
        except PermissionError:
            # PID was reused by a process we do not own
            logger.debug("Process %d is not ours, leaving it alone", pid)
    try:
        Path(pid_file).unlink()
    except FileNotFoundError:
        pass
    return signalled
