"""
Command Execution Module

Runs the external tools the smoke tester depends on (container clients,
ldapsearch, openssl) and captures their output and exit status.

Key Functions:
- execute_command: Run a command, optionally bounded by a timeout
- truncate_output: Limit output size with a truncation indicator

Exit codes follow shell conventions: 124 for a timeout, 126 for
permission denied and 127 for a missing binary.
"""

import logging
import os
import signal
import subprocess  # nosec B404 - commands are fixed argument lists, no shell
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

EXIT_TIMEOUT = 124
EXIT_PERMISSION_DENIED = 126
EXIT_NOT_FOUND = 127


@dataclass
class ExecutionResult:
    """
    Result of a single command execution.

    Captures output, exit status and timing for one finished process.
    """

    success: bool
    exit_code: int
    stdout: str
    stderr: str
    elapsed_ms: int
    timed_out: bool = False
    stdout_truncated: bool = False
    stderr_truncated: bool = False


def execute_command(
    command: List[str],
    timeout_seconds: Optional[float] = None,
    max_output_size: Optional[int] = None,
    env: Optional[Dict[str, str]] = None,
) -> ExecutionResult:
    """
    Execute a command and wait for it to finish.

    Without a timeout the call blocks until the process exits on its own,
    which leaves timing decisions to the tool being run.

    Args:
        command: Command and arguments to execute
        timeout_seconds: Maximum execution time in seconds, None to wait
        max_output_size: Maximum size for stdout/stderr, None for no limit
        env: Environment variables for the command

    Returns:
        ExecutionResult: Output, exit status and timing

    Raises:
        ValueError: If command, timeout or output limit is invalid
    """
    if not command:
        raise ValueError("Command cannot be empty")

    if timeout_seconds is not None and timeout_seconds <= 0:
        raise ValueError("Timeout must be positive")

    if max_output_size is not None and max_output_size <= 0:
        raise ValueError("Max output size must be positive")

    start_time = time.time()

    try:
        process = subprocess.Popen(  # nosec B603 - argument list, no shell
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
            start_new_session=os.name != "nt",
        )

        try:
            stdout, stderr = process.communicate(timeout=timeout_seconds)
            timed_out = False
        except subprocess.TimeoutExpired:
            # Kill the whole process group, `<runtime> exec` spawns children
            if os.name != "nt":
                try:
                    os.killpg(os.getpgid(process.pid), signal.SIGTERM)
                    time.sleep(0.1)
                    os.killpg(os.getpgid(process.pid), signal.SIGKILL)
                except ProcessLookupError:
                    pass
            else:
                process.terminate()
                time.sleep(0.1)
                process.kill()

            try:
                stdout, stderr = process.communicate(timeout=1)
            except subprocess.TimeoutExpired:
                stdout, stderr = "", ""

            timed_out = True

        elapsed_ms = int((time.time() - start_time) * 1000)
        exit_code = EXIT_TIMEOUT if timed_out else process.returncode

        stdout = stdout or ""
        stderr = stderr or ""
        stdout_truncated = max_output_size is not None and len(stdout) > max_output_size
        stderr_truncated = max_output_size is not None and len(stderr) > max_output_size

        if stdout_truncated:
            stdout = truncate_output(stdout, max_output_size, "stdout")

        if stderr_truncated:
            stderr = truncate_output(stderr, max_output_size, "stderr")

        logger.debug(
            "Command finished: exit_code=%s elapsed=%sms timed_out=%s",
            exit_code,
            elapsed_ms,
            timed_out,
        )

        return ExecutionResult(
            success=not timed_out and exit_code == 0,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            elapsed_ms=elapsed_ms,
            timed_out=timed_out,
            stdout_truncated=stdout_truncated,
            stderr_truncated=stderr_truncated,
        )

    except FileNotFoundError:
        logger.info("Command not found: %s", command[0])
        return _failed_result(EXIT_NOT_FOUND, f"Command not found: {command[0]}", start_time)

    except PermissionError:
        logger.error("Permission denied executing command: %s", command[0])
        return _failed_result(
            EXIT_PERMISSION_DENIED, f"Permission denied: {command[0]}", start_time
        )

    except OSError as e:
        logger.error("Unexpected error executing %s: %s", command[0], e)
        return _failed_result(1, f"Execution error: {e}", start_time)


def _failed_result(exit_code: int, message: str, start_time: float) -> ExecutionResult:
    return ExecutionResult(
        success=False,
        exit_code=exit_code,
        stdout="",
        stderr=message,
        elapsed_ms=int((time.time() - start_time) * 1000),
    )


def truncate_output(output: str, max_size: int, stream_name: str = "output") -> str:
    """
    Truncate output string with clear truncation indicator.

    Keeps the beginning and the end of the output so that both the first
    entries and the trailing search result summary stay visible.

    Args:
        output: The output string to truncate
        max_size: Maximum allowed size
        stream_name: Name of the stream for the truncation message

    Returns:
        str: Truncated output with truncation indicator
    """
    if len(output) <= max_size:
        return output

    truncation_msg = (
        f"\n[TRUNCATED: {stream_name} too long, showing first and last portions]\n"
    )
    available_size = max_size - len(truncation_msg)

    if available_size <= 100:
        return output[: max(max_size - 50, 0)] + f"\n[TRUNCATED: {stream_name} too long]"

    # First 60% and last 40% of available space
    head_size = int(available_size * 0.6)
    tail_size = available_size - head_size

    return output[:head_size] + truncation_msg + output[-tail_size:]
