"""
This module provides the contract the pipeline uses to run external tools
and its subprocess-based implementation.

The pipeline only ever depends on `ExternalRunner`; tests substitute a fake
that returns scripted diagnostic text without invoking a real encoder.
"""

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from loguru import logger

from ..config.common import CPULIMIT_PATH, LOG_OUTPUT_PREVIEW_CHARS

# Conventional shell status for "command not found".
COMMAND_NOT_FOUND_RC = 127


@dataclass(frozen=True)
class RunResult:
    """Captured output and exit status of one external invocation."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ExternalRunner(Protocol):
    def run(self, program: str, args: Sequence[str], resource_limit: Optional[int] = None) -> RunResult:
        """
        Runs `program` with `args`, blocking until it exits.

        `resource_limit` is a CPU throttle as a percentage of one core
        (e.g. 400 for four cores); None runs the program unthrottled.
        """
        ...


def format_command(cmd_list: Sequence[str]) -> str:
    """Quotes and joins an argument list for display and logging."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(cmd_list)


def build_command_line(
    program: str,
    args: Sequence[str],
    resource_limit: Optional[int] = None,
    cpulimit_path: str = CPULIMIT_PATH,
) -> List[str]:
    """Returns the full argument list, wrapped in cpulimit when a limit is given."""
    cmd_list = [program, *args]
    if resource_limit is not None:
        cmd_list = [cpulimit_path, "-l", str(resource_limit), *cmd_list]
    return cmd_list


class SubprocessRunner:
    """
    Runs external commands with `subprocess.run`, capturing text output.

    Every command is logged at DEBUG level and, if `cmd_log_file_path` is
    set, appended to that file so the exact invocations of a run can be
    replayed by hand.
    """

    def __init__(self, cpulimit_path: str = CPULIMIT_PATH, cmd_log_file_path: Optional[Path] = None):
        self.cpulimit_path = cpulimit_path
        self.cmd_log_file_path = cmd_log_file_path

    def run(self, program: str, args: Sequence[str], resource_limit: Optional[int] = None) -> RunResult:
        cmd_list = build_command_line(program, args, resource_limit, self.cpulimit_path)
        display_cmd_str = format_command(cmd_list)
        logger.debug(f"Executing: {display_cmd_str}")
        self._log_command(display_cmd_str)

        try:
            result = subprocess.run(
                cmd_list,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                shell=False,
            )
        except FileNotFoundError:
            message = f"Command not found: '{cmd_list[0]}'. Ensure it is installed and in your PATH."
            logger.error(message)
            return RunResult(stdout="", stderr=message, returncode=COMMAND_NOT_FOUND_RC)

        if result.stdout and len(result.stdout) > LOG_OUTPUT_PREVIEW_CHARS:
            logger.trace(f"Command stdout (truncated): {result.stdout[:LOG_OUTPUT_PREVIEW_CHARS]}...")
        elif result.stdout:
            logger.trace(f"Command stdout: {result.stdout}")

        if result.stderr and result.returncode != 0:
            logger.debug(f"Command stderr (error, rc={result.returncode}): {result.stderr}")
        elif result.stderr:
            logger.trace(f"Command stderr (rc={result.returncode}): {result.stderr}")

        return RunResult(stdout=result.stdout or "", stderr=result.stderr or "", returncode=result.returncode)

    def _log_command(self, display_cmd_str: str):
        if not self.cmd_log_file_path:
            return
        try:
            self.cmd_log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with self.cmd_log_file_path.open("a", encoding="utf-8") as cmd_f:
                cmd_f.write(display_cmd_str + "\n")
        except OSError as e:
            logger.error(f"Failed to write command to log file {self.cmd_log_file_path}: {e}")
