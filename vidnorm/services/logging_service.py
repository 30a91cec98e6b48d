"""
This module provides classes for the on-disk records of pipeline runs.

They are separate from real-time console logging: `ErrorLog` appends a
human-readable report of a failed stage to a text file, and `SuccessLog`
keeps a machine-readable YAML list with one entry per finished run.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Union

import yaml
from loguru import logger

from ..config.common import SUCCESS_LOG_YAML


class Log:
    """
    Common base for the run records written into the working directory.

    The directory is created lazily on the first write, so reporting a
    failure never raises on its own.
    """

    # Separator between entries in text-based logs.
    linesep_marker: str = "=" * 50

    def __init__(self, log_dir: Path):
        self.log_file_path: Path
        self.log_dir: Path = log_dir.resolve()

    def write(self, log_content: Union[dict, list, str]):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """Failure reports for a working directory, one block per failed stage."""

    DEFAULT_ERROR_FILENAME = "error.txt"

    def __init__(self, error_log_dir: Path, filename: str = DEFAULT_ERROR_FILENAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *report_lines: str):
        """
        Appends one failure block: the given lines (title, stage, command,
        FFmpeg output) and a closing separator.

        When the file is not writable the block goes to the console instead.
        """
        if not report_lines:
            return

        block = "\n".join(report_lines) + "\n" + self.linesep_marker + "\n"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(block)
        except OSError as e:
            logger.error(f"Could not record failure in {self.log_file_path}: {e}")
            logger.error(block)


class SuccessLog(Log):
    """
    Keeps a YAML list of finished runs.

    Each `write` reads the existing list, appends the new entry with the next
    index, and writes the whole list back, so the file is always a valid
    YAML document.
    """

    def __init__(self, success_log_dir: Path, filename: str = SUCCESS_LOG_YAML):
        super().__init__(success_log_dir)
        self.log_file_path = self.log_dir / filename
        self.log_entries: List[Dict] = []

    def _load_entries(self) -> List[Dict]:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded_entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading success log {self.log_file_path}: {e}. Starting a new log.")
            return []

        if loaded_entries is None:
            return []
        if not isinstance(loaded_entries, list):
            logger.warning(f"Success log {self.log_file_path} contained unexpected data. Starting a new log.")
            return []
        return loaded_entries

    def write(self, new_log_entry: dict):
        if not isinstance(new_log_entry, dict):
            logger.error("SuccessLog.write expects a dictionary as a log entry.")
            return

        self.log_entries = self._load_entries()
        current_max_index = max(
            (entry.get("index", 0) for entry in self.log_entries if isinstance(entry, dict)),
            default=0,
        )
        entry = {"index": current_max_index + 1, "logged_at": datetime.now().isoformat(timespec="seconds")}
        entry.update(new_log_entry)
        self.log_entries.append(entry)

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    self.log_entries,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write to success log {self.log_file_path}: {e}")
