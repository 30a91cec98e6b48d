"""
Command-Line Interface (CLI) setup for vidnorm.

This module uses Python's `argparse` to define and parse the command-line
arguments that control a run.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from .config.common import USER_CONFIG_PATH


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for vidnorm.

    Args:
        argv: Argument list to parse instead of `sys.argv[1:]`.

    Returns:
        argparse.Namespace: The parsed arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        description="Two-pass, loudness-normalized encoding of source videos with FFmpeg."
    )
    parser.add_argument(
        "operation",
        help="YAML operation file describing the run, or '-' to read it from stdin.",
    )
    parser.add_argument(
        "--work-dir", type=Path, default=None,
        help="Directory for intermediates and the output (default: current directory).",
    )
    parser.add_argument(
        "--config", type=Path, default=USER_CONFIG_PATH,
        help="User configuration YAML with tool paths and encoding overrides.",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )
    parser.add_argument(
        "--skip-tool-check", action="store_true",
        help="Do not run `ffmpeg -version` before starting.",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Log the computed parameters and stages without running anything.",
    )

    args = parser.parse_args(argv)

    if args.work_dir is not None:
        if args.work_dir.exists() and not args.work_dir.is_dir():
            parser.error(f"--work-dir '{args.work_dir}' exists and is not a directory")
        args.work_dir = args.work_dir.resolve()

    return args
