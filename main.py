"""
Main entry point for vidnorm.

Reads an operation, configures logging, and runs the encode pipeline. The
process exits 0 only after the final output has been written. A failing
stage has already logged its FFmpeg diagnostics, so a failure here adds a
one-line summary and exits 1.
"""

import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from vidnorm.cli import get_args
from vidnorm.config.common import COMMAND_TEXT, EXIT_FAILURE, EXIT_OK, LOGGER_FORMAT
from vidnorm.config.settings import EncodeSettings
from vidnorm.domain.exceptions import VidnormException
from vidnorm.domain.operation import Operation
from vidnorm.pipeline.encode_pipeline import EncodePipeline
from vidnorm.utils.ffmpeg_utils import SubprocessRunner
from vidnorm.utils.tool_check import verify_ffmpeg


def configure_logger(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOGGER_FORMAT)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Runs one operation end to end.

    Returns:
        The process exit code.
    """
    args = get_args(argv)
    configure_logger(args.log_level)
    logger.debug(f"Parsed arguments: {args}")

    work_dir = args.work_dir or Path.cwd().resolve()

    try:
        settings = EncodeSettings.from_user_config(args.config)
        if args.operation == "-":
            logger.info("Reading operation from stdin...")
            operation = Operation.load(sys.stdin)
        else:
            operation = Operation.load(Path(args.operation))

        runner = SubprocessRunner(settings.cpulimit_path, cmd_log_file_path=work_dir / COMMAND_TEXT)
        pipeline = EncodePipeline(operation, work_dir, runner, settings)

        if args.dry_run:
            pipeline.describe()
            return EXIT_OK

        if not args.skip_tool_check:
            verify_ffmpeg(settings, runner)

        pipeline.run()
    except VidnormException as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
