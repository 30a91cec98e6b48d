"""
Startup verification of the external tools the pipeline depends on.
"""
from loguru import logger

from ..config.settings import EncodeSettings
from .ffmpeg_utils import ExternalRunner


def verify_ffmpeg(settings: EncodeSettings, runner: ExternalRunner) -> bool:
    """
    Runs `ffmpeg -version` and logs the first line of its output.

    The check is advisory: a failure is logged with a hint about the user
    config, and the caller decides whether to continue.

    Returns:
        True if FFmpeg could be executed successfully.
    """
    result = runner.run(settings.ffmpeg_path, ["-version"])
    if not result.ok:
        logger.error(
            f"FFmpeg version check failed (return code {result.returncode}):\n{result.stderr}\n"
            "Install FFmpeg and add it to your PATH, or set `paths.ffmpeg_dir` in 'config.user.yaml'."
        )
        return False

    version_output_lines = result.stdout.splitlines()
    first_line = version_output_lines[0] if version_output_lines else "(no output)"
    logger.info(f"FFmpeg version check successful: {first_line}")
    return True
