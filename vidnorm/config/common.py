"""
Common configuration settings used throughout vidnorm.

This module holds the settings shared by every stage: paths of the external
tools, the logging format, and the naming conventions for the files a
pipeline run writes into its working directory.
"""
from pathlib import Path

# --- User-Defined Path Configuration ---
# An optional 'config.user.yaml' at the project root may point at a specific
# FFmpeg build or cpulimit binary. See `settings.EncodeSettings.from_user_config`.

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"

# Executables. Bare names are resolved through the system PATH.
FFMPEG_PATH = "ffmpeg"
CPULIMIT_PATH = "cpulimit"


# --- Logging Configuration ---

# The format string for the Loguru logger.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{process} - <level>{message}</level>"
)

# Number of characters of captured stdout shown at TRACE level before truncation.
LOG_OUTPUT_PREVIEW_CHARS = 500


# --- Working Directory Layout ---
# Every file a run creates is named from the sanitized title, so two runs in
# the same working directory with the same title will collide.

# Text file that receives every executed command line, one per line.
COMMAND_TEXT = "cmd.txt"

# Directory (inside the working directory) receiving `error.txt` on failure.
ERROR_DIR_NAME = "encode_error"

# YAML list of finished runs.
SUCCESS_LOG_YAML = "success_log.yaml"

# Suffixes for the intermediates, placed between the stem and the extension.
CONCAT_MANIFEST_SUFFIX = ".concat.txt"
CONCAT_OUTPUT_SUFFIX = ".concat"
# Container of the stream-copied concat intermediate; must accept any codec.
CONCAT_CONTAINER = ".mkv"
PASSLOG_SUFFIX = ".2pass"
PASS2_OUTPUT_SUFFIX = ".pass2"

# Characters replaced when turning a title into a filename.
TITLE_REPLACEMENTS = (("/", "-"), (" ", "_"))


# --- Process Exit Codes ---
EXIT_OK = 0
EXIT_FAILURE = 1
