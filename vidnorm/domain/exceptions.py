"""
Defines custom exception types for vidnorm.

Nothing in the pipeline is recovered locally: every exception below aborts
the run and is reported to the operator by `main.py`, including any
diagnostic text captured from the failing FFmpeg invocation. Two-pass
statistics and the measured loudness values are only valid when each stage
runs exactly once, so there are no retries and no fallbacks.

All custom exceptions inherit from the base `VidnormException`.
"""
from typing import Optional, Sequence


class VidnormException(Exception):
    """Base class for all custom exceptions in vidnorm."""

    pass


class ConfigError(VidnormException):
    """
    Raised when an Operation field or a user setting is missing or invalid.

    This is always raised before the first stage runs, so no intermediate
    files exist yet when it surfaces.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class MeasurementParseError(VidnormException):
    """
    Raised when one of the five loudness keys never appears in the
    diagnostic text of the measurement pass.
    """

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Did not find '{field}' in loudness analysis output")


class ExternalProcessFailure(VidnormException):
    """
    Raised when an external invocation exits non-zero or cannot be started.

    Attributes:
        stage: Name of the pipeline stage that issued the invocation.
        diagnostic_text: Captured stderr (FFmpeg writes its diagnostics there).
        returncode: Exit status of the process.
        command: The full argument list that was executed, if known.
    """

    def __init__(
        self,
        stage: str,
        diagnostic_text: str,
        returncode: int,
        command: Optional[Sequence[str]] = None,
    ):
        self.stage = stage
        self.diagnostic_text = diagnostic_text
        self.returncode = returncode
        self.command = list(command) if command else []
        super().__init__(f"Stage '{stage}' failed with exit code {returncode}")


class WorkspaceError(VidnormException):
    """
    Raised when a stage cannot create or write a file in the working directory.

    Attributes:
        stage: Name of the pipeline stage that touched the filesystem.
        error: The underlying OSError.
    """

    def __init__(self, stage: str, error: OSError):
        self.stage = stage
        self.error = error
        super().__init__(f"Stage '{stage}' could not access the working directory: {error}")
