"""
Utilities Package for vidnorm.

Modules:
    - ffmpeg_utils.py: The external process contract (`ExternalRunner`) and
      its subprocess implementation, with optional cpulimit throttling.
    - format_utils.py: Helpers for formatting durations and sizes in logs.
    - tool_check.py: Startup verification of the FFmpeg executable.
"""
