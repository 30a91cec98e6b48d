"""
Turns durations, file sizes and bitrates into the short strings used in
stage summaries and the success log.
"""

from datetime import timedelta

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


def format_timedelta(duration: timedelta) -> str:
    """Stage duration as "HH:MM:SS"; sub-second parts are dropped."""
    if not isinstance(duration, timedelta):
        return "00:00:00"

    hours, rest = divmod(int(duration.total_seconds()), 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def formatted_size(size_bytes: int) -> str:
    """
    Output file size in binary units, e.g. 1536 -> "1.50 KB", 2097152 -> "2 MB".

    Whole bytes are printed without decimals; a negative size counts as zero.
    """
    size = float(max(size_bytes, 0))
    if size < 1024:
        return f"{int(size)} B"

    for unit in SIZE_UNITS[1:]:
        size /= 1024
        if size < 1024 or unit == SIZE_UNITS[-1]:
            return f"{size:.2f} {unit}".replace(".00", "")


def format_bitrate(bits_per_second: int) -> str:
    """Formats a bitrate as kbps, e.g. 1036800 becomes "1036.8 kbps"."""
    return f"{bits_per_second / 1000:g} kbps"
