"""
Configuration settings related to video processing.

Heuristic tables behind the parameter model, encoder names, and the speed
presets used for each pass of a two-pass encode.
"""
from fractions import Fraction

from ..domain.enums import Quality

# --- Bitrate Model ---

# Bits per pixel of the uncompressed baseline (8-bit RGB).
UNCOMPRESSED_BITS_PER_PIXEL = 24

# Divisor from uncompressed bitrate to target bitrate. Larger means lower quality.
COMPRESSION_FACTORS = {
    Quality.VERY_LOW: 4600,
    Quality.LOW: 3200,  # fast motion (eye blinks) starts to look wrong
    Quality.MEDIUM: 1500,
    Quality.HIGH: 640,  # close to the average of published VP9 recommendations
    Quality.VERY_HIGH: 280,
}

# AV1 needs about 30% fewer bits than VP9 for the same quality.
AV1_FACTOR_RATIO = Fraction(100, 70)

# Rate-control bounds as a percentage of the target bitrate.
MINRATE_PERCENT = 50
MAXRATE_PERCENT = 145

# Upper width bounds (exclusive) for each tile-column count; wider gets 3.
TILE_COLUMN_WIDTH_BOUNDS = (640, 1024, 2560)

# --- Encoder Settings ---
VP9_ENCODER = "libvpx-vp9"
AV1_ENCODER = "libaom-av1"

DEFAULT_CRF = 31
DEFAULT_THREADS = 16
KEYFRAME_INTERVAL = 240

# --- Two-Pass Speed Presets ---
PASS1_SPEED = 4
PASS2_SPEED_SMALL = 1
PASS2_SPEED_LARGE = 2
# Widths below this use PASS2_SPEED_SMALL.
PASS2_SPEED_WIDTH_SPLIT = 1024
