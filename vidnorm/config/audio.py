"""
Configuration settings related to audio processing.

Loudness targets used by both the measurement pass and the normalization
filter, and the Opus bitrate table keyed by quality tier.
"""
from ..domain.enums import Quality

# ======================================================================================
# Loudness Normalization Targets (ffmpeg `loudnorm`)
# ======================================================================================

# Integrated loudness target in LUFS (valid range -70 to -5). Streaming guidance puts
# it between -20 (most dynamic range, least processing) and -16 (loudest).
LOUDNORM_LUFS = "-19"

# True peak ceiling in dBTP. -1.0 leaves headroom against inter-sample clipping.
LOUDNORM_TP = "-1.0"

# Loudness range target (1.0 - 20.0). ffmpeg defaults to 7, broadcast references use 11.
LOUDNORM_LRA = "9"

# The five keys the measurement pass prints in its JSON block, in print order.
LOUDNORM_MEASUREMENT_KEYS = (
    "input_i",
    "input_lra",
    "input_tp",
    "input_thresh",
    "target_offset",
)


# ======================================================================================
# Audio Encoding Parameters
# ======================================================================================

OPUS_ENCODER = "libopus"

# Opus bitrate in kbps per quality tier.
OPUS_BITRATES_KBPS = {
    Quality.VERY_LOW: 16,
    Quality.LOW: 24,
    Quality.MEDIUM: 32,
    Quality.HIGH: 64,
    Quality.VERY_HIGH: 96,
}
