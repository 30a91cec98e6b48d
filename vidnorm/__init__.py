"""
vidnorm: two-pass, loudness-normalized encoding of source videos with FFmpeg.

The package is split into layers:

- `config`: documented defaults and the injectable `EncodeSettings`.
- `domain`: the `Operation` being run, measured loudness, derived encode
  parameters and the exception taxonomy.
- `services`: loudness analysis, the parameter model, filter chains and
  FFmpeg command construction.
- `pipeline`: the sequential stage machine that ties everything together.
- `utils`: the external process runner and small helpers.
"""

__version__ = "0.3.0"
