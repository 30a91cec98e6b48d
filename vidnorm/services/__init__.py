"""
Services Package for vidnorm.

A service performs one well-defined piece of the pipeline and knows nothing
about the order in which it is called; sequencing belongs to
`vidnorm.pipeline`.

- **LoudnessAnalyzer:** runs the `loudnorm` measurement pass and parses the
  five measured values out of FFmpeg's diagnostic output.
- **Parameter model:** pure functions deriving bitrate, rate-control bounds,
  tile columns and the fixed encoder constants from codec, quality tier,
  resolution and frame rate.
- **Filter chains:** ordered video and audio filter descriptors for an
  Operation.
- **Encode commands:** FFmpeg argument lists for concatenation, both encode
  passes and metadata stripping.
- **Logging Service (`SuccessLog`, `ErrorLog`):** on-disk records of
  finished and failed runs, separate from console logging.
"""
