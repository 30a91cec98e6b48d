"""
This package contains the core domain models of vidnorm.

The domain layer describes what a run is about, independent of how FFmpeg is
invoked or where settings come from.

Modules:
    enums.py: Closed enumerations for quality tiers, codecs and containers.
    exceptions.py: The exception taxonomy. Every error aborts the run.
    operation.py: `Operation`, the immutable description of one pipeline run,
                  and its validation from a YAML configuration blob.
    models.py: `LoudnessMeasurement` and `EncodeParameters`, the values that
               flow from one stage into the next.
"""
