"""
Configuration Package for vidnorm.

Static defaults live in the `common`, `audio` and `video` modules as
documented module-level constants. `settings.EncodeSettings` gathers them
into a single immutable object which is passed to every service, so a run
can override any default (from `config.user.yaml` or directly in tests)
without touching module globals.
"""
