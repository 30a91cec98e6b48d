"""
This package contains the encode pipeline of vidnorm.

The pipeline sequences the stages of one run (concatenation, loudness
measurement, the two encode passes and metadata stripping) and threads the
output of each stage into the commands of the next.
"""
