"""
Exception types raised by the C2C ETL pipelines.

Missing inputs and unrecognized file shapes are fatal; everything else
(unknown codes, unmatched institutions) is handled row by row.
"""


class C2CError(Exception):
    """Base class for pipeline errors."""
    pass


class MissingSourceError(C2CError, FileNotFoundError):
    """Raised when a raw input file or directory cannot be found or read."""
    pass


class SourceFormatError(C2CError, ValueError):
    """Raised when a raw file does not have the shape its normalizer expects."""
    pass
