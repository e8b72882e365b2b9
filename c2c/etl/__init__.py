"""
C2C ETL Framework

Base classes for building flat-file education data pipelines.
"""

from .config import PipelineConfig
from .errors import C2CError, MissingSourceError, SourceFormatError
from .pipeline import (
    BasePipeline,
    BaseExtractor,
    BaseNormalizer,
    BaseTransformer,
    BaseLoader,
    CSVExtractor,
    CSVLoader,
    DispatchingExtractor,
    ExcelExtractor,
    FileCollector,
    SourceFile,
    SQLLoader,
    TabExtractor,
)
from .recode import Recoder, recode_series, UNKNOWN

__all__ = [
    'PipelineConfig',
    'C2CError',
    'MissingSourceError',
    'SourceFormatError',
    'BasePipeline',
    'BaseExtractor',
    'BaseNormalizer',
    'BaseTransformer',
    'BaseLoader',
    'CSVExtractor',
    'CSVLoader',
    'DispatchingExtractor',
    'ExcelExtractor',
    'FileCollector',
    'SourceFile',
    'SQLLoader',
    'TabExtractor',
    'Recoder',
    'recode_series',
    'UNKNOWN',
]
