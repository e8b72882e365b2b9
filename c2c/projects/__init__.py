"""
Dataset pipelines, keyed by command name.
"""

from .cde import CumulativeEnrollmentPipeline, EnrollmentPipeline, GraduationPipeline
from .ipeds import CompletionsPipeline
from .ipeds import EnrollmentPipeline as IpedsEnrollmentPipeline

PIPELINES = {
    pipeline.name: pipeline
    for pipeline in (
        EnrollmentPipeline,
        CumulativeEnrollmentPipeline,
        GraduationPipeline,
        IpedsEnrollmentPipeline,
        CompletionsPipeline,
    )
}

__all__ = ['PIPELINES']
