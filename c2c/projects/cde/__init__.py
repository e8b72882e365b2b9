"""California Department of Education (CDE) K-12 pipelines."""

from .enrollment import CumulativeEnrollmentPipeline, EnrollmentPipeline
from .graduation import GraduationPipeline

__all__ = [
    'CumulativeEnrollmentPipeline',
    'EnrollmentPipeline',
    'GraduationPipeline',
]
