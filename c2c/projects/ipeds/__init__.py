"""IPEDS postsecondary pipelines for California's public systems."""

from .completions import CompletionsPipeline
from .enrollment import EnrollmentPipeline

__all__ = [
    'CompletionsPipeline',
    'EnrollmentPipeline',
]
