"""
C2C education data pipelines.

Batch ETL for CDE K-12 enrollment/graduation files and IPEDS postsecondary
enrollment/completions files.
"""

__version__ = "0.1.0"
