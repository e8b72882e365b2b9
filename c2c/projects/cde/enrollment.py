#!/usr/bin/env python3
"""
ETL Pipelines for CDE Enrollment Data

Two datasets, each merged across years into one file:
    - Census Day enrollment ("CDE Enrollment YYYY-YYYY.txt"): one row per
      school, ethnicity and gender. A Year column taken from the file name
      is added and the ETHNIC/GENDER codes are recoded.
    - Cumulative enrollment ("CDE Cumulative Enrollment YYYY-YYYY.txt"):
      already carries its academic year; AggregateLevel and
      ReportingCategory codes are recoded. Counts under 10 are suppressed
      by CDE and pass through as published.

The downloads all share one file name, so files are renamed by school
year when saved into the raw folder.

Sources: https://www.cde.ca.gov/ds/ad/filesenr.asp
         https://www.cde.ca.gov/ds/ad/filesenrcum.asp
"""

from typing import List

import pandas as pd

from c2c.etl.pipeline import BaseNormalizer, BasePipeline, SourceFile, TabExtractor
from c2c.etl.recode import (
    AGGREGATE_LEVEL_CODES,
    ETHNICITY_CODES,
    GENDER_CODES,
    REPORTING_CATEGORY_CODES,
    Recoder,
)


class CensusEnrollmentNormalizer(BaseNormalizer):
    """Prepend the file's school year as a Year column."""

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        df.insert(0, "Year", self.source.period)
        return df


class CumulativeEnrollmentNormalizer(BaseNormalizer):
    """Rows already carry their academic year; keep them as read."""

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self._drop_incomplete(df, ["AcademicYear", "ReportingCategory"])


class _TabPipeline(BasePipeline):

    def get_extractor(self, sources: List[SourceFile]) -> TabExtractor:
        return TabExtractor(
            sources,
            encoding=self.config.encoding,
            fallback_encoding=self.config.fallback_encoding,
        )


class EnrollmentPipeline(_TabPipeline):
    """Merge CDE Census Day enrollment into CDE_Enrollment.csv."""

    name = "cde-enrollment"
    source_pattern = r"CDE Enrollment (?P<period>\d{4}-\d{4})\.txt"
    output_file = "CDE_Enrollment.csv"
    table_name = "cde_enrollment"

    def get_normalizer(self, source: SourceFile) -> BaseNormalizer:
        return CensusEnrollmentNormalizer(source)

    def get_transformers(self) -> list:
        return [Recoder({
            "ETHNIC": ETHNICITY_CODES,
            "GENDER": GENDER_CODES,
        })]


class CumulativeEnrollmentPipeline(_TabPipeline):
    """Merge CDE cumulative enrollment into CDE_Cumulative_Enrollment.csv."""

    name = "cde-cumulative-enrollment"
    source_pattern = r"CDE Cumulative Enrollment (?P<period>\d{4}-\d{4})\.txt"
    output_file = "CDE_Cumulative_Enrollment.csv"
    table_name = "cde_cumulative_enrollment"

    def get_normalizer(self, source: SourceFile) -> BaseNormalizer:
        return CumulativeEnrollmentNormalizer(source)

    def get_transformers(self) -> list:
        return [Recoder({
            "AggregateLevel": AGGREGATE_LEVEL_CODES,
            "ReportingCategory": REPORTING_CATEGORY_CODES,
        })]
