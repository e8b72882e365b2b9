#!/usr/bin/env python3
"""
ETL Pipeline for CDE One-Year Graduate Counts

Merges every "CDE Graduation YYYY-YYYY" file in the raw folder into one
long table with a row per (year, aggregate level, geography, reporting
category).

CDE changed formats partway through the series:
    - Historical years are tab-delimited text, one row per school with a
      column per race/ethnicity. They are pivoted long and the State,
      County and District rollups the newer files carry are synthesized
      by summing school rows.
    - Newer years are workbooks with the data on the third sheet (the first
      row is a title). Aggregate level and reporting category are coded and
      are recoded to labels.

Sources: https://www.cde.ca.gov/ds/ad/filesoygrads.asp
         https://www.cde.ca.gov/ds/ad/filesgrad.asp
"""

import re
import logging
from typing import Iterable, List

import pandas as pd

from c2c.etl.errors import SourceFormatError
from c2c.etl.pipeline import (
    BaseNormalizer,
    BasePipeline,
    BaseTransformer,
    DispatchingExtractor,
    ExcelExtractor,
    SourceFile,
    TabExtractor,
)
from c2c.etl.recode import (
    AGGREGATE_LEVEL_CODES,
    REPORTING_CATEGORY_CODES,
    recode_series,
)

logger = logging.getLogger(__name__)

ACADEMIC_YEAR = "Academic Year"
AGGREGATE_LEVEL = "Aggregate Level"
REPORTING_CATEGORY = "Reporting Category"
GRADUATE_COUNT = "One-Year Graduate Count"
GEOGRAPHY_COLUMNS = ["County Name", "District Name", "School Name"]

OUTPUT_COLUMNS = [
    ACADEMIC_YEAR,
    AGGREGATE_LEVEL,
    *GEOGRAPHY_COLUMNS,
    REPORTING_CATEGORY,
    GRADUATE_COUNT,
]

NOT_APPLICABLE = "N/A"
LEVELS = ["State", "County", "District", "School"]
LEVEL_RANK = {level: rank for rank, level in enumerate(LEVELS)}

# Geography fields each level identifies; the rest hold NOT_APPLICABLE
LEVEL_GEOGRAPHY = {
    "State": [],
    "County": ["County Name"],
    "District": ["County Name", "District Name"],
    "School": ["County Name", "District Name", "School Name"],
}

# Historical text layout, by position
LEGACY_CATEGORIES = [
    "Hispanic/Latino",
    "American Indian/Alaskan Native",
    "Asian",
    "Pacific Islander",
    "Filipino",
    "African American",
    "White",
    "Two or more races",
    "Not reported",
    "Total",
]
LEGACY_COLUMNS = ["School Code", *GEOGRAPHY_COLUMNS, *LEGACY_CATEGORIES, "Year"]

MODERN_CODE_COLUMNS = ["County Code", "District Code", "School Code"]

_SHORT_ACADEMIC_YEAR = re.compile(r"(\d{4})-(\d{2})")


def expand_academic_year(value):
    """Expand "2021-22" to "2021-2022"; other values pass through."""
    if not isinstance(value, str):
        return value
    match = _SHORT_ACADEMIC_YEAR.fullmatch(value.strip())
    if not match:
        return value
    return f"{match.group(1)}-20{match.group(2)}"


class LegacyGraduationNormalizer(BaseNormalizer):
    """Pivot a historical wide text file into one row per category."""

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        required = len(LEGACY_COLUMNS) - 1  # trailing Year is optional
        if len(df.columns) < required:
            raise SourceFormatError(
                f"{self.source.path.name}: expected at least {required} columns, "
                f"found {len(df.columns)}"
            )

        wide = df.iloc[:, :len(LEGACY_COLUMNS)].copy()
        wide.columns = LEGACY_COLUMNS[:len(wide.columns)]
        # Lines of bare tabs carry no school
        wide = self._drop_incomplete(wide, GEOGRAPHY_COLUMNS)
        wide = wide.assign(**{ACADEMIC_YEAR: self.source.period})

        long = wide.melt(
            id_vars=[ACADEMIC_YEAR, *GEOGRAPHY_COLUMNS],
            value_vars=LEGACY_CATEGORIES,
            var_name=REPORTING_CATEGORY,
            value_name=GRADUATE_COUNT,
        )
        long[GRADUATE_COUNT] = self._safe_numeric(long[GRADUATE_COUNT])
        long[AGGREGATE_LEVEL] = "School"

        long = self._drop_incomplete(long, [ACADEMIC_YEAR, REPORTING_CATEGORY])
        return long[OUTPUT_COLUMNS]


class ModernGraduationNormalizer(BaseNormalizer):
    """Recode a newer long-format sheet into the unified columns."""

    required_columns = [ACADEMIC_YEAR, AGGREGATE_LEVEL, REPORTING_CATEGORY, GRADUATE_COUNT]

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        missing = [c for c in self.required_columns if c not in df.columns]
        if missing:
            raise SourceFormatError(f"{self.source.path.name}: missing columns {missing}")

        df = df.drop(columns=[c for c in MODERN_CODE_COLUMNS if c in df.columns])
        df = self._drop_incomplete(df, [ACADEMIC_YEAR, REPORTING_CATEGORY])

        out = pd.DataFrame(index=df.index)
        out[ACADEMIC_YEAR] = df[ACADEMIC_YEAR].map(expand_academic_year)
        out[AGGREGATE_LEVEL] = recode_series(df[AGGREGATE_LEVEL], AGGREGATE_LEVEL_CODES)
        for column in GEOGRAPHY_COLUMNS:
            out[column] = df[column] if column in df.columns else None
        out[REPORTING_CATEGORY] = recode_series(df[REPORTING_CATEGORY], REPORTING_CATEGORY_CODES)
        out[GRADUATE_COUNT] = self._safe_numeric(df[GRADUATE_COUNT])

        return out[OUTPUT_COLUMNS]


class AggregateSynthesizer(BaseTransformer):
    """Add State, County and District rows summed from School rows.

    Only School rows whose period is in `periods` are rolled up. Missing
    counts sum as zero, and each grouping key yields exactly one row.
    """

    def __init__(self, periods: Iterable[str]):
        super().__init__()
        self.periods = set(periods)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        school = df[(df[AGGREGATE_LEVEL] == "School") & df[ACADEMIC_YEAR].isin(self.periods)]
        if school.empty:
            return df

        school = school.assign(**{GRADUATE_COUNT: school[GRADUATE_COUNT].fillna(0)})

        frames = [df]
        for level in ("State", "County", "District"):
            geography = LEVEL_GEOGRAPHY[level]
            keys = [ACADEMIC_YEAR, *geography, REPORTING_CATEGORY]

            summary = (
                school.groupby(keys, dropna=False, sort=True)[GRADUATE_COUNT]
                .sum()
                .reset_index()
            )
            summary[AGGREGATE_LEVEL] = level
            for column in GEOGRAPHY_COLUMNS:
                if column not in geography:
                    summary[column] = NOT_APPLICABLE

            logger.info(f"Synthesized {len(summary)} {level} rows")
            frames.append(summary[OUTPUT_COLUMNS])

        return pd.concat(frames, ignore_index=True)


class GeographySentinelFiller(BaseTransformer):
    """Set geography fields above each row's own level to N/A."""

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        for column in GEOGRAPHY_COLUMNS:
            df[column] = df[column].astype(object)

        for level, geography in LEVEL_GEOGRAPHY.items():
            rows = df[AGGREGATE_LEVEL] == level
            for column in GEOGRAPHY_COLUMNS:
                if column not in geography:
                    df.loc[rows, column] = NOT_APPLICABLE
        return df


class GraduationPipeline(BasePipeline):
    """Merge CDE one-year graduate counts into CDE_Graduation_Counts.csv."""

    name = "cde-graduation"
    source_pattern = r"CDE Graduation (?P<period>\d{4}-\d{4})\.(?:txt|xlsx)"
    output_file = "CDE_Graduation_Counts.csv"
    table_name = "cde_graduation_counts"

    key_columns = [ACADEMIC_YEAR, REPORTING_CATEGORY]
    output_columns = OUTPUT_COLUMNS
    sort_columns = [ACADEMIC_YEAR, AGGREGATE_LEVEL, *GEOGRAPHY_COLUMNS, REPORTING_CATEGORY]
    count_columns = [GRADUATE_COUNT]

    normalizers = {
        "txt": LegacyGraduationNormalizer,
        "xlsx": ModernGraduationNormalizer,
    }

    def get_extractor(self, sources: List[SourceFile]) -> DispatchingExtractor:
        options = {
            "encoding": self.config.encoding,
            "fallback_encoding": self.config.fallback_encoding,
        }
        return DispatchingExtractor(sources, readers={
            "txt": TabExtractor(**options),
            "xlsx": ExcelExtractor(sheet_name=2, header=1, **options),
        })

    def get_normalizer(self, source: SourceFile) -> BaseNormalizer:
        normalizer = self.normalizers.get(source.format)
        if normalizer is None:
            raise SourceFormatError(f"No normalizer for .{source.format} files ({source.path.name})")
        return normalizer(source)

    def get_transformers(self) -> list:
        legacy_periods = [s.period for s in self.sources if s.format == "txt"]
        return [
            AggregateSynthesizer(legacy_periods),
            GeographySentinelFiller(),
        ]

    def sort_key(self, series: pd.Series) -> pd.Series:
        if series.name == AGGREGATE_LEVEL:
            return series.map(LEVEL_RANK)
        return series
