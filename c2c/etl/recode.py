"""
Code-to-label lookup tables for CDE and IPEDS categorical columns.

The tables are plain data so they can be audited against the agencies'
file layouts. Recoding is total: a missing or unrecognized code becomes
UNKNOWN rather than being kept or raising.
"""

import logging
from typing import Dict

import pandas as pd

from .pipeline import BaseTransformer

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

# CDE census enrollment ETHNIC
ETHNICITY_CODES = {
    1: "American Indian/Alaskan Native",
    2: "Asian",
    3: "Pacific Islander",
    4: "Filipino",
    5: "Hispanic/Latino",
    6: "African American",
    7: "White",
    9: "Two or more races",
    0: "Not reported",
}

# CDE census enrollment GENDER
GENDER_CODES = {
    "M": "Male",
    "F": "Female",
    "X": "Non-Binary",
    "Z": "Missing",
}

# CDE AggregateLevel / Aggregate Level
AGGREGATE_LEVEL_CODES = {
    "T": "State",
    "C": "County",
    "D": "District",
    "S": "School",
}

# CDE ReportingCategory / Reporting Category
REPORTING_CATEGORY_CODES = {
    "RB": "African American",
    "RI": "American Indian/Alaskan Native",
    "RA": "Asian",
    "RF": "Filipino",
    "RH": "Hispanic/Latino",
    "RD": "Not reported",
    "RP": "Pacific Islander",
    "RT": "Two or more races",
    "RW": "White",
    "GM": "Male",
    "GF": "Female",
    "GX": "Non-binary",
    "GZ": "Missing",
    "SE": "English Language Learners",
    "SD": "Students with Disabilities",
    "SS": "Socioeconomically Disadvantaged",
    "SM": "Migrant",
    "SF": "Foster",
    "SH": "Homeless",
    "TA": "Total",
}

# IPEDS completions AWLEVELC
AWARD_LEVEL_CODES = {
    1: "Award of less than 1 academic year",
    2: "Certificate of at least 1 but less than 4 years",
    3: "Associate's degree",
    5: "Bachelor's degree",
    7: "Master's degree",
    9: "Doctor's degree",
    10: "Postbaccalaureate or Post-master's certificate",
    11: "Certificate of less than 12 weeks",
    12: "Certificate of at least 12 weeks but less than 1 year",
}

# IPEDS 12-month enrollment EFFYLEV
STUDY_LEVEL_CODES = {
    1: "All students",
    2: "Undergraduate",
    4: "Graduate",
}

# IPEDS 12-month enrollment LSTUDY
ORIGINAL_STUDY_LEVEL_CODES = {
    1: "All students",
    2: "Undergraduate",
    3: "Graduate",
    999: "Generated total",
}

# IPEDS 12-month enrollment EFFYALEV
LEVEL_DEGREE_STATUS_CODES = {
    1: "All students total",
    2: "All students, Undergraduate total",
    3: "All students, Undergraduate, Degree/certificate-seeking total",
    4: "All students, Undergraduate, Degree/certificate-seeking, First-time",
    5: "All students, Undergraduate, Other degree/certificate-seeking",
    19: "All students, Undergraduate, Other degree/certificate-seeking, Transfer-ins",
    20: "All students, Undergraduate, Other degree/certificate-seeking, Continuing",
    11: "All students, Undergraduate, Non-degree/certificate-seeking",
    12: "All students, Graduate",
    21: "Full-time students total",
    22: "Full-time students, Undergraduate total",
    23: "Full-time students, Undergraduate, Degree/certificate-seeking total",
    24: "Full-time students, Undergraduate, Degree/certificate-seeking, First-time",
    25: "Full-time students, Undergraduate, Degree/certificate-seeking, Other degree/certificate-seeking",
    39: "Full-time students, Undergraduate, Other degree/certificate-seeking, Transfer-ins",
    40: "Full-time students, Undergraduate, Other degree/certificate-seeking, Continuing",
    31: "Full-time students, Undergraduate, Non-degree/certificate-seeking",
    32: "Full-time students, Graduate",
    41: "Part-time students total",
    42: "Part-time students, Undergraduate total",
    43: "Part-time students, Undergraduate, Degree/certificate-seeking total",
    44: "Part-time students, Undergraduate, Degree/certificate-seeking, First-time",
    45: "Part-time students, Undergraduate, Degree/certificate-seeking, Other degree/certificate-seeking",
    59: "Part-time students, Undergraduate, Other degree/certificate-seeking, Transfer-ins",
    60: "Part-time students, Undergraduate, Other degree/certificate-seeking, Continuing",
    51: "Part-time students, Undergraduate, Non-degree/certificate-seeking",
    52: "Part-time students, Graduate",
}


def _is_numeric_table(table: Dict) -> bool:
    return all(isinstance(code, int) for code in table)


def recode_series(series: pd.Series, table: Dict, unknown: str = UNKNOWN) -> pd.Series:
    """Replace codes in `series` with labels from `table`.

    Numeric tables accept ints, whole floats and numeric strings; letter
    tables match after stripping whitespace.
    """
    if _is_numeric_table(table):
        codes = pd.to_numeric(series.astype(str).str.strip(), errors='coerce')
        return codes.map(lambda code: unknown if pd.isna(code) else table.get(code, unknown)).astype(object)

    return series.map(
        lambda code: table.get(code.strip(), unknown) if isinstance(code, str) else unknown
    ).astype(object)


class Recoder(BaseTransformer):
    """Recode several columns of a table, each with its own lookup."""

    def __init__(self, tables: Dict[str, Dict], unknown: str = UNKNOWN):
        super().__init__()
        self.tables = tables
        self.unknown = unknown

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        for column, table in self.tables.items():
            if column not in df.columns:
                logger.warning(f"Column {column!r} not present; nothing to recode")
                continue

            recoded = recode_series(df[column], table, self.unknown)
            unknown = int((recoded == self.unknown).sum())
            if unknown:
                logger.info(f"{column}: {unknown} values recoded as {self.unknown!r}")
            df[column] = recoded
        return df
