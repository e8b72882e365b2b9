import numpy as np
import pandas as pd
import pytest

from c2c.etl.recode import (
    AGGREGATE_LEVEL_CODES,
    AWARD_LEVEL_CODES,
    ETHNICITY_CODES,
    GENDER_CODES,
    LEVEL_DEGREE_STATUS_CODES,
    REPORTING_CATEGORY_CODES,
    UNKNOWN,
    Recoder,
    recode_series,
)


@pytest.mark.parametrize("code, label", [
    ("1", "American Indian/Alaskan Native"),
    (" 7 ", "White"),
    ("7.0", "White"),
    (9, "Two or more races"),
    (0.0, "Not reported"),
    ("8", UNKNOWN),
    ("abc", UNKNOWN),
    (None, UNKNOWN),
    (np.nan, UNKNOWN),
])
def test_numeric_codes(code, label):
    result = recode_series(pd.Series([code], dtype=object), ETHNICITY_CODES)
    assert result.tolist() == [label]


@pytest.mark.parametrize("code, label", [
    ("M", "Male"),
    (" F", "Female"),
    ("X", "Non-Binary"),
    ("Z", "Missing"),
    ("Q", UNKNOWN),
    (None, UNKNOWN),
])
def test_letter_codes(code, label):
    result = recode_series(pd.Series([code], dtype=object), GENDER_CODES)
    assert result.tolist() == [label]


def test_reporting_category_labels():
    codes = pd.Series(["GX", "SD", "TA", "RW", "XX"])
    assert recode_series(codes, REPORTING_CATEGORY_CODES).tolist() == [
        "Non-binary",
        "Students with Disabilities",
        "Total",
        "White",
        UNKNOWN,
    ]


def test_aggregate_levels_cover_every_level():
    assert set(AGGREGATE_LEVEL_CODES.values()) == {"State", "County", "District", "School"}


def test_award_levels_skip_unused_codes():
    codes = pd.Series(["3", "4", "5", "12"])
    assert recode_series(codes, AWARD_LEVEL_CODES).tolist() == [
        "Associate's degree",
        UNKNOWN,
        "Bachelor's degree",
        "Certificate of at least 12 weeks but less than 1 year",
    ]


def test_level_degree_status_table_is_complete():
    assert len(LEVEL_DEGREE_STATUS_CODES) == 27
    assert LEVEL_DEGREE_STATUS_CODES[52] == "Part-time students, Graduate"


def test_recoder_recodes_each_column():
    df = pd.DataFrame({
        "ETHNIC": ["5", "7", "42"],
        "GENDER": ["F", "X", "M"],
        "ENR_TOTAL": ["10", "20", "30"],
    })

    result = Recoder({"ETHNIC": ETHNICITY_CODES, "GENDER": GENDER_CODES}).transform(df)

    assert result["ETHNIC"].tolist() == ["Hispanic/Latino", "White", UNKNOWN]
    assert result["GENDER"].tolist() == ["Female", "Non-Binary", "Male"]
    assert result["ENR_TOTAL"].tolist() == ["10", "20", "30"]
    # input left untouched
    assert df["ETHNIC"].tolist() == ["5", "7", "42"]


def test_recoder_skips_missing_columns():
    df = pd.DataFrame({"GENDER": ["M"]})

    result = Recoder({"ETHNIC": ETHNICITY_CODES, "GENDER": GENDER_CODES}).transform(df)

    assert list(result.columns) == ["GENDER"]
    assert result["GENDER"].tolist() == ["Male"]
