#!/usr/bin/env python3
"""
ETL Pipeline for IPEDS 12-month Enrollment

Merges the EFFY files for every available year, limited to California's
public systems, into IPEDS_Postsecondary_Enrollment.csv.

Source: https://nces.ed.gov/ipeds/datacenter/DataFiles.aspx
"""

from c2c.etl.recode import (
    LEVEL_DEGREE_STATUS_CODES,
    ORIGINAL_STUDY_LEVEL_CODES,
    STUDY_LEVEL_CODES,
)

from .base import IpedsPipeline

ENROLLMENT_COLUMNS = {
    "EFFYLEV": "Current Level of Study",
    "LSTUDY": "Original Level of Study",
    "EFFYALEV": "Level/Degree Status",
    "EFYTOTLT": "Grand total",
    "EFYTOTLM": "Grand total men",
    "EFYTOTLW": "Grand total women",
    "EFYAIANT": "American Indian or Alaskan Native total",
    "EFYAIANM": "American Indian or Alaskan Native men",
    "EFYAIANW": "American Indian or Alaskan Native women",
    "EFYASIAT": "Asian total",
    "EFYASIAM": "Asian men",
    "EFYASIAW": "Asian women",
    "EFYBKAAT": "Black or African American total",
    "EFYBKAAM": "Black or African American men",
    "EFYBKAAW": "Black or African American women",
    "EFYHISPT": "Hispanic or Latino total",
    "EFYHISPM": "Hispanic or Latino men",
    "EFYHISPW": "Hispanic or Latino women",
    "EFYNHPIT": "Native Hawaiian or Other Pacific Islander total",
    "EFYNHPIM": "Native Hawaiian or Other Pacific Islander men",
    "EFYNHPIW": "Native Hawaiian or Other Pacific Islander women",
    "EFYWHITT": "White total",
    "EFYWHITM": "White men",
    "EFYWHITW": "White women",
    "EFY2MORT": "Two or more races total",
    "EFY2MORM": "Two or more races men",
    "EFY2MORW": "Two or more races women",
    "EFYUNKNT": "Race or ethnicity unknown total",
    "EFYUNKNM": "Race or ethnicity unknown men",
    "EFYUNKNW": "Race or ethnicity unknown women",
    "EFYNRALT": "US nonresident total",
    "EFYNRALM": "US Nonresident men",
    "EFYNRALW": "US Nonresident women",
    "EFYGUUN": "Gender unknown",
    "EFYGUAN": "Another gender",
    "EFYGUTOT": "Total gender unknown and another gender",
    "EFYGUKN": "Total gender reported as one of the mutually exclusive binary categories (Men/Women)",
}


class EnrollmentPipeline(IpedsPipeline):
    """Merge IPEDS 12-month enrollment into IPEDS_Postsecondary_Enrollment.csv."""

    name = "ipeds-enrollment"
    source_pattern = r"effy(?P<period>\d{4})(?P<revised>_rv)?\.csv"
    output_file = "IPEDS_Postsecondary_Enrollment.csv"
    table_name = "ipeds_postsecondary_enrollment"

    rename_map = ENROLLMENT_COLUMNS
    recode_tables = {
        "Current Level of Study": STUDY_LEVEL_CODES,
        "Original Level of Study": ORIGINAL_STUDY_LEVEL_CODES,
        "Level/Degree Status": LEVEL_DEGREE_STATUS_CODES,
    }
