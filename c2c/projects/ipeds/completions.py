#!/usr/bin/env python3
"""
ETL Pipeline for IPEDS Completions

Merges the C*_C (completers by award level) files for every available year,
limited to California's public systems, into
IPEDS_Postsecondary_Completions.csv.

Source: https://nces.ed.gov/ipeds/datacenter/DataFiles.aspx
"""

from c2c.etl.recode import AWARD_LEVEL_CODES

from .base import IpedsPipeline

COMPLETIONS_COLUMNS = {
    "AWLEVELC": "Award Level",
    "CSTOTLT": "Grand Total",
    "CSTOTLM": "Grand total men",
    "CSTOTLW": "Grand total women",
    "CSAIANT": "American Indian or Alaska Native total",
    "CSASIAT": "Asian total",
    "CSBKAAT": "Black or African American total",
    "CSHISPT": "Hispanic or Latino total",
    "CSNHPIT": "Native Hawaiian or Other Pacific Islander total",
    "CSWHITT": "White total",
    "CS2MORT": "Two or more races total",
    "CSUNKNT": "Race or ethnicity unknown total",
    "CSNRALT": "US Nonresident total",
    "CSUND18": "Age under 18",
    "CS18_24": "Age 18-24",
    "CS25_39": "Age 25-39",
    "CSABV40": "Age over 40",
    "CSUNKN": "Age unknown",
}


class CompletionsPipeline(IpedsPipeline):
    """Merge IPEDS completions into IPEDS_Postsecondary_Completions.csv."""

    name = "ipeds-completions"
    source_pattern = r"c(?P<period>\d{4})_c(?P<revised>_rv)?\.csv"
    output_file = "IPEDS_Postsecondary_Completions.csv"
    table_name = "ipeds_postsecondary_completions"

    rename_map = COMPLETIONS_COLUMNS
    recode_tables = {
        "Award Level": AWARD_LEVEL_CODES,
    }
