"""
IPEDS institution directory: loading, system classification and joining.

Count files identify institutions only by UNITID. The HD (directory) file
supplies name and location; the name decides which of California's three
public systems an institution belongs to:

    1. name contains "University of California"            -> UC
    2. name contains " State University" or "State Polytechnic" -> CSU
    3. name is on the community college roster              -> CCC

Anything else (private and out-of-state schools) is dropped.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd
import yaml

from c2c.etl.errors import MissingSourceError, SourceFormatError
from c2c.etl.pipeline import BaseTransformer, CSVExtractor, SourceFile, clean_column_names

logger = logging.getLogger(__name__)

UNIVERSITY_OF_CALIFORNIA = "University of California"
CALIFORNIA_STATE_UNIVERSITY = "California State University"
CALIFORNIA_COMMUNITY_COLLEGES = "California Community Colleges"
SYSTEMS = (
    UNIVERSITY_OF_CALIFORNIA,
    CALIFORNIA_STATE_UNIVERSITY,
    CALIFORNIA_COMMUNITY_COLLEGES,
)

# HD variable -> output header
DIRECTORY_COLUMNS = {
    "UNITID": "UNITID",
    "INSTNM": "Institution name",
    "IALIAS": "Institution alias",
    "ADDR": "Street Address",
    "CITY": "City",
    "STABBR": "State Abbreviation",
    "ZIP": "ZIP",
    "FIPS": "FIPS",
}
INSTITUTION_NAME = DIRECTORY_COLUMNS["INSTNM"]
STATE_ABBREVIATION = DIRECTORY_COLUMNS["STABBR"]

DEFAULT_ROSTER = Path(__file__).parent / "data" / "community_colleges.yaml"


def load_roster(path: Optional[Union[str, Path]] = None) -> frozenset:
    """Load the community college roster names from YAML."""
    path = Path(path) if path else DEFAULT_ROSTER
    try:
        with open(path, "r", encoding="utf-8") as f:
            roster = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise MissingSourceError(f"Community college roster not found: {path}") from e
    except yaml.YAMLError as e:
        raise SourceFormatError(f"Invalid roster file {path}: {e}") from e

    names = roster.get("names") if isinstance(roster, dict) else None
    if not isinstance(names, list) or not names:
        raise SourceFormatError(f"Roster {path} has no 'names' list")

    logger.info(f"Loaded {len(names)} community college names (roster version {roster.get('version')})")
    return frozenset(str(name).strip() for name in names)


def load_institution_directory(
    path: Union[str, Path],
    encoding: str = "utf-8",
    fallback_encoding: str = "iso-8859-1",
) -> pd.DataFrame:
    """Read an HD file, keeping the identity and location columns."""
    path = Path(path)
    if not path.is_file():
        raise MissingSourceError(f"Institution directory not found: {path}")

    extractor = CSVExtractor(encoding=encoding, fallback_encoding=fallback_encoding)
    df = extractor.read(SourceFile(path=path, period=""))
    df.columns = [c.upper() for c in clean_column_names(df.columns)]

    missing = [c for c in DIRECTORY_COLUMNS if c not in df.columns]
    if missing:
        raise SourceFormatError(f"{path.name}: missing directory columns {missing}")

    directory = df[list(DIRECTORY_COLUMNS)].rename(columns=DIRECTORY_COLUMNS)
    directory["UNITID"] = directory["UNITID"].str.strip()

    duplicates = int(directory["UNITID"].duplicated().sum())
    if duplicates:
        logger.warning(f"{path.name}: {duplicates} duplicate UNITIDs; keeping the first of each")
        directory = directory.drop_duplicates(subset="UNITID", keep="first")

    logger.info(f"Loaded {len(directory)} institutions from {path.name}")
    return directory.reset_index(drop=True)


def classify_institutions(names: pd.Series, roster: Iterable[str]) -> pd.Series:
    """Return the public system for each institution name, or None."""
    names = names.fillna("").astype(str)
    roster = frozenset(roster)

    uc = names.str.contains("University of California", regex=False)
    csu = (
        names.str.contains(" State University", regex=False)
        | names.str.contains("State Polytechnic", regex=False)
    )
    ccc = names.isin(roster)

    # Earlier rules win
    system = [
        UNIVERSITY_OF_CALIFORNIA if is_uc
        else CALIFORNIA_STATE_UNIVERSITY if is_csu
        else CALIFORNIA_COMMUNITY_COLLEGES if is_ccc
        else None
        for is_uc, is_csu, is_ccc in zip(uc, csu, ccc)
    ]
    return pd.Series(system, index=names.index, dtype=object)


class InstitutionJoiner(BaseTransformer):
    """Attach directory fields, keep one state, classify and drop the rest."""

    def __init__(self, directory: pd.DataFrame, roster: Iterable[str], target_state: str = "CA"):
        super().__init__()
        self.directory = directory
        self.roster = frozenset(roster)
        self.target_state = target_state

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.assign(UNITID=df["UNITID"].str.strip())
        joined = df.merge(self.directory, on="UNITID", how="left", validate="many_to_one")

        unmatched = int(joined[INSTITUTION_NAME].isna().sum())
        if unmatched:
            logger.info(f"{unmatched} rows have no directory match")

        in_state = joined[STATE_ABBREVIATION] == self.target_state
        out_of_state = int((~in_state).sum())
        joined = joined[in_state]

        joined = joined.assign(System=classify_institutions(joined[INSTITUTION_NAME], self.roster))
        classified = joined["System"].isin(SYSTEMS)
        unclassified = int((~classified).sum())

        dropped = out_of_state + unclassified
        self.stats["rows_dropped"] += dropped
        logger.info(
            f"Dropped {out_of_state} rows outside {self.target_state} "
            f"and {unclassified} rows outside the public systems"
        )
        return joined[classified].reset_index(drop=True)
