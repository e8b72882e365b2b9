import csv

import pandas as pd
import pytest

from c2c.etl.config import PipelineConfig

MODERN_GRADUATION_HEADER = [
    "Academic Year", "Aggregate Level",
    "County Code", "District Code", "School Code",
    "County Name", "District Name", "School Name",
    "Reporting Category", "One-Year Graduate Count",
]

DIRECTORY_HEADER = ["UNITID", "INSTNM", "IALIAS", "ADDR", "CITY", "STABBR", "ZIP", "FIPS", "SECTOR"]

DIRECTORY_ROWS = [
    ["110635", "University of California-Berkeley", "UC Berkeley", "200 California Hall", "Berkeley", "CA", "94720", "6", "1"],
    ["110556", "California State University-Fresno", "Fresno State", "5241 N Maple Ave", "Fresno", "CA", "93740", "6", "1"],
    ["114716", "Fresno City College", "", "1101 E University Ave", "Fresno", "CA", "93741", "6", "4"],
    ["243744", "Stanford University", "", "450 Serra Mall", "Stanford", "CA", "94305", "6", "2"],
    ["104151", "Arizona State University Campus Immersion", "ASU", "1151 S Forest Ave", "Tempe", "AZ", "85281", "4", "1"],
]


def _write_delimited(path, header, rows, delimiter):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL)
        writer.writerow(header)
        writer.writerows(rows)
    return path


@pytest.fixture(autouse=True)
def no_database(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    for var in ("C2C_RAW_DIR", "C2C_CLEAN_DIR", "C2C_INSTITUTION_FILE",
                "C2C_TARGET_STATE", "C2C_ROSTER_FILE", "C2C_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def raw_dir(tmp_path):
    path = tmp_path / "Raw Data"
    path.mkdir()
    return path


@pytest.fixture
def clean_dir(tmp_path):
    return tmp_path / "Clean Data"


@pytest.fixture
def config(raw_dir, clean_dir):
    return PipelineConfig(raw_dir=raw_dir, clean_dir=clean_dir)


@pytest.fixture
def write_tab():
    """Write a tab-delimited file with a header row."""
    def write(path, header, rows):
        with open(path, "w", encoding="utf-8") as f:
            f.write("\t".join(header) + "\n")
            for row in rows:
                f.write("\t".join(str(value) for value in row) + "\n")
        return path
    return write


@pytest.fixture
def write_csv():
    def write(path, header, rows):
        return _write_delimited(path, header, rows, ",")
    return write


@pytest.fixture
def write_graduation_workbook():
    """Write a workbook laid out like the CDE downloads.

    Two cover sheets come first; the data sheet opens with a title row
    above the header.
    """
    def write(path, rows, header=MODERN_GRADUATION_HEADER):
        title = ["One-Year Graduates"] + [None] * (len(header) - 1)
        sheet = pd.DataFrame([title, header, *rows])
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame([["About this file"]]).to_excel(
                writer, sheet_name="About", header=False, index=False)
            pd.DataFrame([["Field definitions"]]).to_excel(
                writer, sheet_name="Fields", header=False, index=False)
            sheet.to_excel(writer, sheet_name="Data", header=False, index=False)
        return path
    return write


@pytest.fixture
def directory_file(raw_dir, write_csv):
    return write_csv(raw_dir / "hd2022.csv", DIRECTORY_HEADER, DIRECTORY_ROWS)


def read_output(path):
    return pd.read_csv(path, dtype=str, keep_default_na=False)


@pytest.fixture
def read_clean():
    """Read a clean output file back with every value as text."""
    return read_output
