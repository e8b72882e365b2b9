"""
IPEDS Data Download Module

Downloads the IPEDS complete data files the enrollment and completions
pipelines read, and unpacks each zip's CSV into the raw data folder under
the lowercase name the pipelines look for (effy2022.csv, c2022_c.csv,
hd2022.csv, ...).

Usage:
    # Download 12-month enrollment, completions and directory for two years
    download_pipeline_sources("Raw Data", years=[2021, 2022])

    # Download specific files
    download_to_disk("./downloads", files=["EFFY2022", "HD2022"])
"""

import re
import time
import random
import logging
import zipfile
from pathlib import Path
from typing import Iterable

import pandas as pd
import requests
from bs4 import BeautifulSoup

from c2c.etl.errors import SourceFormatError

logger = logging.getLogger(__name__)

BASE_URL = "https://nces.ed.gov/ipeds/datacenter/data"
FILE_TABLE_URL = "https://nces.ed.gov/ipeds/datacenter/DataFiles.aspx"

# File stubs the pipelines consume, by year
PIPELINE_FILES = ("EFFY{year}", "C{year}_C")
DIRECTORY_FILE = "HD{year}"

# Pipeline dataset -> NCES data file stub
DATASET_FILES = {
    "enrollment": re.compile(r"EFFY\d{4}", re.IGNORECASE),
    "completions": re.compile(r"C\d{4}_C", re.IGNORECASE),
    "directory": re.compile(r"HD\d{4}", re.IGNORECASE),
}

_file_table_cache: pd.DataFrame | None = None


def _dataset_for(stub: str) -> str | None:
    for dataset, pattern in DATASET_FILES.items():
        if pattern.fullmatch(stub):
            return dataset
    return None


def parse_file_table(html: bytes) -> pd.DataFrame:
    """Parse the NCES DataFiles page into one row per data file."""
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find(id="contentPlaceHolder_tblResult")
    if table is None:
        raise SourceFormatError("NCES DataFiles page has no file table")

    headers = []
    rows = []
    for tr in table.find_all("tr"):
        header_cells = tr.find_all("th")
        if header_cells:
            headers = [th.get_text(strip=True).lower() for th in header_cells]
            continue
        cells = [td.get_text(strip=True) for td in tr.find_all("td")]
        if cells and len(cells) == len(headers):
            rows.append(dict(zip(headers, cells)))

    df = pd.DataFrame(rows, columns=headers).rename(columns={"data file": "file"})
    missing = [c for c in ("year", "survey", "title", "file") if c not in df.columns]
    if missing:
        raise SourceFormatError(f"NCES file table is missing columns {missing}")

    return df[["year", "survey", "title", "file"]].drop_duplicates().reset_index(drop=True)


def get_file_table(redownload: bool = False) -> pd.DataFrame:
    """
    Return the IPEDS data files the pipelines can use.

    The NCES DataFiles page lists every complete data file; only the
    12-month enrollment (EFFY), completions by award level (C*_C) and
    directory (HD) files are kept, tagged with the dataset they feed. The
    table is cached for the session.

    Returns:
        DataFrame with columns: year, survey, title, file, dataset
    """
    global _file_table_cache

    if _file_table_cache is not None and not redownload:
        return _file_table_cache.copy()

    logger.info("Fetching IPEDS file table from NCES...")
    response = requests.get(FILE_TABLE_URL, params={"year": "-1", "surveyNumber": "-1"}, timeout=30)
    response.raise_for_status()

    table = parse_file_table(response.content)
    table["dataset"] = table["file"].map(_dataset_for)
    table = table[table["dataset"].notna()].copy()
    table["year"] = pd.to_numeric(table["year"], errors="coerce")
    table = table.reset_index(drop=True)

    logger.info(
        f"Found {len(table)} pipeline files: "
        + ", ".join(f"{n} {d}" for d, n in table["dataset"].value_counts().sort_index().items())
    )
    _file_table_cache = table
    return table.copy()


def download_to_disk(
    to_dir: str | Path,
    files: list[str],
    overwrite: bool = False,
    validate: bool = True,
) -> list[Path]:
    """
    Download IPEDS data file zips to disk.

    Args:
        to_dir: Directory to save files (created if it doesn't exist).
        files: File stub names (e.g., ["EFFY2022", "HD2022"]).
        overwrite: If True, re-download existing zips.
        validate: If True, skip stubs not listed in the NCES file table.

    Returns:
        List of downloaded zip paths.
    """
    to_dir = Path(to_dir)
    to_dir.mkdir(parents=True, exist_ok=True)

    if not files:
        raise ValueError("No files specified.")

    if validate:
        known_files = {f.upper() for f in get_file_table()["file"]}
        invalid_files = [f for f in files if f.upper() not in known_files]
        if invalid_files:
            logger.warning(
                f"The following files are not IPEDS pipeline files and will be skipped:\n"
                f"  {', '.join(invalid_files)}"
            )
            files = [f for f in files if f.upper() in known_files]

    if not overwrite:
        existing = {p.stem.upper() for p in to_dir.glob("*.zip")}
        overlap = [f for f in files if f.upper() in existing]
        if overlap:
            logger.info(
                f"Skipping {len(overlap)} already downloaded files. "
                f"Set overwrite=True to re-download."
            )
        files = [f for f in files if f.upper() not in existing]

    if not files:
        logger.info("No new files to download.")
        return []

    downloaded = []
    logger.info(f"Downloading {len(files)} files to {to_dir}:")

    for i, file_stub in enumerate(files, 1):
        filename = f"{file_stub}.zip"
        url = f"{BASE_URL}/{filename}"
        dest_path = to_dir / filename

        logger.info(f"  [{i}/{len(files)}] {filename}")

        try:
            response = requests.get(url, timeout=60)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to download {filename}: {e}")
            continue

        with open(dest_path, "wb") as f:
            f.write(response.content)
        downloaded.append(dest_path)

        # Pause every 50 files to avoid throttling
        if i % 50 == 0 and i < len(files):
            pause_time = random.randint(15, 25)
            logger.info(f"  Pausing {pause_time}s to avoid server throttling...")
            time.sleep(pause_time)

    logger.info(f"Downloaded {len(downloaded)} files.")
    return downloaded


def extract_csv_from_zip(zip_path: Path, to_dir: Path, overwrite: bool = False) -> list[Path]:
    """Unpack the CSVs in an IPEDS zip under lowercase names.

    A zip holding both an original and a revised ("_rv") release keeps both;
    the pipelines pick the revised one.
    """
    to_dir = Path(to_dir)
    to_dir.mkdir(parents=True, exist_ok=True)

    written = []
    with zipfile.ZipFile(zip_path, "r") as zf:
        for name in zf.namelist():
            if not name.lower().endswith(".csv"):
                continue

            dest_path = to_dir / Path(name).name.lower()
            if dest_path.exists() and not overwrite:
                logger.info(f"  {dest_path.name} already present")
                written.append(dest_path)
                continue

            with zf.open(name) as src, open(dest_path, "wb") as dst:
                dst.write(src.read())
            logger.info(f"  Extracted {dest_path.name}")
            written.append(dest_path)

    return written


def download_pipeline_sources(
    raw_dir: str | Path,
    years: Iterable[int],
    directory_year: int | None = None,
    overwrite: bool = False,
) -> list[Path]:
    """
    Download and unpack the IPEDS files the pipelines read.

    Args:
        raw_dir: Raw data folder the pipelines read from.
        years: Collection years for the enrollment and completions files.
        directory_year: Year of the HD directory file; defaults to the
            latest requested year.
        overwrite: Re-download and re-extract existing files.

    Returns:
        List of extracted CSV paths.
    """
    years = sorted(set(years))
    if not years:
        raise ValueError("Must specify at least one year to download.")

    raw_dir = Path(raw_dir)
    zip_dir = raw_dir / "zips"

    stubs = [pattern.format(year=year) for year in years for pattern in PIPELINE_FILES]
    stubs.append(DIRECTORY_FILE.format(year=directory_year or years[-1]))

    download_to_disk(zip_dir, files=stubs, overwrite=overwrite)

    extracted = []
    for stub in stubs:
        zip_path = zip_dir / f"{stub}.zip"
        if zip_path.exists():
            extracted.extend(extract_csv_from_zip(zip_path, raw_dir, overwrite=overwrite))
    return extracted
