#!/usr/bin/env python3
"""
Base ETL Pipeline Framework

Provides abstract base classes for building flat-file education data
pipelines. Projects extend these classes with dataset-specific normalizers,
recoders and output schemas.

A run reads every raw file once, normalizes each into a common row shape,
concatenates the batches, applies table-level transformers and hands the
result to the loaders.
"""

import csv
import os
import re
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Dict, Any, List, Optional, Tuple, TypeVar, Generic
import pandas as pd
import numpy as np
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from tqdm import tqdm

from .config import PipelineConfig
from .errors import MissingSourceError, SourceFormatError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

T = TypeVar('T')


def clean_column_names(columns) -> List[str]:
    """Strip BOMs and collapse line breaks and runs of whitespace."""
    return [
        re.sub(
            r"\s+", " ",
            str(c).replace("\ufeff", "")  # UTF-8 BOM as unicode
                  .replace("ï»¿", "")  # UTF-8 BOM read as latin-1
        ).strip()
        for c in columns
    ]


def safe_int(series: pd.Series) -> pd.Series:
    """Convert series to int, keeping missing values as None."""
    numeric = pd.to_numeric(series, errors="coerce")
    return pd.Series(
        [int(x) if pd.notna(x) else None for x in numeric],
        index=series.index,
        dtype=object,
    )


@dataclass(frozen=True)
class SourceFile:
    """A raw input file tagged with the period parsed from its name."""
    path: Path
    period: str

    @property
    def format(self) -> str:
        return self.path.suffix.lower().lstrip(".")


class FileCollector:
    """Find raw files by naming convention.

    `pattern` is matched against the file name and must define a named
    group `period`. An optional `revised` group marks revised releases; with
    `prefer_revised` only one file per period is kept, the revised one
    winning.
    """

    def __init__(self, source_dir: Path, pattern: str, prefer_revised: bool = False):
        self.source_dir = Path(source_dir)
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.prefer_revised = prefer_revised

    def collect(self) -> List[SourceFile]:
        if not self.source_dir.is_dir():
            raise MissingSourceError(f"Raw data directory not found: {self.source_dir}")

        sources = []
        by_period: Dict[str, Tuple[SourceFile, bool]] = {}

        for path in sorted(self.source_dir.iterdir()):
            match = self.pattern.fullmatch(path.name)
            if not match or not path.is_file():
                continue

            source = SourceFile(path=path, period=match.group("period"))
            if not self.prefer_revised:
                sources.append(source)
                continue

            revised = bool(match.groupdict().get("revised"))
            current = by_period.get(source.period)
            if current is None or (revised and not current[1]):
                by_period[source.period] = (source, revised)

        sources.extend(source for source, _ in by_period.values())

        if not sources:
            raise MissingSourceError(
                f"No files matching '{self.pattern.pattern}' in {self.source_dir}"
            )

        sources.sort(key=lambda s: (s.period, s.path.name))
        logger.info(f"Collected {len(sources)} files from {self.source_dir}")
        return sources


class BaseExtractor(ABC):
    """Base class for data extractors.

    An extractor reads whole files; each file is one batch.
    """

    def __init__(
        self,
        sources: List[SourceFile] = None,
        encoding: str = 'utf-8',
        fallback_encoding: str = 'iso-8859-1',
        na_values: list = None
    ):
        self.sources = list(sources or [])
        self.encoding = encoding
        self.fallback_encoding = fallback_encoding
        self.na_values = na_values or ["", "NA", "N/A"]
        self.stats = {"files_extracted": 0, "rows_extracted": 0}

    @abstractmethod
    def read(self, source: SourceFile) -> pd.DataFrame:
        """Read one source file. Override in subclass."""
        pass

    def extract(self) -> Iterator[Tuple[SourceFile, pd.DataFrame]]:
        """Extract every source file, one batch per file."""
        for source in self.sources:
            logger.info(f"Extracting from {source.path}")
            try:
                df = self.read(source)
            except FileNotFoundError as e:
                raise MissingSourceError(f"Cannot read {source.path}: {e}") from e

            df.columns = clean_column_names(df.columns)
            self.stats["files_extracted"] += 1
            self.stats["rows_extracted"] += len(df)
            logger.info(f"  {len(df)} rows, {len(df.columns)} columns")
            yield source, df

    def count_files(self) -> int:
        return len(self.sources)


class CSVExtractor(BaseExtractor):
    """Extract data from delimited text files."""

    def __init__(
        self,
        sources: List[SourceFile] = None,
        delimiter: str = ',',
        quoting: int = csv.QUOTE_MINIMAL,
        **kwargs
    ):
        super().__init__(sources, **kwargs)
        self.delimiter = delimiter
        self.quoting = quoting
        self._bad_lines = 0

    def _skip_bad_line(self, fields: List[str]) -> None:
        """Count and skip a row with more fields than the header."""
        self._bad_lines += 1
        return None

    def _read_csv(self, path: Path, encoding: str) -> pd.DataFrame:
        self._bad_lines = 0
        return pd.read_csv(
            path,
            sep=self.delimiter,
            quoting=self.quoting,
            dtype=str,
            na_values=self.na_values,
            keep_default_na=True,
            encoding=encoding,
            engine="python",
            on_bad_lines=self._skip_bad_line,
        )

    def read(self, source: SourceFile) -> pd.DataFrame:
        try:
            df = self._read_csv(source.path, self.encoding)
        except UnicodeDecodeError:
            logger.warning(
                f"{source.path.name} is not {self.encoding}; retrying as {self.fallback_encoding}"
            )
            df = self._read_csv(source.path, self.fallback_encoding)

        if self._bad_lines:
            logger.warning(f"{source.path.name}: skipped {self._bad_lines} malformed rows")
        return df


class TabExtractor(CSVExtractor):
    """Extract tab-delimited text files with no quote character.

    State files use bare tabs and may contain apostrophes or quotes inside
    names, so quoting is disabled; short rows are padded with missing values.
    """

    def __init__(self, sources: List[SourceFile] = None, **kwargs):
        super().__init__(sources, delimiter='\t', quoting=csv.QUOTE_NONE, **kwargs)


class ExcelExtractor(BaseExtractor):
    """Extract one sheet from a workbook."""

    def __init__(
        self,
        sources: List[SourceFile] = None,
        sheet_name: Any = 0,
        header: int = 0,
        **kwargs
    ):
        super().__init__(sources, **kwargs)
        self.sheet_name = sheet_name
        self.header = header

    def read(self, source: SourceFile) -> pd.DataFrame:
        try:
            return pd.read_excel(
                source.path,
                sheet_name=self.sheet_name,
                header=self.header,
                dtype=str,
                na_values=self.na_values,
                engine="openpyxl",
            )
        except (ValueError, IndexError) as e:
            raise SourceFormatError(
                f"{source.path.name}: cannot read sheet {self.sheet_name!r}: {e}"
            ) from e


class DispatchingExtractor(BaseExtractor):
    """Route each source file to the extractor registered for its format."""

    def __init__(self, sources: List[SourceFile], readers: Dict[str, BaseExtractor]):
        super().__init__(sources)
        self.readers = readers

    def read(self, source: SourceFile) -> pd.DataFrame:
        reader = self.readers.get(source.format)
        if reader is None:
            raise SourceFormatError(f"No reader for .{source.format} files ({source.path.name})")
        return reader.read(source)


class BaseTransformer(ABC, Generic[T]):
    """Base class for data transformers."""

    def __init__(self):
        self.stats = {"rows_transformed": 0, "rows_dropped": 0}

    @abstractmethod
    def transform(self, df: pd.DataFrame) -> T:
        """Transform a table. Override in subclass."""
        pass

    def _safe_numeric(
        self,
        series: pd.Series,
        errors: str = 'coerce'
    ) -> pd.Series:
        """Safely convert series to numeric."""
        return pd.to_numeric(series, errors=errors)

    def _safe_int(self, series: pd.Series) -> pd.Series:
        """Safely convert series to int, keeping missing values as None."""
        return safe_int(series)

    def _map_values(
        self,
        series: pd.Series,
        mapping: Dict[str, str]
    ) -> pd.Series:
        """Map values using a dictionary."""
        return series.map(mapping)

    def _drop_incomplete(self, df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
        """Drop rows where every one of `columns` is missing."""
        present = [c for c in columns if c in df.columns]
        if not present:
            return df

        incomplete = df[present].isna().all(axis=1)
        dropped = int(incomplete.sum())
        if dropped:
            logger.info(f"Dropping {dropped} rows missing all of {present}")
            self.stats["rows_dropped"] += dropped
        return df[~incomplete]


class BaseNormalizer(BaseTransformer):
    """Transformer bound to the source file whose rows it normalizes."""

    def __init__(self, source: SourceFile):
        super().__init__()
        self.source = source


class BaseLoader(ABC):
    """Base class for data loaders."""

    def __init__(self):
        self.stats = {"rows_loaded": 0}

    @abstractmethod
    def load(self, df: pd.DataFrame) -> int:
        """Load data to target. Override in subclass."""
        pass

    def _prepare_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        """Prepare dataframe for loading (replace NaN with None)."""
        return df.replace({np.nan: None})


class CSVLoader(BaseLoader):
    """Write a table to a CSV file with a header row and no index.

    The file is written next to its destination and moved into place, so a
    failed run never leaves a partial output behind.
    """

    def __init__(self, output_path: Path, encoding: str = 'utf-8'):
        super().__init__()
        self.output_path = Path(output_path)
        self.encoding = encoding

    def load(self, df: pd.DataFrame) -> int:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.output_path.with_name(f".{self.output_path.name}.tmp")

        try:
            df.to_csv(tmp_path, index=False, encoding=self.encoding)
            os.replace(tmp_path, self.output_path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        logger.info(f"Wrote {len(df)} rows to {self.output_path}")
        self.stats["rows_loaded"] += len(df)
        return len(df)


class SQLLoader(BaseLoader):
    """Write a table to a database table through SQLAlchemy."""

    def __init__(self, engine: Engine, table_name: str, if_exists: str = "replace"):
        super().__init__()
        self.engine = engine
        self.table_name = table_name
        self.if_exists = if_exists

    def load(self, df: pd.DataFrame) -> int:
        return self._bulk_insert(df, self.table_name, list(df.columns))

    def _bulk_insert(
        self,
        df: pd.DataFrame,
        table_name: str,
        columns: list
    ) -> int:
        """Bulk insert dataframe to table."""
        df_to_load = self._prepare_dataframe(df[columns].copy())

        df_to_load.to_sql(
            table_name,
            self.engine,
            if_exists=self.if_exists,
            index=False,
            method="multi",
            # SQLite caps bound parameters per statement
            chunksize=max(1, 30000 // max(len(columns), 1)),
        )

        loaded = len(df_to_load)
        logger.info(f"Loaded {loaded} rows into {table_name}")
        self.stats["rows_loaded"] += loaded
        return loaded


class BasePipeline(ABC):
    """Base class for ETL pipelines.

    Subclasses set the class attributes below and implement
    `get_extractor` and `get_normalizer`.
    """

    name: str = ""
    source_pattern: str = ""
    prefer_revised: bool = False
    output_file: str = ""
    table_name: str = ""

    # Rows missing every one of these after concatenation are dropped
    key_columns: List[str] = []
    # Fixed output column order; None keeps the unified order
    output_columns: Optional[List[str]] = None
    sort_columns: List[str] = []
    count_columns: List[str] = []

    def __init__(self, config: PipelineConfig = None):
        self.config = config or PipelineConfig.from_env()
        connection_string = self._get_connection_string()
        self.engine = create_engine(connection_string) if connection_string else None
        self.sources: List[SourceFile] = []
        self.stats = {
            "files": 0,
            "extracted": 0,
            "normalized": 0,
            "dropped": 0,
            "loaded": 0,
        }

    def _get_connection_string(self) -> Optional[str]:
        """Get database connection string from config or environment."""
        return self.config.database_url or os.getenv("DATABASE_URL")

    def collect_sources(self) -> List[SourceFile]:
        collector = FileCollector(
            self.config.raw_dir,
            self.source_pattern,
            prefer_revised=self.prefer_revised,
        )
        return collector.collect()

    @abstractmethod
    def get_extractor(self, sources: List[SourceFile]) -> BaseExtractor:
        """Return the extractor for this pipeline."""
        pass

    @abstractmethod
    def get_normalizer(self, source: SourceFile) -> BaseNormalizer:
        """Return the normalizer for one source file."""
        pass

    def get_transformers(self) -> list:
        """Return table-level transformers applied after unification."""
        return []

    def get_loaders(self) -> list:
        """Return list of loaders for this pipeline."""
        loaders = [CSVLoader(self.config.clean_dir / self.output_file)]
        if self.engine is not None:
            loaders.append(SQLLoader(self.engine, self.table_name))
        return loaders

    def unify(self, batches: List[pd.DataFrame]) -> pd.DataFrame:
        """Concatenate normalized batches into one table."""
        table = pd.concat(batches, ignore_index=True, sort=False)

        if self.key_columns:
            present = [c for c in self.key_columns if c in table.columns]
            incomplete = table[present].isna().all(axis=1)
            dropped = int(incomplete.sum())
            if dropped:
                logger.info(f"Dropping {dropped} rows missing all of {present}")
                self.stats["dropped"] += dropped
            table = table[~incomplete]

        return table.reset_index(drop=True)

    def sort_key(self, series: pd.Series) -> pd.Series:
        """Sort key applied per column in `finalize`. Override to rank values."""
        return series

    def finalize(self, table: pd.DataFrame) -> pd.DataFrame:
        """Fix column order, sort deterministically and clean count columns."""
        if self.output_columns is not None:
            for column in self.output_columns:
                if column not in table.columns:
                    table[column] = None
            table = table[self.output_columns]

        if self.sort_columns:
            table = table.sort_values(
                by=self.sort_columns,
                key=self.sort_key,
                kind="mergesort",
                na_position="last",
            )

        table = table.reset_index(drop=True)

        if self.count_columns:
            table = table.copy()
            for column in self.count_columns:
                table[column] = safe_int(table[column])

        return table

    def build(self) -> pd.DataFrame:
        """Extract, normalize, unify and transform without loading."""
        self.sources = self.collect_sources()
        self.stats["files"] = len(self.sources)
        extractor = self.get_extractor(self.sources)

        batches = []
        with tqdm(total=extractor.count_files(), desc=self.name or "Processing") as pbar:
            for source, raw in extractor.extract():
                self.stats["extracted"] += len(raw)

                normalizer = self.get_normalizer(source)
                batch = normalizer.transform(raw)
                self.stats["dropped"] += normalizer.stats["rows_dropped"]
                self.stats["normalized"] += len(batch)
                batches.append(batch)

                pbar.update(1)

        table = self.unify(batches)

        for transformer in self.get_transformers():
            before = len(table)
            table = transformer.transform(table)
            transformer.stats["rows_transformed"] += len(table)
            self.stats["dropped"] += transformer.stats["rows_dropped"]
            logger.info(f"{type(transformer).__name__}: {before} -> {len(table)} rows")

        return self.finalize(table)

    def run(self, dry_run: bool = False) -> dict:
        """Execute the ETL pipeline."""
        logger.info(f"Starting {self.name} pipeline (dry_run={dry_run})")

        table = self.build()
        self.stats["rows"] = len(table)

        if not dry_run:
            for loader in self.get_loaders():
                loader.load(table)
            self.stats["loaded"] = len(table)

        logger.info(f"ETL complete: {self.stats}")
        return self.stats

