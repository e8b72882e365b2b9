"""
Shared pieces of the IPEDS count-file pipelines.

IPEDS publishes one CSV per collection year; a later revised release of the
same year carries an "_rv" suffix and replaces the original.
"""

import logging
from typing import Dict, List

import pandas as pd

from c2c.etl.errors import SourceFormatError
from c2c.etl.pipeline import BaseNormalizer, BasePipeline, CSVExtractor, SourceFile
from c2c.etl.recode import Recoder

from .institutions import InstitutionJoiner, load_institution_directory, load_roster

logger = logging.getLogger(__name__)


class IpedsNormalizer(BaseNormalizer):
    """Drop imputation flags, rename variables and prepend the year.

    Variables starting with X are imputation flags and are not kept.
    Variables missing from `rename_map` keep their IPEDS name.
    """

    def __init__(self, source: SourceFile, rename_map: Dict[str, str]):
        super().__init__(source)
        self.rename_map = rename_map

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        df.columns = [c.upper() for c in df.columns]
        if "UNITID" not in df.columns:
            raise SourceFormatError(f"{self.source.path.name}: no UNITID column")

        imputed = [c for c in df.columns if c.startswith("X")]
        df = df.drop(columns=imputed)
        df = self._drop_incomplete(df, ["UNITID"])

        df = df.rename(columns=self.rename_map)
        df.insert(0, "Year", self.source.period)
        return df


class IpedsPipeline(BasePipeline):
    """Base for IPEDS pipelines filtered to one state's public systems."""

    prefer_revised = True
    key_columns = ["UNITID"]

    rename_map: Dict[str, str] = {}
    recode_tables: Dict[str, Dict] = {}

    def get_extractor(self, sources: List[SourceFile]) -> CSVExtractor:
        return CSVExtractor(
            sources,
            encoding=self.config.encoding,
            fallback_encoding=self.config.fallback_encoding,
        )

    def get_normalizer(self, source: SourceFile) -> IpedsNormalizer:
        return IpedsNormalizer(source, self.rename_map)

    def get_transformers(self) -> list:
        directory = load_institution_directory(
            self.config.institution_path,
            encoding=self.config.encoding,
            fallback_encoding=self.config.fallback_encoding,
        )
        roster = load_roster(self.config.roster_file)
        return [
            InstitutionJoiner(directory, roster, self.config.target_state),
            Recoder(self.recode_tables),
        ]
