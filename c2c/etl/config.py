"""
Pipeline configuration.

Defaults mirror the folder layout the C2C project keeps on disk
("Raw Data" in, "Clean Data" out). Every field can be overridden from the
environment or from the command line.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

ENV_VARS = {
    "raw_dir": "C2C_RAW_DIR",
    "clean_dir": "C2C_CLEAN_DIR",
    "institution_file": "C2C_INSTITUTION_FILE",
    "target_state": "C2C_TARGET_STATE",
    "roster_file": "C2C_ROSTER_FILE",
    "database_url": "DATABASE_URL",
    "log_level": "C2C_LOG_LEVEL",
}


@dataclass
class PipelineConfig:
    """Configuration shared by every pipeline."""
    # Folders
    raw_dir: Union[str, Path] = "Raw Data"
    clean_dir: Union[str, Path] = "Clean Data"

    # IPEDS institution directory (relative to raw_dir) and filter
    institution_file: Union[str, Path] = "hd2022.csv"
    target_state: str = "CA"
    roster_file: Optional[Union[str, Path]] = None  # packaged roster when None

    # Optional database target, written in addition to the CSV
    database_url: Optional[str] = None

    # Reading
    encoding: str = "utf-8"
    fallback_encoding: str = "iso-8859-1"

    log_level: str = "INFO"

    def __post_init__(self):
        self.raw_dir = Path(self.raw_dir)
        self.clean_dir = Path(self.clean_dir)
        if self.roster_file is not None:
            self.roster_file = Path(self.roster_file)
        self.target_state = self.target_state.strip().upper()
        self.log_level = self.log_level.strip().upper()

    @property
    def institution_path(self) -> Path:
        path = Path(self.institution_file)
        return path if path.is_absolute() else self.raw_dir / path

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from environment variables; non-None overrides win."""
        values = {}
        for name, env_var in ENV_VARS.items():
            value = os.getenv(env_var)
            if value:
                values[name] = value

        known = {f.name for f in fields(cls)}
        for name, value in overrides.items():
            if name not in known:
                raise TypeError(f"Unknown config option: {name}")
            if value is not None:
                values[name] = value

        return cls(**values)
