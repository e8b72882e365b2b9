#!/usr/bin/env python3
"""
Command line entry point for the C2C pipelines.

Usage:
    c2c-etl cde-graduation
    c2c-etl --raw-dir "Raw Data" --clean-dir "Clean Data" ipeds-enrollment
    c2c-etl run-all --dry-run
    c2c-etl download-ipeds --year 2021 --year 2022
"""

import logging

import click

from c2c.etl.config import PipelineConfig
from c2c.projects import PIPELINES
from c2c.projects.ipeds.download import download_pipeline_sources

logger = logging.getLogger(__name__)


def _run_pipeline(pipeline_cls, config: PipelineConfig, dry_run: bool) -> dict:
    pipeline = pipeline_cls(config)

    try:
        stats = pipeline.run(dry_run=dry_run)
    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        raise

    click.echo(f"\n{pipeline.name} stats: {stats}")
    return stats


@click.group()
@click.option("--raw-dir", type=click.Path(file_okay=False), help="Folder holding the raw files")
@click.option("--clean-dir", type=click.Path(file_okay=False), help="Folder the clean files are written to")
@click.option("--institution-file", help="IPEDS HD file name or path")
@click.option("--roster-file", type=click.Path(dir_okay=False), help="Community college roster YAML")
@click.option("--target-state", help="State abbreviation IPEDS rows are limited to")
@click.option("--database-url", help="Also load each table into this database")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.pass_context
def main(ctx, raw_dir, clean_dir, institution_file, roster_file, target_state, database_url, log_level):
    """Clean and merge CDE and IPEDS education data files."""
    config = PipelineConfig.from_env(
        raw_dir=raw_dir,
        clean_dir=clean_dir,
        institution_file=institution_file,
        roster_file=roster_file,
        target_state=target_state,
        database_url=database_url,
        log_level=log_level.upper() if log_level else None,
    )
    logging.getLogger().setLevel(config.log_level)
    ctx.obj = config


def _register(name: str, pipeline_cls) -> None:

    @main.command(name=name, help=pipeline_cls.__doc__)
    @click.option("--dry-run", is_flag=True, help="Run without writing output")
    @click.pass_obj
    def command(config: PipelineConfig, dry_run: bool):
        _run_pipeline(pipeline_cls, config, dry_run)


for _name, _pipeline_cls in PIPELINES.items():
    _register(_name, _pipeline_cls)


@main.command(name="run-all")
@click.option("--dry-run", is_flag=True, help="Run without writing output")
@click.pass_obj
def run_all(config: PipelineConfig, dry_run: bool):
    """Run every pipeline in turn, stopping at the first failure."""
    for pipeline_cls in PIPELINES.values():
        _run_pipeline(pipeline_cls, config, dry_run)


@main.command(name="download-ipeds")
@click.option("--year", "years", type=int, multiple=True, required=True, help="Collection year (repeatable)")
@click.option("--directory-year", type=int, help="Year of the HD directory file (default: latest --year)")
@click.option("--overwrite", is_flag=True, help="Re-download existing files")
@click.pass_obj
def download_ipeds(config: PipelineConfig, years, directory_year, overwrite):
    """Download IPEDS enrollment, completions and directory files."""
    extracted = download_pipeline_sources(
        config.raw_dir,
        years=years,
        directory_year=directory_year,
        overwrite=overwrite,
    )
    click.echo(f"\nExtracted {len(extracted)} files into {config.raw_dir}")
    for path in extracted:
        click.echo(f"  {path.name}")


if __name__ == "__main__":
    main()
