#!/usr/bin/env python3
"""
Main pipeline orchestrator
Runs the input, header and fingerprint network builds in order
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from fpgen_etl.pipeline.build_datasets import BUILDERS
from fpgen_etl.utils.config_manager import get_config, get_dir
from fpgen_etl.utils.logger_config import get_pipeline_logger, setup_pipeline_logging
from fpgen_etl.utils.version_manager import VersionManager

logger = logging.getLogger(__name__)

STAGE_ORDER = ["input", "headers", "fingerprints"]


class Pipeline:
    """Sequential executor for the network builds of one version"""

    def __init__(self, version_id: str, config: Dict[str, Any],
                 dry_run: bool = False, local_only: bool = False,
                 version_manager: Optional[VersionManager] = None):
        self.version_id = version_id
        self.config = config
        self.dry_run = dry_run
        self.local_only = local_only
        self.version_manager = version_manager or VersionManager()

        self.dataset_path = Path(config.get("INPUT_DATASET", "data/dataset.json"))
        self.results_dir = get_dir(config, "RESULTS_DIR", version_id)

        self.completed_stages: List[str] = []
        self.pipeline_stats = {
            "start_time": datetime.now(),
            "stage_times": {},
            "stage_errors": {},
            "stage_outputs": {},
            "training_records": {},
        }

    def run_stage(self, stage_name: str) -> bool:
        """Run one build; failures are logged and recorded, never retried"""
        logger.info(f"{'[DRY RUN] ' if self.dry_run else ''}Running stage: {stage_name}")

        try:
            start_time = datetime.now()

            builder = BUILDERS[stage_name](
                self.version_id, self.config, dry_run=self.dry_run, local_only=self.local_only
            )
            output_path = builder.run(self.dataset_path, self.results_dir)

            duration = (datetime.now() - start_time).total_seconds()
            self.pipeline_stats["stage_times"][stage_name] = duration
            self.pipeline_stats["stage_outputs"][stage_name] = str(output_path)
            self.pipeline_stats["training_records"][stage_name] = builder.stats["training_records"]

            if not self.dry_run:
                self.version_manager.update_stage_info(self.version_id, stage_name, {
                    "output_path": str(output_path),
                    "artifacts": [str(path) for path in builder.artifacts],
                    "stats": builder.stats,
                    "duration_seconds": duration,
                    "completed": True,
                })

            self.completed_stages.append(stage_name)
            logger.info(f"✅ Completed {stage_name} in {duration:.1f}s")
            return True

        except Exception as e:
            logger.error(f"❌ Failed stage {stage_name}: {e}")
            self.pipeline_stats["stage_errors"][stage_name] = str(e)
            get_pipeline_logger().log_error_details(stage_name, e)

            if not self.dry_run:
                self.version_manager.update_stage_info(
                    self.version_id, stage_name, {"completed": False, "error": str(e)}
                )
            return False

    def run_all_stages(self, stages: List[str]) -> bool:
        """Run the requested builds in fixed order, stopping at the first failure"""
        stages_to_run = [s for s in STAGE_ORDER if s in stages]
        logger.info(f"Running builds: {stages_to_run}")

        for stage in stages_to_run:
            if not self.run_stage(stage):
                logger.error(f"Stage '{stage}' failed. Stopping pipeline.")
                return False
        return True

    def get_summary(self) -> Dict[str, Any]:
        total_duration = (datetime.now() - self.pipeline_stats["start_time"]).total_seconds()
        return {
            "version_id": self.version_id,
            "total_duration_seconds": round(total_duration, 2),
            "stages_completed": list(self.completed_stages),
            "stages_failed": list(self.pipeline_stats["stage_errors"]),
            "stage_outputs": dict(self.pipeline_stats["stage_outputs"]),
            "training_records": dict(self.pipeline_stats["training_records"]),
            "stage_times": {k: round(v, 2) for k, v in self.pipeline_stats["stage_times"].items()},
        }

    def print_summary(self):
        summary = self.get_summary()

        click.echo("\n" + "=" * 60)
        click.echo("NETWORK BUILD SUMMARY")
        click.echo("=" * 60)
        click.echo(f"Version: {summary['version_id']}")
        click.echo(f"Total Duration: {summary['total_duration_seconds']} seconds")
        click.echo(f"\nBuilds Completed ({len(summary['stages_completed'])}):")
        for stage in summary["stages_completed"]:
            click.echo(
                f"  ✓ {stage}: {summary['training_records'].get(stage, 0)} records, "
                f"{summary['stage_times'].get(stage, 0)}s -> {summary['stage_outputs'][stage]}"
            )

        if summary["stages_failed"]:
            click.echo(f"\nBuilds Failed ({len(summary['stages_failed'])}):")
            for stage in summary["stages_failed"]:
                click.echo(f"  ✗ {stage}")
                click.echo(f"     Error: {self.pipeline_stats['stage_errors'][stage]}")

        click.echo("=" * 60 + "\n")


@click.command()
@click.option("--stages", "-s", multiple=True, type=click.Choice(STAGE_ORDER),
              help="Builds to run (default: all)")
@click.option("--dataset", type=click.Path(dir_okay=False),
              help="Capture dataset JSON (overrides INPUT_DATASET)")
@click.option("--results-dir", type=click.Path(file_okay=False),
              help="Where network definitions are written (overrides RESULTS_DIR)")
@click.option("--structures-dir", type=click.Path(file_okay=False),
              help="Directory holding the *-network-structure.zip files")
@click.option("--version-id", help="Version to record the run under (default: create new)")
@click.option("--local-only", is_flag=True, default=False,
              help="Read the robot list from ROBOTS_LIST_FILE instead of downloading it")
@click.option("--dry-run", is_flag=True,
              help="Filter and project the data without training or writing artifacts")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
              default="INFO", help="Console logging level")
def main(stages: List[str], dataset: Optional[str], results_dir: Optional[str],
         structures_dir: Optional[str], version_id: Optional[str],
         local_only: bool, dry_run: bool, log_level: str):
    """
    Build the generator network definitions from a capture dataset.

    Each build filters the dataset on its own, fetches the robot list again,
    trains its network and writes the definition only once training succeeded.

    Examples:
        # All builds with the downloaded robot list
        fpgen-etl --dataset data/dataset.json

        # Only the fingerprint network, offline
        fpgen-etl -s fingerprints --local-only
    """
    version_mgr = VersionManager()
    if not version_id:
        version_id = version_mgr.create_version_id()
    if not version_mgr.get_version(version_id):
        version_mgr.register_version(version_id, {"stages": list(stages) or "all"})
        click.echo(f"Registered version: {version_id}")

    config_mgr = get_config()
    config = config_mgr.get_all()

    command_args = {
        "stages": list(stages) or "all",
        "dataset": dataset,
        "results_dir": results_dir,
        "structures_dir": structures_dir,
        "local_only": local_only,
        "dry_run": dry_run,
        "log_level": log_level,
    }
    log_filename = setup_pipeline_logging(
        version_id=version_id,
        script_name="pipeline",
        command_args=command_args,
        log_level=log_level,
        artifacts_dir=config["ARTIFACTS_DIR"],
    )
    logger.info(f"📝 Logging to: {log_filename}")

    # Command line flags win over the environment
    if dataset:
        config["INPUT_DATASET"] = dataset
    if results_dir:
        config["RESULTS_DIR"] = results_dir
    if structures_dir:
        config["NETWORK_STRUCTURES_DIR"] = structures_dir

    click.echo(f"""
Build Configuration:
- Version: {version_id}
- Dataset: {config['INPUT_DATASET']}
- Structures: {config['NETWORK_STRUCTURES_DIR']}
- Robot list: {config['ROBOTS_LIST_FILE'] if local_only else config['ROBOTS_LIST_URL']}
- Builds: {list(stages) if stages else 'all'}
""")
    if dry_run:
        click.echo("🔍 DRY RUN - nothing will be trained or written")
    else:
        config_mgr.save_run_config(version_id, Path(config["ARTIFACTS_DIR"]) / version_id, config)

    pipeline = Pipeline(
        version_id=version_id,
        config=config,
        dry_run=dry_run,
        local_only=local_only,
        version_manager=version_mgr,
    )
    success = pipeline.run_all_stages(list(stages) or STAGE_ORDER)
    pipeline.print_summary()

    logger.info(f"📄 Full execution log: {log_filename}")

    if not success:
        logger.error("❌ Pipeline failed!")
        sys.exit(1)

    logger.info("✅ Pipeline completed successfully!")
    if not dry_run:
        version_mgr.mark_version_complete(version_id, {"stages_run": pipeline.completed_stages})


if __name__ == "__main__":
    main()
