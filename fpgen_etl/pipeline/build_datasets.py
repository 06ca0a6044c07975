#!/usr/bin/env python3
"""
Build Datasets Stage
Turns a capture dataset into trained generator network definitions

This stage:
- Loads the capture dataset and the robot user-agent list
- Filters records (user-agent consistency, screen plausibility, robots)
- Encodes fingerprint values / derives browser, OS and device labels
- Reconciles the attribute schema across records
- Projects records onto the network's declared attributes
- Trains the network and saves its definition (plus the browser helper file
  for the header build)
- Saves a build report in etl_metadata/<build>/

Artifacts of a build are written only after training succeeds.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Pattern, Sequence

from fpgen_etl.pipeline.attribute_deriver import AttributeDeriver
from fpgen_etl.pipeline.constants import (
    BROWSER_HTTP_NODE_NAME,
    FINGERPRINTS_PATH,
    HEADERS_PATH,
    MISSING_VALUE_DATASET_TOKEN,
)
from fpgen_etl.pipeline.record_filter import RecordFilter, load_capture_records
from fpgen_etl.pipeline.schema_reconciler import SchemaReconciler
from fpgen_etl.pipeline.value_encoder import ValueEncoder
from fpgen_etl.utils.bayesian_network import BayesianNetwork
from fpgen_etl.utils.config_manager import get_dir
from fpgen_etl.utils.robot_list import (
    DEFAULT_ROBOTS_LIST_URL,
    fetch_robot_patterns,
    load_robot_patterns_file,
)

logger = logging.getLogger(__name__)


def write_json(path: Path, payload: Any, **dump_kwargs) -> Path:
    """Write JSON to a temp file and move it into place, so no partial file is left"""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(payload, f, **dump_kwargs)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


class DatasetBuilder:
    """Common build flow; subclasses choose the path, network and extras"""

    name: str = ""
    path: str = HEADERS_PATH
    structure_file: str = ""
    definition_file: str = ""

    # Producers of columns computed after projection (see AttributeDeriver)
    synthetic_producers: Sequence[Any] = ()

    def __init__(
        self,
        version_id: str,
        config: Dict[str, Any],
        dry_run: bool = False,
        local_only: bool = False,
    ):
        self.version_id = version_id
        self.config = config
        self.dry_run = dry_run
        self.local_only = local_only

        self.structures_dir = Path(config.get("NETWORK_STRUCTURES_DIR", "network_structures"))
        self.filter_report: Dict[str, Any] = {}
        self.schema: List[str] = []
        self.artifacts: List[Path] = []
        self.stats = {
            "input_records": 0,
            "accepted_records": 0,
            "training_records": 0,
            "schema_attributes": 0,
            "declared_attributes": 0,
        }

    def load_robot_patterns(self) -> List[Pattern]:
        """Fresh robot list for every build"""
        if self.local_only:
            return load_robot_patterns_file(
                Path(self.config.get("ROBOTS_LIST_FILE", "data/COUNTER_Robots_list.json"))
            )
        return fetch_robot_patterns(
            self.config.get("ROBOTS_LIST_URL", DEFAULT_ROBOTS_LIST_URL),
            timeout=self.config.get("ROBOTS_REQUEST_TIMEOUT"),
        )

    def encode(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return records

    def prepare_records(
        self, raw_records: Sequence[Dict[str, Any]], robot_patterns: Sequence[Pattern]
    ) -> List[Dict[str, Any]]:
        """Filter, encode and reconcile raw capture records"""
        record_filter = RecordFilter(robot_patterns, self.path)
        records = record_filter.filter_records(raw_records)
        self.filter_report = record_filter.get_report()

        records = self.encode(records)

        reconciler = SchemaReconciler()
        reconciled = reconciler.reconcile(records)
        self.schema = reconciler.schema
        return reconciled

    def desired_attributes(self, declared: Sequence[str]) -> List[str]:
        """Declared attributes minus those the synthetic producers fill in"""
        synthetic = {
            attribute
            for producer in self.synthetic_producers
            for attribute in producer.produces
        }
        return [attribute for attribute in declared if attribute not in synthetic]

    def select_records(
        self, records: Sequence[Dict[str, Any]], declared: Sequence[str]
    ) -> List[Dict[str, str]]:
        """Project onto the desired attributes, then merge in the synthetic columns"""
        desired = self.desired_attributes(declared)

        selected = []
        for record in records:
            projected = {}
            for attribute in desired:
                value = record.get(attribute)
                projected[attribute] = MISSING_VALUE_DATASET_TOKEN if value is None else value

            for producer in self.synthetic_producers:
                projected.update(producer.derive(record))
            selected.append(projected)

        return selected

    def write_auxiliary_artifacts(
        self, results_dir: Path, records: Sequence[Dict[str, str]]
    ) -> List[Path]:
        return []

    def persist(
        self, network: BayesianNetwork, results_dir: Path, records: Sequence[Dict[str, str]]
    ) -> Path:
        """Save the definition, extras and build report, removing them all if any write fails"""
        definition_path = results_dir / self.definition_file
        written: List[Path] = []
        try:
            network.save_network_definition(definition_path)
            written.append(definition_path)
            written.extend(self.write_auxiliary_artifacts(results_dir, records))
            self.artifacts = list(written)
            written.append(self.write_build_report(results_dir))
        except Exception:
            for path in written:
                path.unlink(missing_ok=True)
            self.artifacts = []
            raise

        return definition_path

    def write_build_report(self, results_dir: Path) -> Path:
        artifacts_dir = Path(self.config.get("ARTIFACTS_DIR", "artifacts")) / self.version_id
        metadata_dir = artifacts_dir / "etl_metadata" / self.name

        report = {
            "version_id": self.version_id,
            "build": self.name,
            "timestamp": datetime.now().isoformat(),
            "results_dir": str(results_dir),
            "artifacts": [str(path) for path in self.artifacts],
            "summary": self.stats,
            "schema": self.schema,
            "filtering": self.filter_report,
        }
        return write_json(metadata_dir / "build_report.json", report, indent=2)

    def run(self, dataset_path: Path, results_dir: Path) -> Path:
        """Execute the build; returns the network definition path"""
        logger.info(f"Starting {self.name} build for version {self.version_id}")
        logger.info(f"Dataset: {dataset_path}")

        raw_records = load_capture_records(dataset_path)
        self.stats["input_records"] = len(raw_records)

        robot_patterns = self.load_robot_patterns()
        records = self.prepare_records(raw_records, robot_patterns)
        self.stats["accepted_records"] = len(records)
        self.stats["schema_attributes"] = len(self.schema)
        if not records:
            raise ValueError(f"No records left for the {self.name} build after filtering")

        network = BayesianNetwork(self.structures_dir / self.structure_file)
        declared = network.node_names
        self.stats["declared_attributes"] = len(declared)

        selected = self.select_records(records, declared)
        self.stats["training_records"] = len(selected)

        definition_path = results_dir / self.definition_file
        if self.dry_run:
            logger.info(
                f"[DRY RUN] Would train {self.structure_file} on {len(selected)} records "
                f"and write {definition_path}"
            )
            return definition_path

        logger.info(f"Building the {self.name} network...")
        network.set_probabilities_according_to_data(selected)
        definition_path = self.persist(network, results_dir, selected)

        logger.info(f"  Input records: {self.stats['input_records']}")
        logger.info(f"  Training records: {self.stats['training_records']}")
        logger.info(f"  Network definition: {definition_path}")
        return definition_path


class InputDatasetBuilder(DatasetBuilder):
    """Header-path records with derived browser/OS/device columns"""

    name = "input"
    path = HEADERS_PATH
    structure_file = "input-network-structure.zip"
    definition_file = "input-network-definition.zip"
    synthetic_producers = (AttributeDeriver(),)


class HeaderDatasetBuilder(InputDatasetBuilder):
    """Input build plus the browser helper file"""

    name = "headers"
    structure_file = "header-network-structure.zip"
    definition_file = "header-network-definition.zip"
    browser_helper_file = "browser-helper-file.json"

    def write_auxiliary_artifacts(
        self, results_dir: Path, records: Sequence[Dict[str, str]]
    ) -> List[Path]:
        """Distinct browser|http values, so generated headers and fingerprints stay consistent"""
        unique_browsers_and_https = list(
            dict.fromkeys(record[BROWSER_HTTP_NODE_NAME] for record in records)
        )

        helper_path = write_json(results_dir / self.browser_helper_file, unique_browsers_and_https)

        logger.info(f"Saved {len(unique_browsers_and_https)} browser/http values to {helper_path}")
        return [helper_path]


class FingerprintDatasetBuilder(DatasetBuilder):
    """Browser-fingerprint records with encoded values"""

    name = "fingerprints"
    path = FINGERPRINTS_PATH
    structure_file = "fingerprint-network-structure.zip"
    definition_file = "fingerprint-network-definition.zip"

    def encode(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        encoder = ValueEncoder(self.config.get("PROGRESS_LOG_INTERVAL", 1000))
        encoded = encoder.encode_records(records)
        logger.debug(f"Encoding stats: {encoder.stats}")
        return encoded


BUILDERS = {
    builder.name: builder
    for builder in (InputDatasetBuilder, HeaderDatasetBuilder, FingerprintDatasetBuilder)
}


def run(
    build_name: str,
    version_id: str,
    config: Dict[str, Any],
    dry_run: bool = False,
    local_only: bool = False,
) -> Path:
    """Entry point for the pipeline orchestrator"""
    if build_name not in BUILDERS:
        raise ValueError(f"Unknown build: {build_name}")

    dataset_path = Path(config.get("INPUT_DATASET", "data/dataset.json"))
    results_dir = get_dir(config, "RESULTS_DIR", version_id)

    builder = BUILDERS[build_name](version_id, config, dry_run, local_only)
    return builder.run(dataset_path, results_dir)


if __name__ == "__main__":
    # For running one build independently
    import click

    from fpgen_etl.utils.config_manager import get_config

    @click.command()
    @click.argument("build_name", type=click.Choice(sorted(BUILDERS)))
    @click.option("--version-id", default="standalone", help="Version ID to use")
    @click.option("--dataset", help="Capture dataset (overrides INPUT_DATASET)")
    @click.option("--local-only", is_flag=True, help="Use the local robot list copy")
    @click.option("--dry-run", is_flag=True, help="Preview without training")
    def main(build_name, version_id, dataset, local_only, dry_run):
        """Run a single network build"""
        logging.basicConfig(level=logging.INFO)

        config = get_config().get_all()
        if dataset:
            config["INPUT_DATASET"] = dataset

        output = run(build_name, version_id, config, dry_run, local_only)
        logger.info(f"Build complete. Output: {output}")

    main()
