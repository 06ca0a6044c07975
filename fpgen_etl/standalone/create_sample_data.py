#!/usr/bin/env python3
"""
Create Sample Data for Local Runs
Writes a fake capture dataset, the three network structure files and a small
local robot list, so the whole pipeline can run offline with --local-only
"""

import json
from pathlib import Path

import click

from fpgen_etl.utils.test_data_generator import FakeCaptureGenerator, create_network_structures

SAMPLE_ROBOT_PATTERNS = [
    {"pattern": "Googlebot"},
    {"pattern": "bingbot"},
    {"pattern": "^curl/"},
    {"pattern": "HeadlessChrome"},
]


@click.command()
@click.option("--num-records", type=int, default=500, show_default=True,
              help="Number of capture records to generate")
@click.option("--output-dir", type=click.Path(file_okay=False), default="data",
              show_default=True, help="Where the dataset and robot list are written")
@click.option("--structures-dir", type=click.Path(file_okay=False),
              default="network_structures", show_default=True,
              help="Where the network structure files are written")
@click.option("--seed", type=int, default=None, help="Random seed for reproducible data")
def main(num_records: int, output_dir: str, structures_dir: str, seed: int):
    """Create sample data for local pipeline runs"""
    output_dir = Path(output_dir)
    generator = FakeCaptureGenerator(seed)

    records = generator.generate_dataset(num_records)
    dataset_path = generator.write_dataset(output_dir / "dataset.json", records)
    click.echo(f"📁 Wrote {len(records)} capture records to {dataset_path}")

    robots_path = output_dir / "COUNTER_Robots_list.json"
    with open(robots_path, "w") as f:
        json.dump(SAMPLE_ROBOT_PATTERNS, f, indent=2)
    click.echo(f"🤖 Wrote {len(SAMPLE_ROBOT_PATTERNS)} robot patterns to {robots_path}")

    for name, path in create_network_structures(Path(structures_dir)).items():
        click.echo(f"🧩 Wrote {name} network structure to {path}")

    click.echo("\n🚀 To build the networks from this data, run:")
    click.echo(f"   fpgen-etl --dataset {dataset_path} --structures-dir {structures_dir} --local-only")


if __name__ == "__main__":
    main()
