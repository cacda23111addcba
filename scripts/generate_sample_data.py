#!/usr/bin/env python3
"""Generate a sample allocation data set for validation.

Runs the launch exercise scenario and writes every collection as a JSON
document in the output folder (``local/`` by default). The folder can then be
loaded with ``BTO_BACKEND=json BTO_DATA_DIR=<folder>``.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bto_alloc.config import EngineConfig
from bto_alloc.logging import setup_logging
from bto_alloc.repositories.json_file import JsonFileRepository
from bto_alloc.scenarios import LaunchExerciseScenario


def print_summary(summary: dict[str, int], output_dir: Path) -> None:
    """Print generation summary."""
    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    for name, count in summary.items():
        print(f"{name + ':':18}{count}")
    print(f"\nAll files saved to: {output_dir}")
    print("=" * 60)


def main() -> None:
    """Generate all sample data files."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--output-dir", type=Path, default=project_root / "local")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--managers", type=int, default=2)
    parser.add_argument("--staff", type=int, default=6)
    parser.add_argument("--requesters", type=int, default=40)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)

    repository = JsonFileRepository(args.output_dir, pretty=True)
    scenario = LaunchExerciseScenario(
        num_managers=args.managers,
        num_staff=args.staff,
        num_requesters=args.requesters,
        seed=args.seed,
        config=EngineConfig(),
        repository=repository,
    )
    service = scenario.generate()
    print_summary(service.store.summary(), args.output_dir)


if __name__ == "__main__":
    main()
