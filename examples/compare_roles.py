#!/usr/bin/env python3
"""
Role Comparison Demo for fireplan.

Runs the full analysis for the example scenario once per responding
organization and prints how the plans differ:

1. Load the scenario file
2. Run the pipeline for every organization role
3. Compare strategies, routes, water sources and resource needs

Usage:
    python examples/compare_roles.py [scenario.yaml]
"""

import logging
import sys
from pathlib import Path

from fireplan.io import read_scenario
from fireplan.models import OrganizationRole
from fireplan.pipeline import FireAnalysisPipeline
from fireplan.providers import StaticFacilityProvider, StaticSnapshotProvider

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)


def main(path: Path):
    scenario = read_scenario(path)
    pipeline = FireAnalysisPipeline(
        snapshot_provider=StaticSnapshotProvider(scenario.snapshot),
        facility_provider=StaticFacilityProvider(),
    )

    print("=" * 60)
    print(f"ROLE COMPARISON: {scenario.name}")
    print("=" * 60)

    for role in OrganizationRole:
        analysis = pipeline.analyze(scenario.observation, role, scenario.zone)
        plan = analysis.plan
        needs = plan.resource_needs

        print(f"\n{role.value}")
        print(f"  Strategy:        {plan.primary_strategy}")
        print(f"  Routes:          {len(plan.entry_routes)} entry, {len(plan.evacuation_routes)} evacuation")
        print(f"  Water sources:   {len(plan.water_sources)}")
        print(f"  Civilian areas:  {', '.join(a.type for a in plan.civilian_areas) or '-'}")
        print(
            f"  Resources:       {needs.ground_crews} crews, {needs.aircraft} aircraft, "
            f"{needs.medical_units} medical, {needs.patrol_units} patrol"
        )
        print(f"  Confidence:      {plan.confidence:.2f}")

    top = analysis.strategies[0]
    print("\n" + "=" * 60)
    print(f"Top strategy for all roles: {top.name} (priority {top.priority})")
    print("=" * 60)


if __name__ == "__main__":
    default = Path(__file__).parent / "scenario.yaml"
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else default)
