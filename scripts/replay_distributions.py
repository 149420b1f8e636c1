#!/usr/bin/env python3
"""
Profit Distribution Replay Script

Replays every recorded sale in sale-date order and shows how each one was
split, the running reinvestment total, and which sold vehicles have no
persisted distribution yet.

With --backfill, missing distributions are created in chronological order.
Creation is idempotent, so the script can be re-run safely.

Usage:
    python scripts/replay_distributions.py
    python scripts/replay_distributions.py --backfill
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.money import ZERO, round_money
from repositories import (
    cost_repository,
    profit_distribution_repository,
    shipment_repository,
    vehicle_repository,
)
from repositories.profit_distribution_repository import ProfitDistributionConflictError
from services.cost_allocation_service import compute_landed_costs
from services.profit_distribution_service import generate_profit_distribution
from services.reinvestment_service import goal_progress, replay_sales


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Replay recorded sales and report or backfill profit distributions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the chronological replay and missing distributions
  python replay_distributions.py

  # Create the missing distributions, oldest sale first
  python replay_distributions.py --backfill
        """
    )

    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Create distributions for sold vehicles that have none"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show service log output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        print("Loading vehicles, costs and shipments...")
        vehicles = vehicle_repository.list_vehicles()
        costs = cost_repository.list_costs()
        shipments = shipment_repository.list_shipments()
        distributed = {d.vehicle_id for d in profit_distribution_repository.list_profit_distributions()}

        steps = replay_sales(vehicles, compute_landed_costs(vehicles, costs, shipments))

        print()
        print("=" * 96)
        print(f"{'Sale date':<12} {'Vehicle':<28} {'Profit':>12} {'Dominick':>11} {'Tony':>11} "
              f"{'Reinvest':>11} {'Phase':<7}")
        print("=" * 96)

        missing = []
        for step in steps:
            split = step.split
            sale_date = step.vehicle.sale_date.date().isoformat() if step.vehicle.sale_date else "undated"
            marker = "" if step.vehicle.vehicle_id in distributed else "  *"
            print(
                f"{sale_date:<12} {step.vehicle.display_name[:28]:<28} "
                f"{round_money(split.gross_profit):>12} {round_money(split.dominick_share):>11} "
                f"{round_money(split.tony_share):>11} {round_money(split.reinvestment_amount):>11} "
                f"{'60/20/20' if split.reinvestment_phase else '50/50':<7}{marker}"
            )
            if step.vehicle.vehicle_id not in distributed:
                missing.append(step.vehicle)

        cumulative = steps[-1].cumulative_after if steps else ZERO
        progress = goal_progress(cumulative)

        print("=" * 96)
        print(f"Recorded sales:          {len(steps)}")
        print(f"Cumulative reinvestment: {round_money(progress.cumulative_reinvestment)} "
              f"of {round_money(progress.goal_amount)} ({round_money(progress.percent)}%)")
        print(f"Missing distributions:   {len(missing)}  (marked *)")

        if not args.backfill or not missing:
            return 0

        print()
        print("Backfilling missing distributions...")
        created = 0
        for vehicle in missing:
            try:
                outcome = generate_profit_distribution(vehicle, vehicles, costs, shipments)
            except ProfitDistributionConflictError:
                print(f"  - {vehicle.display_name}: created concurrently, skipped")
                continue
            except ValueError as e:
                print(f"  ✗ {vehicle.display_name}: {e}")
                continue

            if outcome.created:
                created += 1
                print(f"  ✓ {vehicle.display_name}: {outcome.distribution.distribution_number}")

        print()
        print(f"Created {created} of {len(missing)} missing distributions")
        return 0

    except KeyboardInterrupt:
        print("\n\nReplay interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
