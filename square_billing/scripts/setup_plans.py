import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from square_billing.core.config import settings
from square_billing.core.errors import CatalogError
from square_billing.core.logging import configure_logging
from square_billing.integrations.square_client import SquareClient
from square_billing.plans import store


class RemoteCatalogCreate(Protocol):
    def create_base_plan(self, name: str, description: str | None = None) -> str: ...

    def create_plan_variation(
        self, base_plan_id: str, name: str, cadence: str, amount: int, currency: str = "USD"
    ) -> str: ...


@dataclass
class SetupReport:
    created_base_plans: list[str] = field(default_factory=list)
    created_variations: list[tuple[str, str]] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


def _ensure_base_plan(path: Path, catalog: RemoteCatalogCreate, plan_key: str, plan: dict[str, Any], report: SetupReport) -> str | None:
    if plan.get("base_plan_id"):
        print(f"   Base plan already exists: {plan['base_plan_id']}")
        return plan["base_plan_id"]

    print("   Creating base plan...")
    try:
        base_plan_id = catalog.create_base_plan(plan.get("name") or plan_key, plan.get("description"))
    except CatalogError as e:
        print(f"   Failed to create base plan: {e}")
        report.failures.append(plan_key)
        return None

    # write each id as soon as we have it so a later failure does not lose it
    store.update_base_plan_id(path, plan_key, base_plan_id)
    report.created_base_plans.append(plan_key)
    print(f"   Created base plan: {base_plan_id}")
    return base_plan_id


def _create_variations(path: Path, catalog: RemoteCatalogCreate, plan_key: str, plan: dict[str, Any], base_plan_id: str, report: SetupReport) -> None:
    variations = plan.get("variations")
    for variation_key, variation in (variations if isinstance(variations, dict) else {}).items():
        if not isinstance(variation, dict):
            print(f"   Skipping variation {variation_key}: not an object")
            report.failures.append(f"{plan_key}.{variation_key}")
            continue
        name = variation.get("name") or variation_key
        if variation.get("variation_id"):
            print(f"   Variation '{name}' already exists: {variation['variation_id']}")
            continue

        print(f"   Creating variation: {name}")
        try:
            variation_id = catalog.create_plan_variation(
                base_plan_id,
                name,
                variation.get("cadence"),
                variation.get("amount"),
                variation.get("currency") or "USD",
            )
        except CatalogError as e:
            print(f"   Failed to create variation: {e}")
            report.failures.append(f"{plan_key}.{variation_key}")
            continue

        store.update_variation_id(path, plan_key, variation_key, variation_id)
        report.created_variations.append((plan_key, variation_key))
        print(f"   Created variation: {variation_id}")


def setup_plans(path: str | Path, catalog: RemoteCatalogCreate) -> SetupReport:
    """
    Create every missing base plan and variation in Square and record the ids.
    Individual failures are reported and skipped; re-running picks them up.
    """
    path = Path(path)
    report = SetupReport()

    for plan_key, plan in store.get_plans(path).items():
        if not isinstance(plan, dict):
            print(f"Skipping plan {plan_key}: not an object")
            report.failures.append(plan_key)
            continue
        print(f"Processing plan: {plan.get('name') or plan_key}")
        base_plan_id = _ensure_base_plan(path, catalog, plan_key, plan, report)
        if base_plan_id:
            _create_variations(path, catalog, plan_key, plan, base_plan_id, report)
        print("")

    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create subscription plans and variations in Square")
    parser.add_argument("--config", default=settings.plans_config_path, help="Path to the plans JSON file")
    args = parser.parse_args(argv)

    configure_logging()

    if not store.get_plans(args.config):
        print(f"No plans configured in {args.config} ({store.current_environment()})")
        print("Initialize a config file with: square-init-plans")
        return 1

    print("Setting up Square subscription plans (base plans with variations)\n")
    try:
        client = SquareClient()
    except ValueError as e:
        print("Error:", e)
        print("Set SQUARE_ACCESS_TOKEN in the environment or .env file")
        return 1

    with client:
        report = setup_plans(args.config, client)

    if report.failures:
        print("Setup finished with failures:", ", ".join(report.failures))
        return 1

    print("Setup complete!")
    print("Next steps:")
    print("1. Verify plans: square-list-plans")
    print("2. Commit the updated configuration to version control")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
