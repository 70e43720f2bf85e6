import argparse

from square_billing.core.config import settings
from square_billing.plans import store
from square_billing.schemas.plans import entry_name, format_price


def _describe(config_path: str) -> list[str]:
    lines = []
    for plan_key, plan in store.get_plans(config_path).items():
        if not isinstance(plan, dict):
            lines.append(f"{plan_key}: malformed entry, skipped")
            continue
        lines.append(f"{plan.get('name') or plan_key} ({plan_key})")
        lines.append(f"   Base plan ID: {plan.get('base_plan_id') or 'NOT CREATED'}")
        variations = plan.get("variations")
        for variation_key, variation in (variations if isinstance(variations, dict) else {}).items():
            if not isinstance(variation, dict):
                lines.append(f"   - {variation_key}: malformed entry, skipped")
                continue
            amount = variation.get("amount")
            price = format_price(amount, variation.get("cadence"), variation.get("currency") or "USD") if isinstance(amount, int) else "?"
            lines.append(
                f"   - {variation.get('name') or variation_key} ({variation_key}): {price}"
                f" -> {variation.get('variation_id') or 'NOT CREATED'}"
            )
    return lines


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="List configured Square plans and their status")
    parser.add_argument("--config", default=settings.plans_config_path, help="Path to the plans JSON file")
    args = parser.parse_args(argv)

    print("Square Subscription Plans Configuration")
    print("=" * 50)
    print("Environment:", store.current_environment())

    if not store.get_plans(args.config):
        print("No plans configured.")
        print("Initialize a config file with: square-init-plans")
        return 0

    if store.all_configured(args.config):
        print("All plans and variations are configured in Square\n")
    else:
        print("Some items need to be created in Square\n")

    for line in _describe(args.config):
        print(line)

    items = store.unconfigured_items(args.config)
    if items.base_plans or items.variations:
        print("\n" + "-" * 50)
        print("Items needing creation:")
        for plan_key, plan in items.base_plans:
            print(f"   base plan {plan_key}: {entry_name(plan)}")
        for plan_key, variation_key, variation, base_plan_id in items.variations:
            parent = base_plan_id or "base plan pending"
            print(f"   variation {plan_key}.{variation_key}: {entry_name(variation)} ({parent})")
        print("\nRun 'square-setup-plans' to create them.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
