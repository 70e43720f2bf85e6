import argparse

from square_billing.core.config import settings
from square_billing.core.errors import PlanConfigExistsError
from square_billing.plans import store


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize a Square plans configuration file")
    parser.add_argument("--config", default=settings.plans_config_path, help="Path to the plans JSON file")
    args = parser.parse_args(argv)

    try:
        path = store.init_config(args.config)
    except PlanConfigExistsError as e:
        print("Configuration file already exists:", e.path)
        print("Use 'square-list-plans' to view the current configuration")
        return 1

    print("Created configuration file:", path)
    print("Next steps:")
    print(f"1. Edit {path} to define plans under development.plans / production.plans")
    print("2. Run 'square-setup-plans' to create them in Square")
    print("3. Commit the configuration file to version control")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
