import json

from square_billing.core.config import settings
from square_billing.core.errors import CatalogError
from square_billing.plans import store
from square_billing.scripts import init_plans, list_plans
from square_billing.scripts import setup_plans as setup_plans_script
from square_billing.scripts.setup_plans import setup_plans


class FakeCatalog:
    def __init__(self, fail_variations=()):
        self.fail_variations = set(fail_variations)
        self.base_plans = []
        self.variations = []

    def create_base_plan(self, name, description=None):
        self.base_plans.append((name, description))
        return f"PLAN_{len(self.base_plans)}"

    def create_plan_variation(self, base_plan_id, name, cadence, amount, currency="USD"):
        if name in self.fail_variations:
            raise CatalogError(f"{name} rejected", 400)
        self.variations.append((base_plan_id, name, cadence, amount, currency))
        return f"VAR_{len(self.variations)}"


def write_plans(path, plans):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"development": {"plans": plans}, "production": {"plans": {}}}))


PLANS = {
    "premium": {
        "name": "Premium",
        "description": "Power users",
        "base_plan_id": None,
        "variations": {
            "monthly": {"name": "Monthly", "amount": 999, "cadence": "MONTHLY", "variation_id": None},
            "yearly": {"name": "Annual", "amount": 9900, "cadence": "ANNUAL", "variation_id": None},
        },
    }
}


def test_setup_creates_everything_and_records_ids(plans_path, capsys):
    write_plans(plans_path, PLANS)
    catalog = FakeCatalog()

    report = setup_plans(plans_path, catalog)

    assert report.created_base_plans == ["premium"]
    assert report.created_variations == [("premium", "monthly"), ("premium", "yearly")]
    assert report.failures == []
    assert catalog.variations[0] == ("PLAN_1", "Monthly", "MONTHLY", 999, "USD")
    assert store.get_plan(plans_path, "premium")["base_plan_id"] == "PLAN_1"
    assert store.get_variation_id(plans_path, "premium", "yearly") == "VAR_2"
    assert store.all_configured(plans_path) is True
    assert "Created base plan: PLAN_1" in capsys.readouterr().out


def test_setup_skips_existing_ids(plans_path):
    plans = json.loads(json.dumps(PLANS))
    plans["premium"]["base_plan_id"] = "EXISTING"
    plans["premium"]["variations"]["monthly"]["variation_id"] = "VAR_EXISTING"
    write_plans(plans_path, plans)
    catalog = FakeCatalog()

    setup_plans(plans_path, catalog)

    assert catalog.base_plans == []
    assert catalog.variations == [("EXISTING", "Annual", "ANNUAL", 9900, "USD")]
    assert store.get_variation_id(plans_path, "premium", "monthly") == "VAR_EXISTING"


def test_setup_continues_after_failure_and_rerun_finishes(plans_path):
    write_plans(plans_path, PLANS)

    report = setup_plans(plans_path, FakeCatalog(fail_variations={"Monthly"}))

    assert report.failures == ["premium.monthly"]
    assert store.get_variation_id(plans_path, "premium", "monthly") is None
    assert store.get_variation_id(plans_path, "premium", "yearly") == "VAR_1"

    catalog = FakeCatalog()
    report = setup_plans(plans_path, catalog)

    assert catalog.base_plans == []
    assert report.created_variations == [("premium", "monthly")]
    assert store.all_configured(plans_path) is True


def test_init_plans_cli(plans_path, capsys):
    assert init_plans.main(["--config", str(plans_path)]) == 0
    assert plans_path.exists()

    assert init_plans.main(["--config", str(plans_path)]) == 1
    assert "already exists" in capsys.readouterr().out


def test_list_plans_cli(plans_path, capsys):
    write_plans(plans_path, PLANS)

    assert list_plans.main(["--config", str(plans_path)]) == 0

    out = capsys.readouterr().out
    assert "Premium (premium)" in out
    assert "Base plan ID: NOT CREATED" in out
    assert "$9.99/mo" in out
    assert "Items needing creation" in out


def test_list_plans_cli_empty(plans_path, capsys):
    assert list_plans.main(["--config", str(plans_path)]) == 0
    assert "No plans configured" in capsys.readouterr().out


def test_setup_skips_malformed_entries(plans_path):
    plans = json.loads(json.dumps(PLANS))
    plans["premium"]["variations"]["weekly"] = "soon"
    plans["legacy"] = ["retired"]
    write_plans(plans_path, plans)
    catalog = FakeCatalog()

    report = setup_plans(plans_path, catalog)

    assert report.created_base_plans == ["premium"]
    assert report.created_variations == [("premium", "monthly"), ("premium", "yearly")]
    assert sorted(report.failures) == ["legacy", "premium.weekly"]


def test_setup_plans_cli_without_token(plans_path, monkeypatch, capsys):
    write_plans(plans_path, PLANS)
    monkeypatch.setattr(settings, "square_access_token", "")

    assert setup_plans_script.main(["--config", str(plans_path)]) == 1

    out = capsys.readouterr().out
    assert "access token" in out
    assert store.get_plan(plans_path, "premium")["base_plan_id"] is None


def test_list_plans_cli_tolerates_malformed_entries(plans_path, capsys):
    plans = json.loads(json.dumps(PLANS))
    plans["premium"]["variations"]["weekly"] = "soon"
    plans["premium"]["variations"]["daily"] = {"name": 7, "amount": "cheap", "cadence": ["DAILY"]}
    plans["legacy"] = "retired"
    write_plans(plans_path, plans)

    assert list_plans.main(["--config", str(plans_path)]) == 0

    out = capsys.readouterr().out
    assert "legacy: malformed entry, skipped" in out
    assert "weekly: malformed entry, skipped" in out
    assert "Premium (premium)" in out
