"""
Plan configuration store.

The document lives in a JSON file shaped like:

    {
      "development": {"plans": {"<plan_key>": {..., "variations": {...}}}},
      "production":  {"plans": {...}}
    }

Reads never raise: a missing or malformed file behaves like the empty default
document. Updates are read-modify-write of the whole file with no locking, so
only one writer (setup tooling) should touch a given path at a time.
"""
import json
import logging
from pathlib import Path
from typing import Any, NamedTuple

from square_billing.core.config import settings
from square_billing.core.errors import PlanConfigExistsError, PlanConfigWriteError

logger = logging.getLogger(__name__)

DEVELOPMENT = "development"
PRODUCTION = "production"

_PRODUCTION_MODES = ("prod", "production")


class UnconfiguredItems(NamedTuple):
    # [(plan_key, plan)]
    base_plans: list[tuple[str, dict[str, Any]]]
    # [(plan_key, variation_key, variation, base_plan_id or None)]
    variations: list[tuple[str, str, dict[str, Any], str | None]]


# ---------------------------
# environment / keys
# ---------------------------

def current_environment() -> str:
    mode = (settings.app_env or "").strip().lower()
    if mode in _PRODUCTION_MODES:
        return PRODUCTION
    # dev, test, staging and anything unknown read the development catalog
    return DEVELOPMENT


def _env(env: str | None) -> str:
    return env or current_environment()


def _key(value: Any) -> str:
    # Enum members (e.g. a PlanKey enum) coerce to their value
    value = getattr(value, "value", value)
    return str(value)


def default_config() -> dict[str, Any]:
    return {
        DEVELOPMENT: {"plans": {}},
        PRODUCTION: {"plans": {}},
    }


# ---------------------------
# load / save
# ---------------------------

def load_config(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return default_config()

    try:
        config = json.loads(content)
    except ValueError:
        logger.debug("Plan configuration %s is not valid JSON; using defaults", path)
        return default_config()

    if not isinstance(config, dict):
        logger.debug("Plan configuration %s has a non-object root; using defaults", path)
        return default_config()
    return config


def save_config(path: str | Path, config: dict[str, Any]) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise PlanConfigWriteError(path, e) from e


def init_config(path: str | Path) -> Path:
    """
    Create the default document at `path`.
    Raises PlanConfigExistsError if anything already exists there.
    """
    path = Path(path)
    if path.exists():
        raise PlanConfigExistsError(path)

    save_config(path, default_config())
    return path


# ---------------------------
# reads
# ---------------------------

def _section(config: dict[str, Any], env: str, name: str) -> dict[str, Any]:
    environment = config.get(env)
    if not isinstance(environment, dict):
        return {}
    section = environment.get(name)
    return section if isinstance(section, dict) else {}


def get_plans(path: str | Path, env: str | None = None) -> dict[str, Any]:
    return _section(load_config(path), _env(env), "plans")


def get_plan(path: str | Path, plan_key: Any, env: str | None = None) -> dict[str, Any] | None:
    return get_plans(path, env).get(_key(plan_key))


def get_variation(path: str | Path, plan_key: Any, variation_key: Any, env: str | None = None) -> dict[str, Any] | None:
    plan = get_plan(path, plan_key, env)
    if not isinstance(plan, dict):
        return None
    variations = plan.get("variations")
    if not isinstance(variations, dict):
        return None
    return variations.get(_key(variation_key))


def get_variation_id(path: str | Path, plan_key: Any, variation_key: Any, env: str | None = None) -> str | None:
    variation = get_variation(path, plan_key, variation_key, env)
    if not isinstance(variation, dict):
        return None
    return variation.get("variation_id")


def get_one_time_purchases(path: str | Path, env: str | None = None) -> dict[str, Any]:
    return _section(load_config(path), _env(env), "one_time_purchases")


def get_one_time_purchase(path: str | Path, purchase_key: Any, env: str | None = None) -> dict[str, Any] | None:
    return get_one_time_purchases(path, env).get(_key(purchase_key))


# ---------------------------
# idempotent updates
# ---------------------------

def _ensure_dict(parent: dict[str, Any], key: str) -> dict[str, Any]:
    child = parent.get(key)
    if not isinstance(child, dict):
        child = {}
        parent[key] = child
    return child


def _ensure_plan(config: dict[str, Any], env: str, plan_key: str) -> dict[str, Any]:
    environment = _ensure_dict(config, env)
    plans = _ensure_dict(environment, "plans")
    return _ensure_dict(plans, plan_key)


def update_base_plan_id(path: str | Path, plan_key: Any, base_plan_id: str | None, env: str | None = None) -> None:
    """Set (or clear, with None) the Square base plan id, keeping every other field."""
    config = load_config(path)
    plan = _ensure_plan(config, _env(env), _key(plan_key))
    plan["base_plan_id"] = base_plan_id
    save_config(path, config)


def update_variation_id(
    path: str | Path,
    plan_key: Any,
    variation_key: Any,
    variation_id: str | None,
    env: str | None = None,
) -> None:
    config = load_config(path)
    plan = _ensure_plan(config, _env(env), _key(plan_key))
    variations = _ensure_dict(plan, "variations")
    variation = _ensure_dict(variations, _key(variation_key))
    variation["variation_id"] = variation_id
    save_config(path, config)


# ---------------------------
# configuration status
# ---------------------------

def _variations(plan: Any) -> dict[str, Any]:
    if not isinstance(plan, dict):
        return {}
    variations = plan.get("variations")
    return variations if isinstance(variations, dict) else {}


def all_configured(path: str | Path, env: str | None = None) -> bool:
    for plan in get_plans(path, env).values():
        if not isinstance(plan, dict) or plan.get("base_plan_id") is None:
            return False
        for variation in _variations(plan).values():
            if not isinstance(variation, dict) or variation.get("variation_id") is None:
                return False
    return True


def unconfigured_items(path: str | Path, env: str | None = None) -> UnconfiguredItems:
    """Base plans and variations that still have to be created in Square."""
    base_plans = []
    variations = []

    for plan_key, plan in get_plans(path, env).items():
        base_plan_id = plan.get("base_plan_id") if isinstance(plan, dict) else None
        if base_plan_id is None:
            base_plans.append((plan_key, plan))

        for variation_key, variation in _variations(plan).items():
            variation_id = variation.get("variation_id") if isinstance(variation, dict) else None
            if variation_id is None:
                variations.append((plan_key, variation_key, variation, base_plan_id))

    return UnconfiguredItems(base_plans=base_plans, variations=variations)
