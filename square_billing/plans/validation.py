import logging
from pathlib import Path

from square_billing.plans import store

logger = logging.getLogger(__name__)


def validate_plans(path: str | Path, env: str | None = None) -> bool:
    """
    Startup check: log an error for every base plan and variation that has no
    Square id yet in the current environment. Never raises, so the app still
    starts; returns True when everything is configured.
    """
    env = env or store.current_environment()
    items = store.unconfigured_items(path, env)

    if items.base_plans:
        logger.error(
            "Square subscription plans are not configured for %s environment. "
            "Missing base plan IDs for: %s. Run 'square-setup-plans' to create them; "
            "subscription features will not work until then.",
            env,
            ", ".join(plan_key for plan_key, _plan in items.base_plans),
        )

    if items.variations:
        logger.error(
            "Square subscription plan variations are not configured for %s environment. "
            "Missing variation IDs for: %s. Run 'square-setup-plans' to create them.",
            env,
            ", ".join(f"{plan_key}/{variation_key}" for plan_key, variation_key, _v, _b in items.variations),
        )

    return not (items.base_plans or items.variations)
