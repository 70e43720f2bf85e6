import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class Cadence(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


# Billing period length used to turn a variation price into a daily rate
CADENCE_DAYS = {
    Cadence.DAILY: 1,
    Cadence.WEEKLY: 7,
    Cadence.MONTHLY: 30,
    Cadence.ANNUAL: 365,
}


class Variation(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    amount: int | None = None
    currency: str = "USD"
    cadence: Cadence | None = None
    variation_id: str | None = None


class Plan(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    description: str | None = None
    base_plan_id: str | None = None
    variations: dict[str, Variation] = Field(default_factory=dict)

    @property
    def is_configured(self) -> bool:
        return self.base_plan_id is not None and all(
            v.variation_id is not None for v in self.variations.values()
        )


class EnvironmentPlans(BaseModel):
    model_config = ConfigDict(extra="allow")

    plans: dict[str, Plan] = Field(default_factory=dict)


class PlanDocument(BaseModel):
    """Typed, read-only view over the plan configuration JSON."""

    model_config = ConfigDict(extra="allow")

    development: EnvironmentPlans = Field(default_factory=EnvironmentPlans)
    production: EnvironmentPlans = Field(default_factory=EnvironmentPlans)

    def plans_for(self, env: str) -> dict[str, Plan]:
        environment = getattr(self, env, None)
        if not isinstance(environment, EnvironmentPlans):
            return {}
        return environment.plans


def entry_name(entry: Any) -> str | None:
    """Display name of a raw plan/variation entry, None when it has no usable one."""
    name = entry.get("name") if isinstance(entry, dict) else None
    return name if isinstance(name, str) else None


def parse_plan(plan_key: str, raw: Any) -> Plan | None:
    """
    Validate one plan entry variation by variation.

    Bad variations are logged and dropped; a plan whose own fields are bad
    (or that is not an object at all) yields None.
    """
    if isinstance(raw, Plan):
        return raw
    if not isinstance(raw, dict):
        logger.warning("Skipping plan %s: expected an object, got %r", plan_key, raw)
        return None

    raw_variations = raw.get("variations")
    if not isinstance(raw_variations, dict):
        raw_variations = {}

    variations = {}
    for variation_key, raw_variation in raw_variations.items():
        try:
            variations[variation_key] = Variation.model_validate(raw_variation or {})
        except ValidationError as e:
            logger.warning("Skipping variation %s.%s: %s", plan_key, variation_key, e)

    try:
        return Plan.model_validate({**raw, "variations": variations})
    except ValidationError as e:
        logger.warning("Skipping plan %s: %s", plan_key, e)
        return None


class PlanPricing(BaseModel):
    price_cents: int = Field(ge=0)
    duration_days: int = Field(gt=0)


PriceTable = dict[str, PlanPricing]


def build_price_table(
    plans: Mapping[str, Any],
    one_time_purchases: Mapping[str, Any] | None = None,
    one_time_prefix: str = "premium",
) -> PriceTable:
    """
    Derive a refund price table from plan configuration.

    Variations are keyed "<plan_key>_<variation_key>" (e.g. "premium_monthly"),
    one-time purchases "<one_time_prefix>_<purchase_key>" (e.g. "premium_week_pass").
    Entries without a usable amount/cadence are skipped, malformed ones with a
    warning.
    """
    table: PriceTable = {}

    for plan_key, raw_plan in (plans or {}).items():
        plan = parse_plan(plan_key, raw_plan or {})
        if plan is None:
            continue
        for variation_key, variation in plan.variations.items():
            if variation.amount is None or variation.cadence is None:
                continue
            try:
                table[f"{plan_key}_{variation_key}"] = PlanPricing(
                    price_cents=variation.amount,
                    duration_days=CADENCE_DAYS[variation.cadence],
                )
            except ValidationError as e:
                logger.warning("Skipping variation %s.%s: %s", plan_key, variation_key, e)

    for purchase_key, purchase in (one_time_purchases or {}).items():
        if not isinstance(purchase, dict):
            logger.warning("Skipping one-time purchase %s: expected an object, got %r", purchase_key, purchase)
            continue
        price = purchase.get("price_cents")
        days = purchase.get("duration_days")
        if price is None or not days:
            continue
        try:
            table[f"{one_time_prefix}_{purchase_key}"] = PlanPricing(price_cents=price, duration_days=days)
        except ValidationError as e:
            logger.warning("Skipping one-time purchase %s: %s", purchase_key, e)

    return table


_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}

_CADENCE_SUFFIX = {
    "WEEKLY": ("/week", " per week"),
    "MONTHLY": ("/mo", " per month"),
    "ANNUAL": ("/yr", " per year"),
    "DAILY": ("/day", " per day"),
}


def format_price(amount: int, cadence: str | None = None, currency: str = "USD", long: bool = False) -> str:
    dollars = (Decimal(amount) / 100).quantize(Decimal("0.01"))
    symbol = _CURRENCY_SYMBOLS.get(currency)
    price = f"{symbol}{dollars}" if symbol else f"{currency} {dollars}"

    if isinstance(cadence, Cadence):
        cadence = cadence.value
    suffix = _CADENCE_SUFFIX.get(cadence) if isinstance(cadence, str) else None
    if not suffix:
        return price
    return price + (suffix[1] if long else suffix[0])
