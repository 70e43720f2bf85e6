from fastapi import APIRouter, Depends

from square_billing.api.deps import get_plans_path
from square_billing.plans import store
from square_billing.schemas.billing import (
    PlanOut,
    PlanStatusOut,
    UnconfiguredBasePlanOut,
    UnconfiguredVariationOut,
)
from square_billing.schemas.plans import entry_name, format_price, parse_plan

router = APIRouter(prefix="/plans", tags=["plans"])

# Display sellable variations for the current environment, cheapest first
@router.get("", response_model=list[PlanOut])
def list_plans(plans_path: str = Depends(get_plans_path)):
    out = []
    for plan_key, raw_plan in store.get_plans(plans_path).items():
        plan = parse_plan(plan_key, raw_plan or {})
        if plan is None:
            continue
        for variation_key, variation in plan.variations.items():
            cadence = variation.cadence.value if variation.cadence else None
            out.append(PlanOut(
                id=f"{plan_key}_{variation_key}",
                plan_key=plan_key,
                variation_key=variation_key,
                name=" ".join(n for n in (plan.name, variation.name) if n) or f"{plan_key} {variation_key}",
                price=format_price(variation.amount, cadence, variation.currency) if variation.amount is not None else "",
                price_cents=variation.amount,
                cadence=cadence,
                currency=variation.currency,
                base_plan_id=plan.base_plan_id,
                variation_id=variation.variation_id,
            ))
    return sorted(out, key=lambda p: (p.price_cents is None, p.price_cents or 0, p.id))

# What still has to be created in Square
@router.get("/status", response_model=PlanStatusOut)
def plan_status(plans_path: str = Depends(get_plans_path)):
    items = store.unconfigured_items(plans_path)
    return PlanStatusOut(
        environment=store.current_environment(),
        all_configured=store.all_configured(plans_path),
        base_plans=[
            UnconfiguredBasePlanOut(plan_key=key, name=entry_name(plan))
            for key, plan in items.base_plans
        ],
        variations=[
            UnconfiguredVariationOut(
                plan_key=plan_key,
                variation_key=variation_key,
                name=entry_name(variation),
                base_plan_id=base_plan_id,
            )
            for plan_key, variation_key, variation, base_plan_id in items.variations
        ],
    )
