from pydantic import BaseModel

class PlanOut(BaseModel):
    id: str
    plan_key: str
    variation_key: str
    name: str
    price: str
    price_cents: int | None
    cadence: str | None
    currency: str
    base_plan_id: str | None
    variation_id: str | None

class UnconfiguredBasePlanOut(BaseModel):
    plan_key: str
    name: str | None

class UnconfiguredVariationOut(BaseModel):
    plan_key: str
    variation_key: str
    name: str | None
    base_plan_id: str | None

class PlanStatusOut(BaseModel):
    environment: str
    all_configured: bool
    base_plans: list[UnconfiguredBasePlanOut]
    variations: list[UnconfiguredVariationOut]
