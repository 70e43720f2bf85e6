import logging
from typing import Generator

from fastapi import Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from square_billing.core.config import settings
from square_billing.db.session import get_db
from square_billing.db.subscriptions import SqlSubscriptionStore
from square_billing.integrations.square_client import SquareClient
from square_billing.models.subscription import Subscription
from square_billing.plans import store
from square_billing.schemas.plans import PlanPricing, PriceTable, build_price_table
from square_billing.subscriptions.refunds import ProrationEngine
from square_billing.subscriptions.sync import SubscriptionSyncEngine

logger = logging.getLogger(__name__)


def get_plans_path() -> str:
    return settings.plans_config_path


def get_square_client() -> Generator[SquareClient, None, None]:
    try:
        client = SquareClient()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))
    try:
        yield client
    finally:
        client.close()


def get_subscription_store(db: Session = Depends(get_db)) -> SqlSubscriptionStore:
    return SqlSubscriptionStore(db)


def get_sync_engine(
    client: SquareClient = Depends(get_square_client),
    subscriptions: SqlSubscriptionStore = Depends(get_subscription_store),
) -> SubscriptionSyncEngine:
    return SubscriptionSyncEngine(lookup=client.get_subscription, persist=subscriptions)


def get_proration_engine(client: SquareClient = Depends(get_square_client)) -> ProrationEngine:
    return ProrationEngine(refund_payment=client.refund_payment)


def get_price_table(plans_path: str = Depends(get_plans_path)) -> PriceTable:
    """Prices derived from the plan document, overridden by settings.refund_plans."""
    table = build_price_table(
        store.get_plans(plans_path),
        store.get_one_time_purchases(plans_path),
    )
    for plan_id, pricing in settings.refund_plans.items():
        try:
            table[plan_id] = PlanPricing.model_validate(pricing)
        except ValidationError as e:
            logger.warning("Ignoring refund_plans entry %s: %s", plan_id, e)
    return table


def get_subscription_or_404(
    subscription_id: int,
    db: Session = Depends(get_db),
) -> Subscription:
    subscription = db.get(Subscription, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription
