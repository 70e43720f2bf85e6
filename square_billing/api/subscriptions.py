from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from square_billing.api.deps import (
    get_price_table,
    get_proration_engine,
    get_subscription_or_404,
    get_sync_engine,
)
from square_billing.core.config import settings
from square_billing.core.errors import PersistenceError
from square_billing.models.subscription import Subscription
from square_billing.schemas.plans import PriceTable
from square_billing.schemas.subscriptions import (
    PlanChangeRefundIn,
    RefundInfoOut,
    RefundQuoteOut,
    SubscriptionOut,
)
from square_billing.subscriptions.constants import to_internal_status
from square_billing.subscriptions.refunds import DEFAULT_REFUND_REASON, ProrationEngine, RefundInfo
from square_billing.subscriptions.sync import SubscriptionSyncEngine

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _subscription_out(subscription: Subscription) -> SubscriptionOut:
    return SubscriptionOut(
        id=subscription.id,
        plan_id=subscription.plan_id,
        status=subscription.status,
        internal_status=to_internal_status(subscription.status),
        square_subscription_id=subscription.square_subscription_id,
        started_at=subscription.started_at,
        canceled_at=subscription.canceled_at,
        next_billing_at=subscription.next_billing_at,
    )

# Refresh the local copy from Square
@router.post("/{subscription_id}/sync", response_model=SubscriptionOut)
def sync_subscription(
    force: bool = False,
    subscription: Subscription = Depends(get_subscription_or_404),
    engine: SubscriptionSyncEngine = Depends(get_sync_engine),
):
    if not force and not engine.should_sync(subscription):
        return _subscription_out(subscription)

    try:
        subscription = engine.sync_from_square(subscription)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=f"Could not save subscription: {e}")
    return _subscription_out(subscription)

# Prorated refund the user would get by leaving the current plan now
@router.get("/{subscription_id}/refund-quote", response_model=RefundQuoteOut)
def refund_quote(
    subscription: Subscription = Depends(get_subscription_or_404),
    price_table: PriceTable = Depends(get_price_table),
):
    info = ProrationEngine(refund_payment=None).quote(subscription, price_table)
    return _refund_out(subscription, info)

# Issue the prorated refund when the user leaves the current plan (upgrade / cancel)
@router.post("/{subscription_id}/plan-change-refund", response_model=RefundQuoteOut)
def plan_change_refund(
    payload: PlanChangeRefundIn,
    subscription: Subscription = Depends(get_subscription_or_404),
    engine: ProrationEngine = Depends(get_proration_engine),
    price_table: PriceTable = Depends(get_price_table),
):
    reason = payload.reason or DEFAULT_REFUND_REASON
    info = engine.refund_for_plan_change(
        subscription,
        price_table,
        reason=reason,
        currency=settings.refund_currency,
    )
    return _refund_out(subscription, info)


def _refund_out(subscription: Subscription, info: RefundInfo | None) -> RefundQuoteOut:
    return RefundQuoteOut(
        subscription_id=subscription.id,
        refund=RefundInfoOut(**asdict(info)) if info else None,
    )
