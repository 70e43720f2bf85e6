"""
Prorated refunds for plan changes.

Pricing comes from a price table keyed by Subscription.plan_id:

    {
        "premium_week_pass": PlanPricing(price_cents=499, duration_days=7),
        "premium_monthly": {"price_cents": 999, "duration_days": 30},
    }

Refund failures are logged and swallowed: an upgrade or cancellation must
never fail because Square refused a refund.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from square_billing.core.errors import BillingError
from square_billing.integrations.square_client import RemotePaymentRefund
from square_billing.schemas.plans import PlanPricing
from square_billing.subscriptions.constants import SQUARE_ACTIVE
from square_billing.utils.dt import as_utc_aware, utc_now

logger = logging.getLogger(__name__)

DEFAULT_REFUND_REASON = "Prorated refund for subscription upgrade"

REFUND_PROCESSED = "processed"
REFUND_PENDING = "pending"


@dataclass(frozen=True)
class RefundInfo:
    refund_amount: int
    remaining_days: int
    refund_message: str
    refund_status: str


def _pricing(entry: Any) -> PlanPricing | None:
    if entry is None:
        return None
    if isinstance(entry, PlanPricing):
        return entry
    try:
        return PlanPricing.model_validate(entry)
    except ValidationError as e:
        logger.warning("Ignoring malformed refund pricing %r: %s", entry, e)
        return None


class ProrationEngine:
    def __init__(
        self,
        refund_payment: RemotePaymentRefund | None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.refund_payment = refund_payment
        self.now = now

    def remaining_days(self, subscription) -> int:
        """Whole days left before next_billing_at on an ACTIVE subscription, else 0."""
        if subscription is None or subscription.status != SQUARE_ACTIVE:
            return 0

        next_billing = as_utc_aware(subscription.next_billing_at)
        if next_billing is None:
            return 0

        days = (next_billing - self.now()).days
        return days if days > 0 else 0

    def prorated_refund(self, subscription, remaining_days: int, price_table: Mapping[str, Any]) -> int:
        """Refund in cents: price / duration * remaining days, rounded half away from zero."""
        if subscription is None or remaining_days == 0:
            return 0

        pricing = _pricing(price_table.get(subscription.plan_id))
        if pricing is None:
            logger.warning("No refund configuration found for plan: %s", subscription.plan_id)
            return 0

        daily_rate = Decimal(pricing.price_cents) / Decimal(pricing.duration_days)
        amount = (daily_rate * remaining_days).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return int(amount)

    def process_automatic_refund(
        self,
        subscription,
        refund_amount: int,
        reason: str | None = DEFAULT_REFUND_REASON,
        currency: str = "USD",
    ) -> bool:
        """
        Refund `refund_amount` cents against the subscription's payment.

        Fire-and-forget: never raises and always returns True. Nothing to
        refund and a missing payment_id are no-ops; a failed refund is logged.
        """
        self._submit_refund(subscription, refund_amount, reason, currency)
        return True

    def _submit_refund(self, subscription, refund_amount: int, reason: str | None, currency: str) -> bool:
        """True only when the refund collaborator was called and accepted the refund."""
        if subscription is None or not refund_amount or refund_amount <= 0:
            return False

        payment_id = getattr(subscription, "payment_id", None)
        subscription_id = getattr(subscription, "id", None)
        if not payment_id:
            logger.info("No payment_id available for automatic refund of subscription %s", subscription_id)
            return False

        if self.refund_payment is None:
            logger.info("No refund client configured; refund for subscription %s left pending", subscription_id)
            return False

        try:
            self.refund_payment(payment_id, refund_amount, currency, reason)
        except BillingError as e:
            logger.error("Failed to process automatic refund for subscription %s: %s", subscription_id, e)
            return False
        except Exception:
            logger.exception("Unexpected error refunding subscription %s", subscription_id)
            return False

        logger.info("Processed automatic refund of %s cents for subscription %s", refund_amount, subscription_id)
        return True

    @staticmethod
    def build_refund_info(refund_amount: int, remaining_days: int, processed: bool = True) -> RefundInfo | None:
        if not refund_amount or not remaining_days:
            return None

        dollars = (Decimal(refund_amount) / 100).quantize(Decimal("0.01"))
        return RefundInfo(
            refund_amount=refund_amount,
            remaining_days=remaining_days,
            refund_message=f"You'll receive a ${dollars} refund for your remaining {remaining_days} days.",
            refund_status=REFUND_PROCESSED if processed else REFUND_PENDING,
        )

    def refund_for_plan_change(
        self,
        subscription,
        price_table: Mapping[str, Any],
        reason: str | None = DEFAULT_REFUND_REASON,
        currency: str = "USD",
    ) -> RefundInfo | None:
        """Compute, issue and describe the refund owed when leaving `subscription`."""
        days = self.remaining_days(subscription)
        amount = self.prorated_refund(subscription, days, price_table)
        processed = self._submit_refund(subscription, amount, reason, currency)
        return self.build_refund_info(amount, days, processed=processed)

    def quote(self, subscription, price_table: Mapping[str, Any]) -> RefundInfo | None:
        """Same as refund_for_plan_change without issuing anything."""
        days = self.remaining_days(subscription)
        amount = self.prorated_refund(subscription, days, price_table)
        return self.build_refund_info(amount, days, processed=False)
