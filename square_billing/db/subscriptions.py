from typing import Any

from sqlalchemy import case, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from square_billing.core.errors import PersistenceError
from square_billing.models.subscription import SUBSCRIPTION_OWNER, OwnerConfig, Subscription
from square_billing.subscriptions.constants import ACTIVE_SQUARE_STATUSES, ALL_SQUARE_STATUSES, SQUARE_ACTIVE

# Fields a sync or upgrade flow may change
UPDATABLE_FIELDS = (
    "square_subscription_id",
    "plan_id",
    "status",
    "card_id",
    "payment_id",
    "started_at",
    "canceled_at",
    "next_billing_at",
    "trial_ends_at",
)


class SqlSubscriptionStore:
    """SQLAlchemy-backed persistence for Subscription rows."""

    def __init__(self, db: Session, owner: OwnerConfig = SUBSCRIPTION_OWNER):
        self.db = db
        self.owner = owner

    def __call__(self, subscription: Subscription, fields: dict[str, Any]) -> Subscription:
        return self.update(subscription, fields)

    def update(self, subscription: Subscription, fields: dict[str, Any]) -> Subscription:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise PersistenceError(f"Unknown subscription fields: {sorted(unknown)}")

        status = fields.get("status", subscription.status)
        if status not in ALL_SQUARE_STATUSES:
            raise PersistenceError(f"Invalid subscription status: {status!r}")

        if not fields.get("plan_id", subscription.plan_id):
            raise PersistenceError("Subscription plan_id is required")

        for k, v in fields.items():
            setattr(subscription, k, v)

        try:
            self.db.add(subscription)
            self.db.commit()
            self.db.refresh(subscription)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return subscription

    # ---------------------------
    # queries
    # ---------------------------

    def get_by_square_id(self, square_subscription_id: str) -> Subscription | None:
        return self.db.scalars(
            select(Subscription).where(Subscription.square_subscription_id == square_subscription_id)
        ).first()

    def for_owner(self, owner_id: int) -> list[Subscription]:
        owner_column = getattr(Subscription, self.owner.field)
        return list(
            self.db.scalars(
                select(Subscription)
                .where(owner_column == owner_id)
                .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            )
        )

    def get_active_for_owner(self, owner_id: int) -> Subscription | None:
        """Most recent ACTIVE subscription, falling back to the most recent PENDING one."""
        owner_column = getattr(Subscription, self.owner.field)
        return self.db.scalars(
            select(Subscription)
            .where(owner_column == owner_id, Subscription.status.in_(ACTIVE_SQUARE_STATUSES))
            .order_by(
                case((Subscription.status == SQUARE_ACTIVE, 0), else_=1),
                Subscription.created_at.desc(),
                Subscription.id.desc(),
            )
            .limit(1)
        ).first()
