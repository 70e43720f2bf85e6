from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from square_billing.db.base import Base
from square_billing.utils.dt import utc_now


@dataclass(frozen=True)
class OwnerConfig:
    """Names the column that links a subscription to its owner, and the owner type."""
    field: str
    owner_type: str


# Subscriptions belong to application users through `owner_id`
SUBSCRIPTION_OWNER = OwnerConfig(field="owner_id", owner_type="user")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True)

    owner_id: Mapped[int | None] = mapped_column(index=True, nullable=True)

    # Square references (nullable because a subscription may not exist upstream yet)
    square_subscription_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    card_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Payment that bought a one-time pass; refunds go against it
    payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Your app's plan identifier, e.g. "premium_monthly", "premium_week_pass"
    plan_id: Mapped[str] = mapped_column(String(64))

    # Square status, verbatim: PENDING / ACTIVE / CANCELED / PAUSED / DELINQUENT
    status: Mapped[str] = mapped_column(String(16), default="PENDING", index=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_billing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    trial_ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_subscriptions_owner_status", "owner_id", "status"),
    )
