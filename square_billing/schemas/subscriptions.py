from datetime import datetime

from pydantic import BaseModel


class SubscriptionOut(BaseModel):
    id: int
    plan_id: str
    status: str
    internal_status: str
    square_subscription_id: str | None
    started_at: datetime | None
    canceled_at: datetime | None
    next_billing_at: datetime | None

    class Config:
        from_attributes = True


class PlanChangeRefundIn(BaseModel):
    reason: str | None = None


class RefundInfoOut(BaseModel):
    refund_amount: int
    remaining_days: int
    refund_message: str
    refund_status: str

    class Config:
        from_attributes = True


class RefundQuoteOut(BaseModel):
    subscription_id: int
    refund: RefundInfoOut | None
