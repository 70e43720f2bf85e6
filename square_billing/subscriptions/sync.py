import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from square_billing.core.errors import PersistenceError, RemoteNotFoundError, RemoteTransientError
from square_billing.integrations.square_client import RemoteSubscriptionLookup
from square_billing.subscriptions.constants import SQUARE_CANCELED
from square_billing.utils.dt import as_utc_aware, utc_now

logger = logging.getLogger(__name__)

# (subscription, fields) -> updated subscription, raises PersistenceError
PersistSubscriptionUpdate = Callable[[Any, dict[str, Any]], Any]

# Plans whose renewal date we derive when Square has not charged yet
MONTHLY_PLAN_IDS = ("premium_monthly",)
MONTHLY_BILLING_DAYS = 30

# Sync when renewal is this close (or overdue)
SYNC_WINDOW_DAYS = 3


def parse_square_date(value: Any) -> datetime | None:
    """
    Square returns ISO-8601 dates ("2024-01-15") and date-times
    ("2024-01-15T10:30:00Z"). Anything else yields None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return as_utc_aware(parsed).replace(microsecond=0)


class SubscriptionSyncEngine:
    """
    Keeps a local Subscription consistent with Square.

    `lookup(square_subscription_id)` returns the Square record or raises
    RemoteNotFoundError / RemoteTransientError. `persist(subscription, fields)`
    writes the update and returns the stored subscription.
    """

    def __init__(
        self,
        lookup: RemoteSubscriptionLookup,
        persist: PersistSubscriptionUpdate,
        now: Callable[[], datetime] = utc_now,
    ):
        self.lookup = lookup
        self.persist = persist
        self.now = now

    def sync_from_square(self, subscription):
        square_id = subscription.square_subscription_id
        if square_id is None:
            # nothing upstream to compare with
            return subscription

        try:
            record = self.lookup(square_id)
        except RemoteNotFoundError:
            logger.info("Square subscription %s no longer exists; marking canceled", square_id)
            return self.persist(subscription, {
                "status": SQUARE_CANCELED,
                "canceled_at": self.now(),
            })
        except RemoteTransientError as e:
            # keep the local copy; a later sync can try again
            logger.warning("Could not sync subscription %s from Square: %s", square_id, e)
            return subscription
        except Exception:
            logger.warning("Unexpected error syncing subscription %s from Square", square_id, exc_info=True)
            return subscription

        return self.persist(subscription, self._fields_from_record(subscription, record or {}))

    def _fields_from_record(self, subscription, record: dict[str, Any]) -> dict[str, Any]:
        next_billing = parse_square_date(record.get("charged_through_date"))
        started_at = parse_square_date(record.get("start_date"))
        canceled_at = parse_square_date(record.get("canceled_date"))

        known_start = started_at or as_utc_aware(subscription.started_at)
        next_billing = self._next_billing(next_billing, subscription.plan_id, known_start)

        return {
            "status": record.get("status"),
            "next_billing_at": next_billing,
            "started_at": known_start,
            "canceled_at": canceled_at,
        }

    @staticmethod
    def _next_billing(next_billing: datetime | None, plan_id: str | None, started_at: datetime | None) -> datetime | None:
        if next_billing is not None:
            return next_billing
        if plan_id in MONTHLY_PLAN_IDS and started_at is not None:
            return started_at + timedelta(days=MONTHLY_BILLING_DAYS)
        return None

    def should_sync(self, subscription) -> bool:
        next_billing = as_utc_aware(subscription.next_billing_at)
        if next_billing is None:
            return True
        return (next_billing - self.now()).days <= SYNC_WINDOW_DAYS

    def sync_many(self, subscriptions: Iterable[Any]) -> list[Any]:
        """
        Sync every subscription that is due. Persistence failures are logged
        and the local copy is kept so one bad row does not stop the batch.
        """
        results = []
        for subscription in subscriptions:
            if not self.should_sync(subscription):
                results.append(subscription)
                continue
            try:
                results.append(self.sync_from_square(subscription))
            except PersistenceError as e:
                logger.error("Failed to persist sync for subscription %s: %s",
                             getattr(subscription, "id", None), e)
                results.append(subscription)
        return results
