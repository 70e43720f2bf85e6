import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from square_billing.core.errors import PersistenceError, RemoteError, RemoteNotFoundError, RemoteTransientError
from square_billing.db.subscriptions import SqlSubscriptionStore
from square_billing.subscriptions.sync import SubscriptionSyncEngine, parse_square_date
from square_billing.utils.dt import as_utc_aware

from tests.conftest import NOW, days_from_now


class RecordingPersist:
    """Applies fields to the subscription and remembers every call."""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, subscription, fields):
        self.calls.append(fields)
        if self.error:
            raise self.error
        for k, v in fields.items():
            setattr(subscription, k, v)
        return subscription


def make_lookup(result=None, error=None):
    calls = []

    def lookup(square_id):
        calls.append(square_id)
        if error:
            raise error
        return result

    lookup.calls = calls
    return lookup


def sub(**fields):
    data = {
        "id": 1,
        "square_subscription_id": "sq_123",
        "plan_id": "premium_monthly",
        "status": "ACTIVE",
        "started_at": None,
        "canceled_at": None,
        "next_billing_at": None,
    }
    data.update(fields)
    return SimpleNamespace(**data)


# ---------------------------
# parse_square_date
# ---------------------------

def test_parse_square_date_plain_date():
    assert parse_square_date("2024-01-15") == datetime(2024, 1, 15, tzinfo=timezone.utc)


def test_parse_square_date_datetime_with_z():
    assert parse_square_date("2024-01-15T10:30:00.123456Z") == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def test_parse_square_date_offset_is_normalised():
    assert parse_square_date("2024-01-15T10:30:00+02:00") == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "not a date", 20240115])
def test_parse_square_date_invalid(value):
    assert parse_square_date(value) is None


# ---------------------------
# sync_from_square
# ---------------------------

def test_no_square_id_makes_no_calls(clock):
    lookup = make_lookup()
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(lookup, persist, now=clock)
    subscription = sub(square_subscription_id=None)

    assert engine.sync_from_square(subscription) is subscription
    assert lookup.calls == []
    assert persist.calls == []


def test_not_found_marks_canceled(clock):
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(error=RemoteNotFoundError("gone", 404)), persist, now=clock)

    result = engine.sync_from_square(sub())

    assert persist.calls == [{"status": "CANCELED", "canceled_at": NOW}]
    assert result.status == "CANCELED"
    assert result.canceled_at == NOW


def test_transient_error_keeps_local_copy(clock, caplog):
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(error=RemoteTransientError("timeout")), persist, now=clock)
    subscription = sub(status="ACTIVE", next_billing_at=days_from_now(10))

    with caplog.at_level(logging.WARNING):
        result = engine.sync_from_square(subscription)

    assert result is subscription
    assert result.status == "ACTIVE"
    assert persist.calls == []
    assert "sq_123" in caplog.text


@pytest.mark.parametrize("error", [RemoteError("Square 500", 500), RuntimeError("socket closed")])
def test_other_lookup_errors_keep_local_copy(clock, caplog, error):
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(error=error), persist, now=clock)
    subscription = sub(status="ACTIVE")

    with caplog.at_level(logging.WARNING):
        assert engine.sync_from_square(subscription) is subscription

    assert subscription.status == "ACTIVE"
    assert persist.calls == []
    assert "sq_123" in caplog.text


def test_record_fields_are_persisted(clock):
    record = {
        "id": "sq_123",
        "status": "ACTIVE",
        "start_date": "2024-12-01",
        "charged_through_date": "2025-01-01",
    }
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(record), persist, now=clock)

    result = engine.sync_from_square(sub())

    assert persist.calls == [{
        "status": "ACTIVE",
        "next_billing_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "started_at": datetime(2024, 12, 1, tzinfo=timezone.utc),
        "canceled_at": None,
    }]
    assert result.next_billing_at == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_monthly_plan_derives_next_billing_from_start(clock):
    record = {"status": "ACTIVE", "start_date": "2024-12-01"}
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(record), persist, now=clock)

    result = engine.sync_from_square(sub(plan_id="premium_monthly"))

    assert result.next_billing_at == datetime(2024, 12, 31, tzinfo=timezone.utc)


def test_monthly_plan_falls_back_to_local_start(clock):
    started = datetime(2024, 12, 10, 9, 0, tzinfo=timezone.utc)
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup({"status": "ACTIVE"}), persist, now=clock)

    result = engine.sync_from_square(sub(started_at=started))

    assert result.started_at == started
    assert result.next_billing_at == started + timedelta(days=30)


def test_other_plans_do_not_derive_next_billing(clock):
    record = {"status": "ACTIVE", "start_date": "2024-12-01"}
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(record), persist, now=clock)

    result = engine.sync_from_square(sub(plan_id="premium_yearly"))

    assert result.next_billing_at is None


def test_canceled_record_carries_canceled_date(clock):
    record = {"status": "CANCELED", "start_date": "2024-11-01", "canceled_date": "2024-12-20"}
    persist = RecordingPersist()
    engine = SubscriptionSyncEngine(make_lookup(record), persist, now=clock)

    result = engine.sync_from_square(sub())

    assert result.status == "CANCELED"
    assert result.canceled_at == datetime(2024, 12, 20, tzinfo=timezone.utc)


def test_persistence_failure_propagates(clock):
    persist = RecordingPersist(error=PersistenceError("db down"))
    engine = SubscriptionSyncEngine(make_lookup({"status": "ACTIVE"}), persist, now=clock)

    with pytest.raises(PersistenceError):
        engine.sync_from_square(sub())


def test_sync_through_sql_store(db, make_subscription, clock):
    subscription = make_subscription(square_subscription_id="sq_db", status="PENDING")
    record = {"status": "ACTIVE", "start_date": "2024-12-01", "charged_through_date": "2025-01-01"}
    engine = SubscriptionSyncEngine(make_lookup(record), SqlSubscriptionStore(db), now=clock)

    engine.sync_from_square(subscription)

    stored = SqlSubscriptionStore(db).get_by_square_id("sq_db")
    assert stored.status == "ACTIVE"
    assert as_utc_aware(stored.next_billing_at) == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_invalid_remote_status_is_rejected_by_sql_store(db, make_subscription, clock):
    subscription = make_subscription(square_subscription_id="sq_bad")
    engine = SubscriptionSyncEngine(make_lookup({"status": "BOGUS"}), SqlSubscriptionStore(db), now=clock)

    with pytest.raises(PersistenceError):
        engine.sync_from_square(subscription)


# ---------------------------
# should_sync / sync_many
# ---------------------------

@pytest.mark.parametrize(
    "next_billing, expected",
    [
        (None, True),
        (days_from_now(-1), True),
        (days_from_now(1), True),
        (days_from_now(3, hours=12), True),
        (days_from_now(4), False),
        (days_from_now(30), False),
    ],
)
def test_should_sync(next_billing, expected, clock):
    engine = SubscriptionSyncEngine(make_lookup(), RecordingPersist(), now=clock)
    assert engine.should_sync(sub(next_billing_at=next_billing)) is expected


def test_should_sync_accepts_naive_datetimes(clock):
    engine = SubscriptionSyncEngine(make_lookup(), RecordingPersist(), now=clock)
    naive = days_from_now(10).replace(tzinfo=None)
    assert engine.should_sync(sub(next_billing_at=naive)) is False


def test_sync_many_skips_fresh_and_survives_persist_errors(clock, caplog):
    lookup = make_lookup({"status": "ACTIVE"})
    persist = RecordingPersist(error=PersistenceError("db down"))
    engine = SubscriptionSyncEngine(lookup, persist, now=clock)
    fresh = sub(id=1, square_subscription_id="sq_fresh", next_billing_at=days_from_now(20))
    due = sub(id=2, square_subscription_id="sq_due", next_billing_at=days_from_now(1))

    with caplog.at_level(logging.ERROR):
        results = engine.sync_many([fresh, due])

    assert results == [fresh, due]
    assert lookup.calls == ["sq_due"]
    assert "Failed to persist" in caplog.text
