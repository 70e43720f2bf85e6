import pytest

from square_billing.subscriptions.constants import (
    ALL_SQUARE_STATUSES,
    STATUS_ACTIVE,
    STATUS_CANCELED,
    STATUS_INACTIVE,
    STATUS_PAST_DUE,
    TIER_FREE,
    TIER_PREMIUM,
    has_active_premium,
    to_internal_status,
)


@pytest.mark.parametrize(
    "square_status, expected",
    [
        ("ACTIVE", STATUS_ACTIVE),
        ("PENDING", STATUS_ACTIVE),
        ("CANCELED", STATUS_CANCELED),
        ("PAUSED", STATUS_INACTIVE),
        ("DELINQUENT", STATUS_PAST_DUE),
    ],
)
def test_square_status_mapping(square_status, expected):
    assert to_internal_status(square_status) == expected


@pytest.mark.parametrize("square_status", ["DEACTIVATED", "active", "", None])
def test_unknown_status_is_inactive(square_status):
    assert to_internal_status(square_status) == STATUS_INACTIVE


def test_every_square_status_is_mapped():
    for status in ALL_SQUARE_STATUSES:
        assert to_internal_status(status) in (STATUS_ACTIVE, STATUS_CANCELED, STATUS_INACTIVE, STATUS_PAST_DUE)


def test_has_active_premium():
    assert has_active_premium(TIER_PREMIUM, STATUS_ACTIVE) is True
    assert has_active_premium(TIER_PREMIUM, STATUS_PAST_DUE) is False
    assert has_active_premium(TIER_FREE, STATUS_ACTIVE) is False
    assert has_active_premium(None, None) is False
