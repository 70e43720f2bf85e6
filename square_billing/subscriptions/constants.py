# Subscription tiers
TIER_FREE = "free"
TIER_PREMIUM = "premium"
TIER_ENTERPRISE = "enterprise"

ALL_TIERS = (TIER_FREE, TIER_PREMIUM, TIER_ENTERPRISE)

# Internal statuses (our gating truth)
STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUS_CANCELED = "canceled"
STATUS_PAST_DUE = "past_due"

ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_CANCELED, STATUS_PAST_DUE)

# Square subscription statuses, stored verbatim on Subscription.status
SQUARE_PENDING = "PENDING"
SQUARE_ACTIVE = "ACTIVE"
SQUARE_CANCELED = "CANCELED"
SQUARE_PAUSED = "PAUSED"
SQUARE_DELINQUENT = "DELINQUENT"

ALL_SQUARE_STATUSES = (
    SQUARE_PENDING,
    SQUARE_ACTIVE,
    SQUARE_CANCELED,
    SQUARE_PAUSED,
    SQUARE_DELINQUENT,
)

# Square statuses that grant access
ACTIVE_SQUARE_STATUSES = (SQUARE_ACTIVE, SQUARE_PENDING)

_SQUARE_TO_INTERNAL = {
    SQUARE_ACTIVE: STATUS_ACTIVE,
    # pending is treated as active
    SQUARE_PENDING: STATUS_ACTIVE,
    SQUARE_CANCELED: STATUS_CANCELED,
    SQUARE_PAUSED: STATUS_INACTIVE,
    SQUARE_DELINQUENT: STATUS_PAST_DUE,
}


def to_internal_status(square_status: str | None) -> str:
    """
    Map a Square subscription status to our internal status.
    Unknown values (and None) are inactive.
    """
    return _SQUARE_TO_INTERNAL.get(square_status, STATUS_INACTIVE)


def has_active_premium(tier: str | None, status: str | None) -> bool:
    return tier == TIER_PREMIUM and status == STATUS_ACTIVE
