"""Enums for the Refer & Earn service."""

from enum import Enum


class EarningsKind(str, Enum):
    """Earnings accumulator credited by a commission payout."""

    DIRECT = "direct_earnings"
    INDIRECT = "indirect_earnings"
