"""
Pure commission rules for two-level referral payouts.

No I/O happens here: the engine resolves ancestors and applies the planned
payouts through the persistence layer.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Sequence, Tuple, Union
from uuid import UUID

from ..core.enums import EarningsKind
from .errors import InvalidAmount

# Transactions below this amount pay no commission
COMMISSION_THRESHOLD = Decimal("1000")

# Index 0 is the parent, index 1 the grandparent
COMMISSION_RATES: Tuple[Tuple[EarningsKind, Decimal], ...] = (
    (EarningsKind.DIRECT, Decimal("0.05")),
    (EarningsKind.INDIRECT, Decimal("0.02")),
)

# How many levels of the referral chain a transaction pays out to
PROPAGATION_DEPTH = len(COMMISSION_RATES)

CENT = Decimal("0.01")

Number = Union[int, float, str, Decimal]


@dataclass(frozen=True)
class Payout:
    """A single earnings credit owed to an ancestor."""

    level: int  # 1 = parent, 2 = grandparent
    beneficiary_id: UUID
    kind: EarningsKind
    amount: Decimal


def to_amount(value: Number) -> Decimal:
    """
    Convert a raw amount to a Decimal, rejecting anything not finite and positive.

    Amounts are stored in whole cents, so finer precision is rejected rather
    than rounded away after the threshold check.

    Raises:
        InvalidAmount: If the value is not a finite number greater than zero
            with at most two decimal places
    """
    if isinstance(value, bool):
        raise InvalidAmount(value)

    try:
        if isinstance(value, float):
            if not math.isfinite(value):
                raise InvalidAmount(value)
            amount = Decimal(str(value))
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(value)

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(value)
    try:
        whole_cents = amount == amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmount(value)
    if not whole_cents:
        raise InvalidAmount(value)
    return amount


def qualifies_for_commission(amount: Decimal) -> bool:
    """Whether a transaction of this amount pays any commission."""
    return amount >= COMMISSION_THRESHOLD


def plan_payouts(amount: Decimal, ancestor_ids: Sequence[UUID]) -> List[Payout]:
    """
    Plan the payouts for a transaction given its ancestors, nearest first.

    Ancestors beyond PROPAGATION_DEPTH are ignored. Nothing is paid below
    COMMISSION_THRESHOLD. Amounts are rounded half-up to cents.
    """
    if not qualifies_for_commission(amount):
        return []

    payouts = []
    for level, (beneficiary_id, (kind, rate)) in enumerate(
        zip(ancestor_ids, COMMISSION_RATES), start=1
    ):
        payouts.append(
            Payout(
                level=level,
                beneficiary_id=beneficiary_id,
                kind=kind,
                amount=(amount * rate).quantize(CENT, rounding=ROUND_HALF_UP),
            )
        )
    return payouts
