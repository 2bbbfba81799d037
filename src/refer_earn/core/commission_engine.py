"""Commission propagation engine.

Records transactions and credits the referral chain above the transacting
user. The transaction is committed before any credit; each credit is an atomic
increment committed on its own.
"""

from typing import List
from uuid import UUID

from ..db.models import Transaction
from ..domain.commission import (
    PROPAGATION_DEPTH,
    Number,
    Payout,
    plan_payouts,
    qualifies_for_commission,
    to_amount,
)
from ..domain.errors import UserNotFound
from ..repositories.interfaces import RepositoryContainer
from ..utils.logging_config import get_logger
from .referral_graph import walk_ancestors


class CommissionEngine:
    """Records transactions and pays commissions up the referral chain."""

    def __init__(self, repos: RepositoryContainer, depth: int = PROPAGATION_DEPTH):
        self.repos = repos
        self.depth = depth
        self.logger = get_logger(__name__)

    async def record_transaction(self, user_id: UUID, amount: Number) -> Transaction:
        """
        Persist a transaction and credit the user's ancestors if it qualifies.

        Raises:
            InvalidAmount: The amount is not a finite positive number
            UserNotFound: The user does not exist
        """
        value = to_amount(amount)

        user = await self.repos.user.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)

        transaction = await self.repos.transaction.create(user_id=user.id, amount=value)
        self.logger.info(f"Recorded transaction {transaction.id} of {value} for {user.username}")

        if not qualifies_for_commission(value):
            return transaction

        ancestors = await walk_ancestors(self.repos.user, user, self.depth)
        payouts = plan_payouts(value, [ancestor.id for ancestor in ancestors])
        await self._apply(payouts)
        return transaction

    async def _apply(self, payouts: List[Payout]) -> None:
        # Nearest ancestor first; an earlier credit stays if a later one fails
        for payout in payouts:
            await self.repos.user.increment_earnings(
                payout.beneficiary_id, payout.kind, payout.amount
            )
            self.logger.info(
                f"Credited {payout.amount} {payout.kind.value} "
                f"to {payout.beneficiary_id} (level {payout.level})"
            )
