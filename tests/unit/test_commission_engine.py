"""Unit tests for commission propagation on in-memory repositories."""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from refer_earn.core.enums import EarningsKind
from refer_earn.domain.errors import InvalidAmount, UserNotFound


@pytest.fixture
async def chain(graph):
    """grandparent <- parent <- child, plus an unrelated user."""
    grandparent = await graph.register("grandparent", "pw")
    parent = await graph.register("parent", "pw", grandparent.referral_code)
    child = await graph.register("child", "pw", parent.referral_code)
    stranger = await graph.register("stranger", "pw")
    return grandparent, parent, child, stranger


def earnings(*users):
    return [(u.direct_earnings, u.indirect_earnings) for u in users]


@pytest.mark.unit
class TestRecordTransaction:
    async def test_below_threshold_records_without_credit(self, engine, memory_repos, chain):
        grandparent, parent, child, stranger = chain

        transaction = await engine.record_transaction(child.id, 999)

        assert transaction.amount == Decimal("999")
        assert transaction.user_id == child.id
        assert await memory_repos.transaction.list_by_user(child.id) == [transaction]
        assert earnings(grandparent, parent, child, stranger) == [(0, 0)] * 4

    async def test_threshold_credits_parent_and_grandparent(
        self, engine, memory_repos, chain
    ):
        grandparent, parent, child, stranger = chain

        await engine.record_transaction(child.id, 1000)

        assert parent.direct_earnings == Decimal("50")
        assert parent.indirect_earnings == 0
        assert grandparent.indirect_earnings == Decimal("20")
        assert grandparent.direct_earnings == 0
        assert earnings(child, stranger) == [(0, 0), (0, 0)]
        assert len(await memory_repos.transaction.list_by_user(child.id)) == 1

    async def test_parent_without_grandparent(self, engine, chain):
        grandparent, parent, child, stranger = chain

        await engine.record_transaction(parent.id, 2000)

        assert grandparent.direct_earnings == Decimal("100")
        assert earnings(parent, child, stranger) == [(0, 0)] * 3
        assert grandparent.indirect_earnings == 0

    async def test_root_user_pays_nobody(self, engine, memory_repos, chain):
        grandparent, parent, child, stranger = chain

        await engine.record_transaction(stranger.id, 5000)

        assert earnings(grandparent, parent, child, stranger) == [(0, 0)] * 4
        assert len(await memory_repos.transaction.list_by_user(stranger.id)) == 1

    async def test_only_two_levels_are_paid(self, graph, engine, chain):
        grandparent, parent, child, _ = chain
        grandchild = await graph.register("grandchild", "pw", child.referral_code)

        await engine.record_transaction(grandchild.id, 1000)

        assert child.direct_earnings == Decimal("50")
        assert parent.indirect_earnings == Decimal("20")
        assert earnings(grandparent) == [(0, 0)]

    async def test_credits_accumulate(self, engine, chain):
        _, parent, child, _ = chain

        await engine.record_transaction(child.id, 1000)
        await engine.record_transaction(child.id, "1500.50")

        # 50 + 75.025 rounded to cents
        assert parent.direct_earnings == Decimal("125.03")

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, True, "999.999", "0.001"])
    async def test_invalid_amount_records_nothing(self, engine, memory_repos, chain, amount):
        _, _, child, _ = chain

        with pytest.raises(InvalidAmount):
            await engine.record_transaction(child.id, amount)

        assert await memory_repos.transaction.list_by_user(child.id) == []

    async def test_unknown_user(self, engine):
        with pytest.raises(UserNotFound):
            await engine.record_transaction(uuid4(), 1000)

    async def test_transaction_is_saved_before_credits(
        self, engine, memory_repos, chain, monkeypatch
    ):
        _, parent, child, _ = chain

        async def failing_increment(user_id, kind, delta):
            raise RuntimeError("storage down")

        monkeypatch.setattr(memory_repos.user, "increment_earnings", failing_increment)

        with pytest.raises(RuntimeError):
            await engine.record_transaction(child.id, 1000)

        # The saved transaction stays; the credit is lost
        assert len(await memory_repos.transaction.list_by_user(child.id)) == 1
        assert parent.direct_earnings == 0

    async def test_credits_are_applied_nearest_first(
        self, engine, memory_repos, chain, monkeypatch
    ):
        grandparent, parent, child, _ = chain
        applied = []
        original = memory_repos.user.increment_earnings

        async def recording_increment(user_id, kind, delta):
            applied.append((user_id, kind))
            await original(user_id, kind, delta)

        monkeypatch.setattr(memory_repos.user, "increment_earnings", recording_increment)

        await engine.record_transaction(child.id, 1000)

        assert applied == [
            (parent.id, EarningsKind.DIRECT),
            (grandparent.id, EarningsKind.INDIRECT),
        ]


@pytest.mark.unit
class TestConcurrency:
    async def test_concurrent_signups_respect_free_slots(self, graph, memory_repos):
        parent = await graph.register("parent", "pw")
        for i in range(3):
            await graph.register(f"existing{i}", "pw", parent.referral_code)

        results = await asyncio.gather(
            *(graph.register(f"racer{i}", "pw", parent.referral_code) for i in range(12)),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(succeeded) == 5
        assert len(failed) == 7
        assert all(type(e).__name__ == "ReferralLimitReached" for e in failed)

        referrals = await memory_repos.user.list_referrals(parent.id)
        assert len(referrals) == 8
        assert sorted(r.referral_slot for r in referrals) == list(range(1, 9))

    async def test_concurrent_transactions_do_not_lose_credits(self, graph, engine):
        parent = await graph.register("parent", "pw")
        children = [
            await graph.register(f"child{i}", "pw", parent.referral_code) for i in range(4)
        ]

        await asyncio.gather(
            *(
                engine.record_transaction(children[i % 4].id, 1000)
                for i in range(20)
            )
        )

        assert parent.direct_earnings == Decimal("1000")
