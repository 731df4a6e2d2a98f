import random

import pytest
from solders.pubkey import Pubkey

from pump_bundler.bundle.fee_bidder import FeeBidder


class TestFeeBidder:
    async def test_bid_pays_one_advertised_account(self, relay):
        payer = Pubkey.new_unique()
        bid = await FeeBidder(relay, rng=random.Random(7)).bid(payer, 1_000_000, wallet_tx_count=3)

        assert bid.payer == payer
        assert bid.lamports == 1_000_000
        assert str(bid.tip_account) in relay.tip_accounts

    async def test_choice_is_reproducible_with_seeded_rng(self, relay):
        a = await FeeBidder(relay, rng=random.Random(42)).bid(Pubkey.new_unique(), 10_000, 1)
        b = await FeeBidder(relay, rng=random.Random(42)).bid(Pubkey.new_unique(), 10_000, 1)
        assert a.tip_account == b.tip_account

    async def test_tip_accounts_are_cached(self, relay):
        bidder = FeeBidder(relay)
        await bidder.bid(Pubkey.new_unique(), 10_000, 1)
        await bidder.bid(Pubkey.new_unique(), 10_000, 1)
        assert relay.tip_calls == 1

    async def test_static_accounts_skip_relay(self, relay):
        static = str(Pubkey.new_unique())
        bid = await FeeBidder(relay, tip_accounts=[static]).bid(Pubkey.new_unique(), 10_000, 1)
        assert str(bid.tip_account) == static
        assert relay.tip_calls == 0

    async def test_below_minimum(self, relay):
        with pytest.raises(ValueError):
            await FeeBidder(relay).bid(Pubkey.new_unique(), 999, 1)
        assert relay.calls == 0

    async def test_missing_bid(self, relay):
        with pytest.raises(ValueError):
            await FeeBidder(relay).bid(Pubkey.new_unique(), None, 1)
