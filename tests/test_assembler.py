"""
Test Suite: Bundle Assembly
===========================
Ordering, capacity boundaries, signer sets and re-signing against new tokens.
"""

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from pump_bundler.bundle.assembler import BundleAssembler, WalletTrade
from pump_bundler.bundle.types import SubmissionMode
from pump_bundler.core.exceptions import BundleTooLargeError
from pump_bundler.core.instruction_builder import (
    BuyIx,
    CreateAccountIx,
    CreateIx,
    FeeBidIx,
    InstructionBuilder,
)
from pump_bundler.core.transactions import RecencyToken
from pump_bundler.core.wallet import Wallet


def buy_trade(wallet, mint, with_account=True, lamports=100_000_000):
    buy = InstructionBuilder.build_buy(wallet.pubkey, mint, 1_000_000, lamports)
    if with_account:
        return WalletTrade(wallet, (InstructionBuilder.build_create_account(wallet.pubkey, wallet.pubkey, mint), buy))
    return WalletTrade(wallet, (buy,))


@pytest.fixture
def create_ix(creator, token_identity):
    return InstructionBuilder.build_create(token_identity.mint, creator.pubkey, "Moon", "MOON", "ipfs://moon")


@pytest.fixture
def fee_bid(creator):
    return InstructionBuilder.build_fee_bid(creator.pubkey, Pubkey.new_unique(), 1_000_000)


def token():
    return RecencyToken(blockhash=Hash.new_unique(), last_valid_block_height=500)


class TestLaunchPlan:
    def test_n_plus_two_order(self, creator, buyers, token_identity, create_ix, fee_bid):
        trades = [buy_trade(w, token_identity.mint) for w in buyers]
        plan = BundleAssembler().plan_launch(creator, token_identity, create_ix, trades, fee_bid)

        assert len(plan) == len(buyers) + 2
        assert plan.transactions[0].instructions == (create_ix,)
        assert {k.pubkey() for k in plan.transactions[0].signers} == {creator.pubkey, token_identity.mint}
        for tx_plan, wallet in zip(plan.transactions[1:-1], buyers):
            assert isinstance(tx_plan.instructions[0], CreateAccountIx)
            assert isinstance(tx_plan.instructions[1], BuyIx)
            assert tx_plan.instructions[1].owner == wallet.pubkey
            assert [k.pubkey() for k in tx_plan.signers] == [wallet.pubkey]
        assert isinstance(plan.transactions[-1].instructions[0], FeeBidIx)
        assert plan.fee_bid_lamports == 1_000_000
        assert plan.committed_lamports == 3 * 100_000_000

    def test_exact_ceiling_fits(self, creator, token_identity, create_ix, fee_bid):
        assembler = BundleAssembler()
        wallets = [Wallet.generate() for _ in range(assembler.launch_wallet_ceiling)]
        plan = assembler.plan_launch(
            creator, token_identity, create_ix, [buy_trade(w, token_identity.mint) for w in wallets], fee_bid
        )
        assert len(plan) == assembler.max_transactions

    def test_one_over_ceiling(self, creator, token_identity, create_ix, fee_bid):
        assembler = BundleAssembler()
        wallets = [Wallet.generate() for _ in range(assembler.launch_wallet_ceiling + 1)]
        with pytest.raises(BundleTooLargeError) as exc:
            assembler.plan_launch(
                creator, token_identity, create_ix, [buy_trade(w, token_identity.mint) for w in wallets], fee_bid
            )
        assert exc.value.transaction_count == assembler.max_transactions + 1
        assert "at most 3 wallets" in str(exc.value)

    def test_buy_for_other_mint_rejected(self, creator, buyers, token_identity, create_ix, fee_bid):
        with pytest.raises(ValueError):
            BundleAssembler().plan_launch(
                creator, token_identity, create_ix, [buy_trade(buyers[0], Pubkey.new_unique())], fee_bid
            )

    def test_create_account_must_precede_own_buy(self, creator, buyers, token_identity, create_ix, fee_bid):
        mint = token_identity.mint
        wrong = WalletTrade(buyers[0], (
            InstructionBuilder.build_create_account(buyers[1].pubkey, buyers[1].pubkey, mint),
            InstructionBuilder.build_buy(buyers[0].pubkey, mint, 1, 1),
        ))
        with pytest.raises(ValueError):
            BundleAssembler().plan_launch(creator, token_identity, create_ix, [wrong], fee_bid)

    def test_fee_bid_payer_must_be_operator(self, creator, buyers, token_identity, create_ix):
        stray = InstructionBuilder.build_fee_bid(buyers[0].pubkey, Pubkey.new_unique(), 1_000)
        with pytest.raises(ValueError):
            BundleAssembler().plan_launch(creator, token_identity, create_ix, [], stray)

    def test_missing_fee_bid(self, creator, token_identity, create_ix):
        with pytest.raises(ValueError):
            BundleAssembler().plan_launch(creator, token_identity, create_ix, [], None)


class TestOtherPlans:
    def test_trade_bundle(self, buyers):
        mint = Pubkey.new_unique()
        wallet = buyers[0]
        bid = InstructionBuilder.build_fee_bid(wallet.pubkey, Pubkey.new_unique(), 5_000)
        plan = BundleAssembler().plan_trades("buy", [buy_trade(wallet, mint, with_account=False)], bid, wallet)
        assert len(plan) == 2
        assert plan.kind == "buy" and plan.mint == mint

    def test_trade_ceiling(self):
        assembler = BundleAssembler()
        mint = Pubkey.new_unique()
        operator = Wallet.generate()
        bid = InstructionBuilder.build_fee_bid(operator.pubkey, Pubkey.new_unique(), 5_000)
        trades = [buy_trade(Wallet.generate(), mint) for _ in range(assembler.trade_wallet_ceiling + 1)]
        with pytest.raises(BundleTooLargeError):
            assembler.plan_trades("buy", trades, bid, operator)

    def test_ordinary_has_no_fee_bid(self, creator, buyers, token_identity, create_ix):
        trades = [buy_trade(w, token_identity.mint) for w in buyers]
        plan = BundleAssembler().plan_ordinary(
            "launch", trades, creator=creator, token_identity=token_identity, create_ix=create_ix
        )
        assert plan.mode is SubmissionMode.ORDINARY
        assert len(plan) == len(buyers) + 1
        assert isinstance(plan.transactions[0].instructions[0], CreateIx)
        assert not any(isinstance(v, FeeBidIx) for t in plan.transactions for v in t.instructions)


class TestSigning:
    async def test_shared_recency_token(self, creator, buyers, token_identity, create_ix, fee_bid):
        assembler = BundleAssembler()
        plan = assembler.plan_launch(
            creator, token_identity, create_ix, [buy_trade(w, token_identity.mint) for w in buyers], fee_bid
        )
        recency = token()
        envelope = await assembler.sign(plan, recency)

        assert len(envelope) == 5
        assert envelope.recency_token == recency
        assert all(tx.message.recent_blockhash == recency.blockhash for tx in envelope.transactions)
        assert envelope.labels == plan.labels
        assert len(set(envelope.signatures)) == 5
        assert all(len(bytes(tx)) <= 1232 for tx in envelope.transactions)

    async def test_resign_keeps_instructions(self, creator, buyers, token_identity, create_ix, fee_bid):
        assembler = BundleAssembler()
        plan = assembler.plan_launch(
            creator, token_identity, create_ix, [buy_trade(w, token_identity.mint) for w in buyers], fee_bid
        )
        first = await assembler.sign(plan, token())
        second = await assembler.sign(plan, token())

        assert set(first.signatures).isdisjoint(second.signatures)
        for a, b in zip(first.transactions, second.transactions):
            assert a.message.account_keys == b.message.account_keys
            assert a.message.instructions == b.message.instructions
            assert a.message.recent_blockhash != b.message.recent_blockhash

    async def test_oversized_transaction(self, creator, token_identity, create_ix, fee_bid):
        assembler = BundleAssembler(max_transaction_bytes=200)
        plan = assembler.plan_launch(creator, token_identity, create_ix, [], fee_bid)
        with pytest.raises(BundleTooLargeError):
            await assembler.sign(plan, token())
