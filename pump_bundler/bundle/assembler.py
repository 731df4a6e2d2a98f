# pump_bundler/bundle/assembler.py
"""
Turns instruction variants into an ordered BundlePlan and signs plans into envelopes.

Launch bundle layout:
    tx 0       create, signed by the creator and the token identity
    tx 1..N    one per buyer in caller order, [create-account?, buy], signed by that buyer
    tx N+1     fee bid, signed by the operator

Capacity is checked while planning so an oversized request fails before any
network call. Once built, a plan is never reordered; expiry only re-signs it.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from solders.transaction import VersionedTransaction

from pump_bundler.bundle.types import (
    BundleEnvelope,
    BundlePlan,
    SubmissionMode,
    TransactionPlan,
)
from pump_bundler.core.constants import (
    LAUNCH_OVERHEAD_TRANSACTIONS,
    MAX_BUNDLE_TRANSACTIONS,
    PACKET_DATA_SIZE,
)
from pump_bundler.core.exceptions import BundleTooLargeError
from pump_bundler.core.instruction_builder import (
    BundleInstruction,
    BuyIx,
    CreateAccountIx,
    CreateIx,
    FeeBidIx,
    SellIx,
)
from pump_bundler.core.priority_fee import PriorityFee
from pump_bundler.core.transactions import RecencyToken, compile_and_sign, ensure_fits_packet
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

TRADE_OVERHEAD_TRANSACTIONS = 1  # fee bid only


@dataclass(frozen=True)
class WalletTrade:
    """One wallet's transaction body: optional create-account then a buy, or a single sell."""
    wallet: object  # Wallet
    instructions: Tuple[BundleInstruction, ...]


class BundleAssembler:
    def __init__(self, max_transactions: int = MAX_BUNDLE_TRANSACTIONS, max_transaction_bytes: int = PACKET_DATA_SIZE):
        if max_transactions < LAUNCH_OVERHEAD_TRANSACTIONS + 1:
            raise ValueError(f"max_transactions must allow at least one wallet, got {max_transactions}")
        self.max_transactions = max_transactions
        self.max_transaction_bytes = max_transaction_bytes

    @property
    def launch_wallet_ceiling(self) -> int:
        return self.max_transactions - LAUNCH_OVERHEAD_TRANSACTIONS

    @property
    def trade_wallet_ceiling(self) -> int:
        return self.max_transactions - TRADE_OVERHEAD_TRANSACTIONS

    def check_capacity(self, wallet_count: int, overhead: int = LAUNCH_OVERHEAD_TRANSACTIONS) -> None:
        total = wallet_count + overhead
        if total > self.max_transactions:
            fits = self.max_transactions - overhead
            raise BundleTooLargeError(
                f"{wallet_count} wallets need {total} transactions but the relay accepts {self.max_transactions}; "
                f"at most {fits} wallets fit in one bundle. Split into sequential bundles "
                f"(atomicity across bundles is lost).",
                transaction_count=total,
                max_transactions=self.max_transactions,
            )

    @staticmethod
    def _validate_trade(trade: WalletTrade, mint=None) -> None:
        owner = trade.wallet.pubkey
        instructions = trade.instructions
        if not instructions or not isinstance(instructions[-1], (BuyIx, SellIx)):
            raise ValueError(f"Transaction for {owner} must end with a buy or sell")
        for index, variant in enumerate(instructions):
            if isinstance(variant, (CreateIx, FeeBidIx)):
                raise ValueError(f"{type(variant).__name__} cannot appear in a wallet transaction")
            if isinstance(variant, CreateAccountIx):
                following = instructions[index + 1] if index + 1 < len(instructions) else None
                if not isinstance(following, BuyIx) or following.owner != variant.owner:
                    raise ValueError(f"Create-account for {variant.owner} must directly precede that owner's buy")
            if getattr(variant, "owner", owner) != owner:
                raise ValueError(f"Instruction for {variant.owner} placed in {owner}'s transaction")
            if mint is not None and getattr(variant, "mint", mint) != mint:
                raise ValueError(f"Instruction targets mint {variant.mint}, bundle mint is {mint}")

    @staticmethod
    def _trade_transaction(index: int, trade: WalletTrade, priority_fee: Optional[PriorityFee]) -> TransactionPlan:
        side = "buy" if isinstance(trade.instructions[-1], BuyIx) else "sell"
        return TransactionPlan(
            label=f"{side}[{index}] {trade.wallet.pubkey}",
            payer=trade.wallet.pubkey,
            signers=(trade.wallet.keypair,),
            instructions=tuple(trade.instructions),
            priority_fee=priority_fee,
        )

    @staticmethod
    def _fee_bid_transaction(fee_bid: FeeBidIx, operator) -> TransactionPlan:
        if fee_bid is None:
            raise ValueError("Bundle mode requires a fee bid; choose ordinary mode to submit without one")
        if fee_bid.payer != operator.pubkey:
            raise ValueError(f"Fee bid payer {fee_bid.payer} is not the operator {operator.pubkey}")
        return TransactionPlan(
            label="fee-bid",
            payer=operator.pubkey,
            signers=(operator.keypair,),
            instructions=(fee_bid,),
        )

    @staticmethod
    def _create_transaction(creator, token_identity, create_ix: CreateIx, priority_fee) -> TransactionPlan:
        if create_ix.mint != token_identity.mint:
            raise ValueError(f"Create instruction mint {create_ix.mint} is not the token identity {token_identity.mint}")
        if create_ix.creator != creator.pubkey:
            raise ValueError(f"Create instruction creator {create_ix.creator} is not {creator.pubkey}")
        return TransactionPlan(
            label=f"create {create_ix.symbol}",
            payer=creator.pubkey,
            signers=(creator.keypair, token_identity.keypair),
            instructions=(create_ix,),
            priority_fee=priority_fee,
        )

    @staticmethod
    def _committed(trades: Sequence[WalletTrade]) -> int:
        return sum(v.max_sol_cost for t in trades for v in t.instructions if isinstance(v, BuyIx))

    def plan_launch(
            self,
            creator,
            token_identity,
            create_ix: CreateIx,
            trades: Sequence[WalletTrade],
            fee_bid: FeeBidIx,
            operator=None,
            priority_fee: Optional[PriorityFee] = None,
    ) -> BundlePlan:
        self.check_capacity(len(trades), LAUNCH_OVERHEAD_TRANSACTIONS)
        operator = operator or creator
        for trade in trades:
            self._validate_trade(trade, mint=token_identity.mint)
            if not isinstance(trade.instructions[-1], BuyIx):
                raise ValueError("Launch bundles only carry buys")

        transactions = [self._create_transaction(creator, token_identity, create_ix, priority_fee)]
        transactions.extend(self._trade_transaction(i, t, priority_fee) for i, t in enumerate(trades))
        transactions.append(self._fee_bid_transaction(fee_bid, operator))

        plan = BundlePlan(
            kind="launch",
            transactions=tuple(transactions),
            mint=token_identity.mint,
            fee_bid_lamports=fee_bid.lamports,
            committed_lamports=self._committed(trades),
        )
        logger.info(f"Planned launch bundle for {token_identity.mint}: {len(plan)} transactions {plan.labels}")
        return plan

    def plan_trades(
            self,
            kind: str,
            trades: Sequence[WalletTrade],
            fee_bid: FeeBidIx,
            operator,
            priority_fee: Optional[PriorityFee] = None,
    ) -> BundlePlan:
        if not trades:
            raise ValueError("At least one trade is required")
        self.check_capacity(len(trades), TRADE_OVERHEAD_TRANSACTIONS)
        mint = trades[0].instructions[-1].mint
        for trade in trades:
            self._validate_trade(trade, mint=mint)

        transactions = [self._trade_transaction(i, t, priority_fee) for i, t in enumerate(trades)]
        transactions.append(self._fee_bid_transaction(fee_bid, operator))
        plan = BundlePlan(
            kind=kind,
            transactions=tuple(transactions),
            mint=mint,
            fee_bid_lamports=fee_bid.lamports,
            committed_lamports=self._committed(trades),
        )
        logger.info(f"Planned {kind} bundle for {mint}: {len(plan)} transactions")
        return plan

    def plan_ordinary(
            self,
            kind: str,
            trades: Sequence[WalletTrade],
            creator=None,
            token_identity=None,
            create_ix: Optional[CreateIx] = None,
            priority_fee: Optional[PriorityFee] = None,
    ) -> BundlePlan:
        """Same transactions without the fee bid, for sequential non-atomic submission."""
        transactions = []
        mint = None
        if create_ix is not None:
            transactions.append(self._create_transaction(creator, token_identity, create_ix, priority_fee))
            mint = token_identity.mint
        elif trades:
            mint = trades[0].instructions[-1].mint
        for trade in trades:
            self._validate_trade(trade, mint=mint)
        transactions.extend(self._trade_transaction(i, t, priority_fee) for i, t in enumerate(trades))
        if not transactions:
            raise ValueError("Nothing to submit")

        logger.warning(f"Planned {kind} in ordinary mode: {len(transactions)} transactions, no atomicity")
        return BundlePlan(
            kind=kind,
            transactions=tuple(transactions),
            mode=SubmissionMode.ORDINARY,
            mint=mint,
            committed_lamports=self._committed(trades),
        )

    @staticmethod
    def _sign_one(tx_plan: TransactionPlan, recency_token: RecencyToken) -> VersionedTransaction:
        return compile_and_sign(tx_plan.payer, tx_plan.compiled_instructions(), tx_plan.signers, recency_token)

    async def sign(self, plan: BundlePlan, recency_token: RecencyToken) -> BundleEnvelope:
        """Signs every transaction of the plan against one recency token, concurrently."""
        transactions = await asyncio.gather(
            *(asyncio.to_thread(self._sign_one, tx_plan, recency_token) for tx_plan in plan.transactions)
        )
        for tx_plan, tx in zip(plan.transactions, transactions):
            ensure_fits_packet(tx, tx_plan.label, self.max_transaction_bytes)
        logger.debug(f"Signed {len(transactions)} transactions with recency token {recency_token}")
        return BundleEnvelope(transactions=tuple(transactions), recency_token=recency_token, labels=plan.labels)
