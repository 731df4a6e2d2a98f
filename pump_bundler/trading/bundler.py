# pump_bundler/trading/bundler.py
import asyncio
from typing import List, Optional, Sequence

from solders.pubkey import Pubkey

from pump_bundler.bundle.assembler import BundleAssembler, WalletTrade
from pump_bundler.bundle.fee_bidder import FeeBidder
from pump_bundler.bundle.retry import DEFAULT_MAX_ATTEMPTS, RetryCoordinator
from pump_bundler.bundle.submission import DEFAULT_POLL_INTERVAL, OrdinarySubmitter, SubmissionClient
from pump_bundler.bundle.types import (
    BundlePlan,
    PurchaseIntent,
    SellIntent,
    SlippagePolicy,
    SubmissionMode,
    SubmissionOutcome,
)
from pump_bundler.core.accounts import AccountResolver, ResolvedAccounts, to_pubkey
from pump_bundler.core.constants import LAMPORTS_PER_SOL
from pump_bundler.core.curve import BondingCurveState, GlobalState
from pump_bundler.core.exceptions import SlippageError
from pump_bundler.core.instruction_builder import InstructionBuilder
from pump_bundler.core.pubkeys import PumpAddresses
from pump_bundler.core.wallet import TokenIdentity, Wallet
from pump_bundler.trading.base import AmountPolicy, TokenMetadata
from pump_bundler.utils.audit_logger import AuditLogger
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)


class PumpBundler:
    """
    Launches a token and buys it from several wallets in one atomic bundle, or
    bundles buys and sells of an existing token. Every call plans the whole
    bundle up front and hands it to the retry coordinator, which only re-signs.
    """

    def __init__(self,
                 client,  # SolanaClient
                 relay,  # RelayClient
                 operator: Wallet,
                 assembler: Optional[BundleAssembler] = None,
                 fee_bidder: Optional[FeeBidder] = None,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 simulate_head: bool = False,
                 priority_fee_manager=None,  # PriorityFeeManager
                 audit_logger: Optional[AuditLogger] = None,
                 global_state: Optional[GlobalState] = None,
                 ):
        self.client = client
        self.relay = relay
        self.operator = operator
        self.resolver = AccountResolver(client)
        self.assembler = assembler or BundleAssembler()
        self.fee_bidder = fee_bidder or FeeBidder(relay)
        self.priority_fee_manager = priority_fee_manager
        self.audit = audit_logger or AuditLogger()
        self._global_state = global_state
        self._coordinators = {
            SubmissionMode.BUNDLE: RetryCoordinator(
                client, self.assembler, SubmissionClient(client, relay, poll_interval, simulate_head), max_attempts
            ),
            SubmissionMode.ORDINARY: RetryCoordinator(
                client, self.assembler, OrdinarySubmitter(client, poll_interval), max_attempts
            ),
        }
        logger.info(f"PumpBundler Init: Operator={operator.pubkey}, MaxAttempts={max_attempts}, "
                    f"MaxTxs={self.assembler.max_transactions}")

    async def global_state(self) -> GlobalState:
        if self._global_state is None:
            self._global_state = await self.resolver.fetch_global_state()
        return self._global_state

    @staticmethod
    def _require_bid(mode: SubmissionMode, fee_bid_lamports: Optional[int]) -> None:
        if mode is SubmissionMode.BUNDLE and fee_bid_lamports is None:
            raise ValueError("Bundle mode requires fee_bid_lamports; pass mode=SubmissionMode.ORDINARY to skip it")

    @staticmethod
    def _collect_intents(
            intents: Optional[Sequence[PurchaseIntent]],
            wallets: Optional[Sequence[Wallet]],
            amount_policy: Optional[AmountPolicy],
    ) -> List[PurchaseIntent]:
        if intents is not None:
            if wallets is not None or amount_policy is not None:
                raise ValueError("Pass either intents or wallets with an amount policy, not both")
            collected = list(intents)
        elif wallets is not None and amount_policy is not None:
            collected = [PurchaseIntent(wallet, amount_policy(i)) for i, wallet in enumerate(wallets)]
        elif wallets:
            raise ValueError("An amount policy is required when passing wallets")
        else:
            collected = []

        owners = [intent.wallet.pubkey for intent in collected]
        if len(set(owners)) != len(owners):
            raise ValueError("Each wallet may appear only once per bundle")
        return collected

    def _quote_buys(
            self,
            curve: BondingCurveState,
            global_state: GlobalState,
            resolved: ResolvedAccounts,
            intents: Sequence[PurchaseIntent],
            slippage: SlippagePolicy,
    ) -> List[WalletTrade]:
        """
        Builds one trade per intent against the curve as it will be after the
        earlier buys of the same bundle. Raises SlippageError when a buy cannot
        succeed within its ceiling.
        """
        fee_bps = global_state.fee_basis_points
        create_accounts = self.resolver.create_account_instructions(resolved)
        trades = []
        for index, intent in enumerate(intents):
            owner = intent.wallet.pubkey
            net_sol = intent.amount_lamports * 10_000 // (10_000 + fee_bps)
            token_amount = intent.token_amount or curve.buy_quote(net_sol)
            if token_amount <= 0:
                raise SlippageError(f"Wallet {index} ({owner}): {intent.amount_lamports} lamports buys no tokens")
            max_sol_cost = slippage.max_cost(intent.amount_lamports)
            total_cost = curve.check_buy(token_amount, max_sol_cost, fee_bps)

            buy_ix = InstructionBuilder.build_buy(
                owner, resolved.mint, token_amount, max_sol_cost, fee_recipient=global_state.fee_recipient
            )
            instructions = (create_accounts[owner], buy_ix) if owner in create_accounts else (buy_ix,)
            trades.append(WalletTrade(wallet=intent.wallet, instructions=instructions))
            logger.info(
                f"Buy[{index}] {owner}: {intent.amount_lamports / LAMPORTS_PER_SOL:.6f} SOL -> {token_amount} tokens "
                f"(cost {total_cost}, ceiling {max_sol_cost})"
            )
            curve = curve.after_buy(curve.buy_cost(token_amount), token_amount)
        return trades

    async def _priority_fee(self, accounts: List[Pubkey]):
        if not self.priority_fee_manager:
            return None
        return await self.priority_fee_manager.get_priority_fee(accounts_to_check=accounts)

    async def _execute(self, plan: BundlePlan) -> SubmissionOutcome:
        outcome = await self._coordinators[plan.mode].execute(plan)
        self.audit.log_bundle_event(
            f"BUNDLE_{outcome.status.name}",
            outcome,
            mint=str(plan.mint) if plan.mint else None,
            spent_lamports=plan.committed_lamports,
            fee_bid_lamports=plan.fee_bid_lamports,
            extra_data={"kind": plan.kind, "mode": plan.mode.value, "transactions": len(plan)},
        )
        return outcome

    def _rejected_before_submission(self, kind: str, mint, reason: str) -> SubmissionOutcome:
        logger.error(f"{kind} for {mint} rejected before submission: {reason}")
        outcome = SubmissionOutcome.rejected(reason, attempts=0)
        self.audit.log_bundle_event("BUNDLE_REJECTED", outcome, mint=str(mint), extra_data={"kind": kind})
        return outcome

    async def create_and_buy_bundle(
            self,
            creator: Wallet,
            token_identity: TokenIdentity,
            metadata: TokenMetadata,
            intents: Optional[Sequence[PurchaseIntent]] = None,
            wallets: Optional[Sequence[Wallet]] = None,
            amount_policy: Optional[AmountPolicy] = None,
            slippage: SlippagePolicy = SlippagePolicy(),
            fee_bid_lamports: Optional[int] = None,
            mode: SubmissionMode = SubmissionMode.BUNDLE,
    ) -> SubmissionOutcome:
        intents = self._collect_intents(intents, wallets, amount_policy)
        self._require_bid(mode, fee_bid_lamports)
        if mode is SubmissionMode.BUNDLE:
            self.assembler.check_capacity(len(intents))

        mint = token_identity.mint
        logger.info(f"Launching {metadata} as {mint} with {len(intents)} buyer wallet(s), mode={mode.value}")

        create_ix = InstructionBuilder.build_create(mint, creator.pubkey, metadata.name, metadata.symbol, metadata.uri)
        global_state = await self.global_state()
        resolved = await self.resolver.resolve(mint, AccountResolver.owners_of([i.wallet for i in intents]),
                                               mint_is_new=True)
        try:
            trades = self._quote_buys(global_state.initial_curve(), global_state, resolved, intents, slippage)
        except SlippageError as e:
            return self._rejected_before_submission("launch", mint, f"simulation failed: {e}")

        priority_fee = await self._priority_fee([PumpAddresses.GLOBAL_STATE, mint, resolved.bonding_curve])
        if mode is SubmissionMode.BUNDLE:
            fee_bid = await self.fee_bidder.bid(self.operator.pubkey, fee_bid_lamports, len(trades))
            plan = self.assembler.plan_launch(
                creator, token_identity, create_ix, trades, fee_bid, operator=self.operator, priority_fee=priority_fee
            )
        else:
            plan = self.assembler.plan_ordinary(
                "launch", trades, creator=creator, token_identity=token_identity, create_ix=create_ix,
                priority_fee=priority_fee,
            )
        return await self._execute(plan)

    async def buy_bundle(
            self,
            wallet: Wallet,
            mint,
            amount_lamports: int,
            slippage: SlippagePolicy = SlippagePolicy(),
            fee_bid_lamports: Optional[int] = None,
            token_amount: Optional[int] = None,
            mode: SubmissionMode = SubmissionMode.BUNDLE,
    ) -> SubmissionOutcome:
        mint = to_pubkey(mint)
        intent = PurchaseIntent(wallet, amount_lamports, token_amount)
        self._require_bid(mode, fee_bid_lamports)

        global_state, curve = await asyncio.gather(self.global_state(), self.resolver.fetch_curve_state(mint))
        if curve.complete:
            raise ValueError(f"Bonding curve for {mint} is complete; the token has migrated")
        resolved = await self.resolver.resolve(mint, [wallet.pubkey])
        try:
            trades = self._quote_buys(curve, global_state, resolved, [intent], slippage)
        except SlippageError as e:
            return self._rejected_before_submission("buy", mint, f"simulation failed: {e}")

        priority_fee = await self._priority_fee([PumpAddresses.GLOBAL_STATE, mint, resolved.bonding_curve])
        if mode is SubmissionMode.BUNDLE:
            fee_bid = await self.fee_bidder.bid(wallet.pubkey, fee_bid_lamports, len(trades))
            plan = self.assembler.plan_trades("buy", trades, fee_bid, operator=wallet, priority_fee=priority_fee)
        else:
            plan = self.assembler.plan_ordinary("buy", trades, priority_fee=priority_fee)
        return await self._execute(plan)

    async def sell_bundle(
            self,
            wallet: Wallet,
            mint,
            token_amount: Optional[int] = None,
            percent: Optional[float] = None,
            slippage: SlippagePolicy = SlippagePolicy(),
            fee_bid_lamports: Optional[int] = None,
            mode: SubmissionMode = SubmissionMode.BUNDLE,
    ) -> SubmissionOutcome:
        mint = to_pubkey(mint)
        intent = SellIntent(wallet, token_amount=token_amount, percent=percent)
        self._require_bid(mode, fee_bid_lamports)

        amount = intent.token_amount
        if intent.percent is not None:
            balance = await self.client.get_token_balance(wallet.pubkey, mint)
            amount = balance * int(intent.percent * 100) // 10_000
            logger.info(f"Selling {intent.percent}% of {balance} tokens held by {wallet.pubkey}: {amount}")
            if amount <= 0:
                raise ValueError(f"Wallet {wallet.pubkey} holds no {mint} tokens to sell")

        global_state, curve = await asyncio.gather(self.global_state(), self.resolver.fetch_curve_state(mint))
        if curve.complete:
            raise ValueError(f"Bonding curve for {mint} is complete; the token has migrated")
        expected = curve.sell_quote(amount, global_state.fee_basis_points)
        min_sol_output = slippage.min_output(expected)
        sell_ix = InstructionBuilder.build_sell(
            wallet.pubkey, mint, amount, min_sol_output, fee_recipient=global_state.fee_recipient
        )
        logger.info(f"Sell {amount} tokens of {mint}: expect {expected} lamports, floor {min_sol_output}")
        trades = [WalletTrade(wallet=wallet, instructions=(sell_ix,))]

        priority_fee = await self._priority_fee([PumpAddresses.GLOBAL_STATE, mint])
        if mode is SubmissionMode.BUNDLE:
            fee_bid = await self.fee_bidder.bid(wallet.pubkey, fee_bid_lamports, len(trades))
            plan = self.assembler.plan_trades("sell", trades, fee_bid, operator=wallet, priority_fee=priority_fee)
        else:
            plan = self.assembler.plan_ordinary("sell", trades, priority_fee=priority_fee)
        return await self._execute(plan)
