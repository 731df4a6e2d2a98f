# pump_bundler/bundle/fee_bidder.py

import random
import time
from typing import List, Optional, Sequence

from solders.pubkey import Pubkey

from pump_bundler.core.constants import LAMPORTS_PER_SOL, MIN_FEE_BID_LAMPORTS
from pump_bundler.core.instruction_builder import FeeBidIx, InstructionBuilder
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

TIP_ACCOUNT_CACHE_TTL = 300  # seconds


class FeeBidder:
    """
    Produces the single transfer that pays the relay for inclusion. The bid is paid
    once per bundle, to one of the relay's advertised incentive accounts.
    """

    def __init__(
            self,
            relay,
            rng: Optional[random.Random] = None,
            min_bid_lamports: int = MIN_FEE_BID_LAMPORTS,
            tip_accounts: Optional[Sequence[str]] = None,
            cache_ttl: float = TIP_ACCOUNT_CACHE_TTL,
    ):
        self.relay = relay  # RelayClient
        self.rng = rng or random.Random()
        self.min_bid_lamports = min_bid_lamports
        self.cache_ttl = cache_ttl
        self._static_accounts = [Pubkey.from_string(a) for a in tip_accounts] if tip_accounts else []
        self._tip_accounts: List[Pubkey] = []
        self._fetched_at = 0.0

    async def tip_accounts(self, force_refresh: bool = False) -> List[Pubkey]:
        if self._static_accounts:
            return self._static_accounts
        now = time.monotonic()
        if not force_refresh and self._tip_accounts and now - self._fetched_at < self.cache_ttl:
            return self._tip_accounts
        accounts = await self.relay.get_tip_accounts()
        self._tip_accounts = [Pubkey.from_string(a) for a in accounts]
        self._fetched_at = now
        logger.info(f"Cached {len(self._tip_accounts)} relay tip accounts")
        return self._tip_accounts

    async def choose_tip_account(self) -> Pubkey:
        return self.rng.choice(await self.tip_accounts())

    async def bid(self, payer: Pubkey, bid_lamports: int, wallet_tx_count: int) -> FeeBidIx:
        if bid_lamports is None:
            raise ValueError("Bundle submission requires a fee bid; use ordinary mode to submit without one")
        if bid_lamports < self.min_bid_lamports:
            raise ValueError(f"Fee bid {bid_lamports} lamports is below the relay minimum {self.min_bid_lamports}")
        tip_account = await self.choose_tip_account()
        fee_bid = InstructionBuilder.build_fee_bid(payer, tip_account, bid_lamports)
        share = bid_lamports / max(wallet_tx_count, 1)
        logger.info(
            f"Fee bid {bid_lamports / LAMPORTS_PER_SOL:.6f} SOL to {tip_account} "
            f"(~{share:.0f} lamports per wallet transaction across {wallet_tx_count})"
        )
        return fee_bid
