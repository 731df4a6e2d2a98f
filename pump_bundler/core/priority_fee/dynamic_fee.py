# pump_bundler/core/priority_fee/dynamic_fee.py
import time
from typing import Optional, List

from solders.pubkey import Pubkey

from pump_bundler.core.exceptions import LedgerRpcError
from pump_bundler.utils.logger import get_logger
from . import PriorityFeePlugin

logger = get_logger(__name__)


class DynamicPriorityFeePlugin(PriorityFeePlugin):
    """
    Suggests a compute unit price from getRecentPrioritizationFees, taking the
    given percentile of the non-zero samples for the accounts a bundle writes.
    """

    def __init__(self,
                 client,  # SolanaClient
                 percentile: int = 50,
                 adjustment_factor: float = 1.0,
                 cache_duration: int = 5):
        if not 0 <= percentile <= 100:
            raise ValueError(f"percentile must be within 0..100, got {percentile}")

        self.client = client
        self.percentile = percentile
        self.adjustment_factor = adjustment_factor
        self.cache_duration = max(0, cache_duration)

        self._cached: Optional[int] = None
        self._fetched_at: float = 0.0
        self._accounts: Optional[List[Pubkey]] = None

    def set_accounts_for_check(self, accounts: Optional[List[Pubkey]]):
        self._accounts = accounts

    def _pick(self, samples: List[int]) -> int:
        fees = sorted(fee for fee in samples if fee > 0)
        if not fees:
            return 0
        index = min(len(fees) - 1, len(fees) * self.percentile // 100)
        return max(0, int(fees[index] * self.adjustment_factor))

    async def get_priority_fee(self) -> Optional[int]:
        now = time.monotonic()
        fresh = self._cached is not None and now - self._fetched_at < self.cache_duration
        if not fresh:
            try:
                samples = await self.client.get_recent_prioritization_fees(self._accounts)
            except LedgerRpcError as e:
                logger.warning(f"Recent prioritization fees unavailable: {e}")
                return None
            self._cached = self._pick(samples)
            self._fetched_at = now
            logger.debug(f"p{self.percentile} of {len(samples)} fee samples x{self.adjustment_factor} = {self._cached}")
        return self._cached or None
