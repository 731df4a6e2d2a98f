# pump_bundler/core/priority_fee/manager.py
import asyncio
from typing import Optional, List

from solders.pubkey import Pubkey

from pump_bundler.utils.logger import get_logger
from . import PriorityFee, PriorityFeePlugin
from .fixed_fee import FixedPriorityFee
from .dynamic_fee import DynamicPriorityFeePlugin

logger = get_logger(__name__)


class PriorityFeeManager:
    """
    Turns plugin suggestions into the compute budget every transaction of a
    bundle carries. The highest suggestion wins, `extra_fee` is added on top and
    the result is clamped to `hard_cap`. A configured unit limit alone still
    yields a PriorityFee so transactions get an explicit compute limit.
    """

    def __init__(self,
                 client,  # SolanaClient
                 compute_unit_limit: Optional[int] = None,
                 enable_dynamic_fee: bool = True,
                 enable_fixed_fee: bool = False,
                 fixed_fee: int = 10000,  # micro-lamports per compute unit
                 extra_fee: int = 0,
                 hard_cap: Optional[int] = None,
                 dynamic_percentile: int = 50,
                 dynamic_adjustment_factor: float = 1.0,
                 dynamic_cache_duration_sec: int = 5
                 ):
        self.compute_unit_limit = compute_unit_limit
        self.extra_fee = max(0, extra_fee)
        self.hard_cap = hard_cap
        self.plugins: List[PriorityFeePlugin] = []
        self.dynamic_plugin: Optional[DynamicPriorityFeePlugin] = None

        if enable_fixed_fee:
            self.plugins.append(FixedPriorityFee(fixed_fee))
        if enable_dynamic_fee:
            self.dynamic_plugin = DynamicPriorityFeePlugin(
                client,
                percentile=dynamic_percentile,
                adjustment_factor=dynamic_adjustment_factor,
                cache_duration=dynamic_cache_duration_sec,
            )
            self.plugins.append(self.dynamic_plugin)

        logger.info(
            f"PriorityFeeManager: plugins={[type(p).__name__ for p in self.plugins]}, "
            f"cu_limit={compute_unit_limit}, extra={self.extra_fee}, cap={hard_cap}"
        )

    async def _suggestions(self) -> List[int]:
        results = await asyncio.gather(*(plugin.get_priority_fee() for plugin in self.plugins),
                                       return_exceptions=True)
        suggestions = []
        for plugin, result in zip(self.plugins, results):
            if isinstance(result, Exception):
                logger.error(f"{type(plugin).__name__} failed to suggest a fee: {result}")
            elif result:
                suggestions.append(int(result))
        return suggestions

    async def get_priority_fee(self, accounts_to_check: Optional[List[Pubkey]] = None) -> Optional[PriorityFee]:
        """Compute budget for the next bundle, or None when nothing is configured."""
        if self.dynamic_plugin:
            self.dynamic_plugin.set_accounts_for_check(accounts_to_check)

        suggestions = await self._suggestions()
        price = max(suggestions, default=0) + self.extra_fee
        if self.hard_cap is not None and price > self.hard_cap:
            logger.info(f"Compute unit price {price} clamped to hard cap {self.hard_cap}")
            price = self.hard_cap

        if price <= 0 and not self.compute_unit_limit:
            return None

        fee = PriorityFee(limit=self.compute_unit_limit, price=price or None)
        logger.debug(f"Priority fee for bundle: {fee} (suggestions={suggestions})")
        return fee
