# pump_bundler/core/priority_fee/fixed_fee.py
from typing import Optional

from . import PriorityFeePlugin


class FixedPriorityFee(PriorityFeePlugin):
    """Always suggests the same compute unit price."""

    def __init__(self, fee: int):
        self.fee = fee

    async def get_priority_fee(self) -> Optional[int]:
        return self.fee if self.fee > 0 else None
