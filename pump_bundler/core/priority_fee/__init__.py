# pump_bundler/core/priority_fee/__init__.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from solders.instruction import Instruction

from pump_bundler.core.instruction_builder import InstructionBuilder


@dataclass(frozen=True)
class PriorityFee:
    """Per-transaction compute budget: unit limit and unit price in micro-lamports."""
    limit: Optional[int] = None
    price: Optional[int] = None

    def instructions(self) -> List[Instruction]:
        ixs: List[Instruction] = []
        if self.limit:
            ixs.append(InstructionBuilder.set_compute_unit_limit(self.limit))
        if self.price:
            ixs.append(InstructionBuilder.set_compute_unit_price(self.price))
        return ixs


class PriorityFeePlugin(ABC):
    """Base class for priority fee calculation plugins."""

    @abstractmethod
    async def get_priority_fee(self) -> Optional[int]:
        """
        Calculate the priority fee.

        Returns:
            Optional[int]: Compute unit price in micro-lamports, or None if no fee should be applied.
        """
        pass


from .manager import PriorityFeeManager  # noqa: E402

__all__ = [
    "PriorityFee",
    "PriorityFeePlugin",
    "PriorityFeeManager",
]
