# pump_bundler/trading/base.py
import random
from dataclasses import dataclass
from typing import Callable, Optional

from pump_bundler.core.constants import LAMPORTS_PER_SOL

# Maps a wallet's position in the launch (0-based) to the lamports it spends.
AmountPolicy = Callable[[int], int]


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    uri: str  # Already uploaded; the bundler never stores metadata itself

    def __str__(self) -> str:
        return f"{self.name} ({self.symbol})"


def fixed_amounts_policy(amounts_sol) -> AmountPolicy:
    """Explicit per-wallet amounts in SOL, in wallet order."""
    lamports = [int(a * LAMPORTS_PER_SOL) for a in amounts_sol]

    def policy(index: int) -> int:
        return lamports[index]
    return policy


def random_amount_policy(min_sol: float, max_sol: float, rng: Optional[random.Random] = None) -> AmountPolicy:
    """Uniform random amount per wallet, rounded to whole lamports."""
    if min_sol <= 0 or max_sol < min_sol:
        raise ValueError(f"Invalid amount range {min_sol}..{max_sol} SOL")
    rng = rng or random.Random()

    def policy(index: int) -> int:
        return int(rng.uniform(min_sol, max_sol) * LAMPORTS_PER_SOL)
    return policy
