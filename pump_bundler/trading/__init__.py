# pump_bundler/trading/__init__.py

from .base import AmountPolicy, TokenMetadata, fixed_amounts_policy, random_amount_policy
from .bundler import PumpBundler

__all__ = [
    "AmountPolicy",
    "TokenMetadata",
    "fixed_amounts_policy",
    "random_amount_policy",
    "PumpBundler",
]
