# pump_bundler/__init__.py

from .bundle.types import PurchaseIntent, SellIntent, SlippagePolicy, SubmissionMode, SubmissionOutcome
from .core.wallet import TokenIdentity, Wallet
from .trading.base import TokenMetadata
from .trading.bundler import PumpBundler

__version__ = "0.1.0"

__all__ = [
    "PumpBundler",
    "PurchaseIntent",
    "SellIntent",
    "SlippagePolicy",
    "SubmissionMode",
    "SubmissionOutcome",
    "TokenIdentity",
    "TokenMetadata",
    "Wallet",
]
