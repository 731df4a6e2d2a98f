# pump_bundler/bundle/__init__.py

from .types import (
    BundleEnvelope,
    BundlePlan,
    OutcomeStatus,
    PurchaseIntent,
    SellIntent,
    SlippagePolicy,
    SubmissionAttempt,
    SubmissionMode,
    SubmissionOutcome,
)
from .assembler import BundleAssembler, WalletTrade
from .fee_bidder import FeeBidder
from .relay import RelayClient
from .retry import RetryCoordinator, classify_rejection
from .submission import OrdinarySubmitter, SubmissionClient

__all__ = [
    "BundleEnvelope",
    "BundlePlan",
    "OutcomeStatus",
    "PurchaseIntent",
    "SellIntent",
    "SlippagePolicy",
    "SubmissionAttempt",
    "SubmissionMode",
    "SubmissionOutcome",
    "BundleAssembler",
    "WalletTrade",
    "FeeBidder",
    "RelayClient",
    "RetryCoordinator",
    "classify_rejection",
    "OrdinarySubmitter",
    "SubmissionClient",
]
