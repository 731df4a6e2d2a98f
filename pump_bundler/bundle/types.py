# pump_bundler/bundle/types.py
"""
Immutable records that move through the bundle pipeline.

A BundlePlan is the unsigned, ordered description of a bundle. Signing a plan
against one RecencyToken yields a BundleEnvelope. Each submission of an envelope
is tracked by a SubmissionAttempt snapshot; state transitions return new
snapshots instead of mutating the old one.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from pump_bundler.core.exceptions import RejectedPermanent, RetriesExhausted
from pump_bundler.core.instruction_builder import BundleInstruction
from pump_bundler.core.priority_fee import PriorityFee
from pump_bundler.core.transactions import RecencyToken, encode_transaction, transaction_id


class SubmissionMode(Enum):
    BUNDLE = "bundle"  # atomic, prioritized through the relay; a fee bid is mandatory
    ORDINARY = "ordinary"  # plain sequential RPC submission, no atomicity


@dataclass(frozen=True)
class SlippagePolicy:
    basis_points: int = 0

    def __post_init__(self):
        if self.basis_points < 0 or self.basis_points > 10_000:
            raise ValueError(f"Slippage must be within 0..10000 bps, got {self.basis_points}")

    def max_cost(self, lamports: int) -> int:
        """Ceiling a buy may cost."""
        return lamports + (lamports * self.basis_points) // 10_000

    def min_output(self, lamports: int) -> int:
        """Floor a sell must return."""
        return lamports - (lamports * self.basis_points) // 10_000


@dataclass(frozen=True)
class PurchaseIntent:
    """
    One wallet's buy. `amount_lamports` is chosen by the caller's policy; an explicit
    `token_amount` replaces the curve quote for the number of token units requested.
    """
    wallet: object  # Wallet
    amount_lamports: int
    token_amount: Optional[int] = None

    def __post_init__(self):
        if self.amount_lamports <= 0:
            raise ValueError("Amount cannot be zero")
        if self.token_amount is not None and self.token_amount <= 0:
            raise ValueError("Explicit token amount must be positive")


@dataclass(frozen=True)
class SellIntent:
    wallet: object  # Wallet
    token_amount: Optional[int] = None
    percent: Optional[float] = None

    def __post_init__(self):
        if (self.token_amount is None) == (self.percent is None):
            raise ValueError("Provide exactly one of token_amount or percent")
        if self.token_amount is not None and self.token_amount <= 0:
            raise ValueError("Token amount must be positive")
        if self.percent is not None and not 0 < self.percent <= 100:
            raise ValueError(f"Percent must be within (0, 100], got {self.percent}")


@dataclass(frozen=True)
class TransactionPlan:
    """One transaction of a bundle before signing: who pays, who signs, what it does."""
    label: str
    payer: Pubkey
    signers: Tuple[Keypair, ...]
    instructions: Tuple[BundleInstruction, ...]
    priority_fee: Optional[PriorityFee] = None

    def compiled_instructions(self) -> list:
        ixs = self.priority_fee.instructions() if self.priority_fee else []
        ixs.extend(variant.instruction for variant in self.instructions)
        return ixs


@dataclass(frozen=True)
class BundlePlan:
    kind: str  # "launch", "buy" or "sell"
    transactions: Tuple[TransactionPlan, ...]
    mode: SubmissionMode = SubmissionMode.BUNDLE
    mint: Optional[Pubkey] = None
    fee_bid_lamports: int = 0
    committed_lamports: int = 0

    def __len__(self) -> int:
        return len(self.transactions)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(tx.label for tx in self.transactions)


@dataclass(frozen=True)
class BundleEnvelope:
    transactions: Tuple[VersionedTransaction, ...]
    recency_token: RecencyToken
    labels: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.transactions)

    @property
    def signatures(self) -> Tuple[str, ...]:
        return tuple(transaction_id(tx) for tx in self.transactions)

    def serialize(self) -> List[str]:
        return [encode_transaction(tx) for tx in self.transactions]


class AttemptState(Enum):
    PENDING = "pending"
    LANDED = "landed"
    REJECTED = "rejected"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SubmissionAttempt:
    envelope: BundleEnvelope
    recency_token: RecencyToken
    attempt: int = 1
    state: AttemptState = AttemptState.PENDING
    bundle_id: Optional[str] = None
    reason: Optional[str] = None
    transient: bool = False
    slot: Optional[int] = None
    transaction_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.recency_token != self.envelope.recency_token:
            raise ValueError("Attempt recency token differs from the envelope's")

    @property
    def is_terminal(self) -> bool:
        return self.state in (AttemptState.LANDED, AttemptState.REJECTED)

    def acknowledged(self, bundle_id: str) -> "SubmissionAttempt":
        return replace(self, bundle_id=bundle_id)

    def landed(self, slot: int, transaction_ids: Tuple[str, ...]) -> "SubmissionAttempt":
        return replace(self, state=AttemptState.LANDED, slot=slot, transaction_ids=tuple(transaction_ids))

    def rejected(self, reason: str, transient: bool = False) -> "SubmissionAttempt":
        return replace(self, state=AttemptState.REJECTED, reason=reason, transient=transient)

    def expired(self, reason: str = "recency token expired") -> "SubmissionAttempt":
        return replace(self, state=AttemptState.EXPIRED, reason=reason)


class OutcomeStatus(Enum):
    LANDED = "landed"
    REJECTED = "rejected"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass(frozen=True)
class SubmissionOutcome:
    status: OutcomeStatus
    slot: Optional[int] = None
    transaction_ids: Tuple[str, ...] = ()
    reason: Optional[str] = None
    attempts: int = 0
    bundle_id: Optional[str] = None

    @classmethod
    def landed(cls, slot: int, transaction_ids, attempts: int, bundle_id: Optional[str] = None):
        return cls(OutcomeStatus.LANDED, slot=slot, transaction_ids=tuple(transaction_ids),
                   attempts=attempts, bundle_id=bundle_id)

    @classmethod
    def rejected(cls, reason: str, attempts: int, bundle_id: Optional[str] = None):
        return cls(OutcomeStatus.REJECTED, reason=reason, attempts=attempts, bundle_id=bundle_id)

    @classmethod
    def retries_exhausted(cls, last_reason: Optional[str], attempts: int, bundle_id: Optional[str] = None):
        return cls(OutcomeStatus.RETRIES_EXHAUSTED, reason=last_reason, attempts=attempts, bundle_id=bundle_id)

    @property
    def is_landed(self) -> bool:
        return self.status is OutcomeStatus.LANDED

    def raise_for_status(self) -> "SubmissionOutcome":
        """Turns a failed outcome into the matching exception; returns self when landed."""
        if self.status is OutcomeStatus.REJECTED:
            raise RejectedPermanent(self.reason or "unknown")
        if self.status is OutcomeStatus.RETRIES_EXHAUSTED:
            raise RetriesExhausted(self.reason, self.attempts)
        return self
