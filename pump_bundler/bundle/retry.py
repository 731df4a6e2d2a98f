# pump_bundler/bundle/retry.py
"""
Expiry-aware retry loop around one BundlePlan.

Each attempt fetches one fresh RecencyToken for the whole bundle, re-signs the
same plan against it and submits once. Instructions are never rebuilt, so the
token identity, amounts and ordering are identical across attempts.
"""
from typing import Optional

from pump_bundler.bundle.types import (
    AttemptState,
    BundlePlan,
    SubmissionAttempt,
    SubmissionOutcome,
)
from pump_bundler.core.exceptions import (
    LedgerRpcError,
    RelayError,
    SimulationFailure,
    TransientRelayError,
)
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

TRANSIENT_MARKERS = (
    "rate limit",
    "rate-limit",
    "too many requests",
    "429",
    "congest",
    "overload",
    "busy",
    "timeout",
    "timed out",
    "try again",
    "unavailable",
    "transport error",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
    "failed to land",
    "blockhash not found",
    "expired blockhash",
)


def classify_rejection(reason: Optional[str]) -> bool:
    """
    True when a rejection is worth another attempt with a fresh recency token.
    Unknown reasons are permanent: simulation failures, low tips and malformed
    bundles do not get better by resubmitting.
    """
    if not reason:
        return False
    text = reason.lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


class RetryCoordinator:
    def __init__(self, ledger, assembler, submitter, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.ledger = ledger
        self.assembler = assembler
        self.submitter = submitter
        self.max_attempts = max_attempts

    async def _attempt(self, plan: BundlePlan, attempt_number: int) -> SubmissionAttempt:
        recency_token = await self.ledger.get_recency_token()
        envelope = await self.assembler.sign(plan, recency_token)
        attempt = SubmissionAttempt(envelope=envelope, recency_token=recency_token, attempt=attempt_number)
        logger.info(
            f"Attempt {attempt_number}/{self.max_attempts}: submitting {len(envelope)} transaction(s) "
            f"with recency token {recency_token}"
        )
        try:
            return await self.submitter.run(attempt)
        except TransientRelayError as e:
            return attempt.rejected(str(e), transient=True)
        except SimulationFailure as e:
            return attempt.rejected(f"simulation failed: {e}", transient=False)
        except RelayError as e:
            return attempt.rejected(str(e), transient=classify_rejection(str(e)))

    async def execute(self, plan: BundlePlan) -> SubmissionOutcome:
        last_reason: Optional[str] = None
        last_bundle_id: Optional[str] = None

        for attempt_number in range(1, self.max_attempts + 1):
            try:
                attempt = await self._attempt(plan, attempt_number)
            except LedgerRpcError as e:
                logger.warning(f"Attempt {attempt_number}: ledger RPC failed: {e}")
                last_reason = str(e)
                continue

            last_bundle_id = attempt.bundle_id or last_bundle_id

            if attempt.state is AttemptState.LANDED:
                logger.info(f"Bundle {attempt.bundle_id} landed in slot {attempt.slot} on attempt {attempt_number}")
                return SubmissionOutcome.landed(
                    slot=attempt.slot,
                    transaction_ids=attempt.transaction_ids,
                    attempts=attempt_number,
                    bundle_id=attempt.bundle_id,
                )

            if attempt.state is AttemptState.REJECTED and not attempt.transient:
                logger.error(f"Bundle rejected permanently on attempt {attempt_number}: {attempt.reason}")
                return SubmissionOutcome.rejected(attempt.reason, attempts=attempt_number, bundle_id=attempt.bundle_id)

            last_reason = attempt.reason
            logger.warning(
                f"Attempt {attempt_number} ended {attempt.state.value}: {attempt.reason}. "
                f"Re-signing with a fresh recency token."
            )

        logger.error(f"Retries exhausted after {self.max_attempts} attempts. Last reason: {last_reason}")
        return SubmissionOutcome.retries_exhausted(last_reason, attempts=self.max_attempts, bundle_id=last_bundle_id)
