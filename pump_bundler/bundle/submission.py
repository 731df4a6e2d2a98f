# pump_bundler/bundle/submission.py

import asyncio
from typing import List, Optional

from solders.transaction_status import TransactionConfirmationStatus

from pump_bundler.bundle.relay import (
    STATUS_FAILED,
    STATUS_INVALID,
    STATUS_LANDED,
    STATUS_PENDING,
)
from pump_bundler.bundle.types import BundleEnvelope, SubmissionAttempt
from pump_bundler.core.exceptions import (
    BundleExpired,
    LedgerRpcError,
    ProtocolInvariantViolation,
    RelayError,
    SimulationFailure,
)
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 1.0

CONFIRMED_STATUSES = (TransactionConfirmationStatus.Confirmed, TransactionConfirmationStatus.Finalized)


async def ensure_fresh(ledger, attempt: SubmissionAttempt) -> None:
    """Raises BundleExpired when the attempt's recency token is already past its last valid height."""
    block_height = await ledger.get_block_height()
    if attempt.recency_token.is_expired(block_height):
        raise BundleExpired(
            f"recency token {attempt.recency_token} expired at block height {block_height}; envelope not sent"
        )


class SubmissionClient:
    """
    Sends one signed envelope to the relay and follows it to a terminal state.
    Never retries: LANDED, REJECTED or EXPIRED is handed back to the coordinator.

    Once the relay has acknowledged the bundle, polling failures never end the
    attempt. Only a successful block height read past the token's last valid
    height does, because until then the acknowledged bundle can still land.
    """

    def __init__(self, ledger, relay, poll_interval: float = DEFAULT_POLL_INTERVAL, simulate_head: bool = False):
        self.ledger = ledger  # SolanaClient
        self.relay = relay  # RelayClient
        self.poll_interval = poll_interval
        self.simulate_head = simulate_head

    async def _simulate_head(self, envelope: BundleEnvelope) -> None:
        label = envelope.labels[0] if envelope.labels else "transaction 0"
        result = await self.ledger.simulate_transaction(envelope.transactions[0])
        if not result.ok:
            logger.error(f"Pre-flight simulation of {label} failed: {result.err}")
            raise SimulationFailure(f"{label}: {result.err}", logs=result.logs)
        logger.debug(f"Pre-flight simulation of {label} ok ({result.units_consumed} CU)")

    async def submit(self, envelope: BundleEnvelope) -> str:
        if self.simulate_head:
            await self._simulate_head(envelope)
        return await self.relay.send_bundle(envelope.serialize())

    async def _landed(self, attempt: SubmissionAttempt, landed_slot: Optional[int]) -> Optional[SubmissionAttempt]:
        records = await self.relay.get_bundle_statuses([attempt.bundle_id])
        record = next((r for r in records if r.bundle_id == attempt.bundle_id), None)
        if record is None:
            return None  # landed but not indexed yet

        expected = attempt.envelope.signatures
        if record.err is not None:
            raise ProtocolInvariantViolation(f"Bundle {attempt.bundle_id} reported landed with error {record.err}")
        if len(record.transaction_ids) != len(expected) or set(record.transaction_ids) != set(expected):
            raise ProtocolInvariantViolation(
                f"Bundle {attempt.bundle_id} landed {len(record.transaction_ids)} of {len(expected)} transactions"
            )
        return attempt.landed(slot=record.slot or landed_slot, transaction_ids=expected)

    async def _confirmed_on_ledger(self, attempt: SubmissionAttempt) -> Optional[SubmissionAttempt]:
        """Ledger view of a bundle the relay reported landed but has not indexed."""
        signatures = attempt.envelope.signatures
        statuses = await self.ledger.get_signature_statuses(signatures)
        failed = [sig for sig, s in zip(signatures, statuses) if s is not None and s.err is not None]
        if failed:
            raise ProtocolInvariantViolation(
                f"Relay reported bundle {attempt.bundle_id} landed but the ledger shows {failed[0]} failed"
            )
        confirmed = [s for s in statuses if s is not None and s.confirmation_status in CONFIRMED_STATUSES]
        if len(confirmed) < len(signatures):
            return None
        return attempt.landed(slot=max(s.slot for s in confirmed), transaction_ids=signatures)

    async def await_outcome(self, attempt: SubmissionAttempt) -> SubmissionAttempt:
        """Polls the relay until the bundle lands, is rejected, or its recency token expires."""
        bundle_id = attempt.bundle_id
        relay_landed = False
        landed_slot: Optional[int] = None
        while True:
            try:
                if not relay_landed:
                    statuses = await self.relay.get_inflight_bundle_statuses([bundle_id])
                    status = next((s for s in statuses if s.bundle_id == bundle_id), None)
                    state = status.status if status else STATUS_PENDING
                    if state == STATUS_FAILED:
                        return attempt.rejected("bundle failed to land", transient=True)
                    if state == STATUS_INVALID:
                        return attempt.rejected("relay reported the bundle invalid", transient=False)
                    if state == STATUS_LANDED:
                        relay_landed = True
                        landed_slot = status.landed_slot

                if relay_landed:
                    landed = await self._landed(attempt, landed_slot)
                    if landed is None:
                        landed = await self._confirmed_on_ledger(attempt)
                    if landed is not None:
                        return landed

                block_height = await self.ledger.get_block_height()
            except (RelayError, LedgerRpcError) as e:
                logger.warning(f"Polling bundle {bundle_id} failed: {e}. Still tracking it.")
                await asyncio.sleep(self.poll_interval)
                continue

            if attempt.recency_token.is_expired(block_height):
                if relay_landed:
                    raise ProtocolInvariantViolation(
                        f"Relay reported bundle {bundle_id} landed but neither the relay nor the ledger "
                        f"confirmed its transactions by block height {block_height}"
                    )
                logger.info(
                    f"Bundle {bundle_id} expired at block height {block_height} "
                    f"(valid through {attempt.recency_token.last_valid_block_height})"
                )
                return attempt.expired()

            await asyncio.sleep(self.poll_interval)

    async def run(self, attempt: SubmissionAttempt) -> SubmissionAttempt:
        try:
            await ensure_fresh(self.ledger, attempt)
        except BundleExpired as e:
            logger.warning(str(e))
            return attempt.expired(str(e))

        bundle_id = await self.submit(attempt.envelope)
        attempt = attempt.acknowledged(bundle_id)
        try:
            return await self.await_outcome(attempt)
        except asyncio.CancelledError:
            logger.warning(f"Cancelled while awaiting bundle {bundle_id}; it may still land on-chain")
            raise


class OrdinarySubmitter:
    """
    Sends each transaction through the ledger RPC in order, without a relay.
    Nothing here is atomic: some transactions may land while others fail.
    """

    def __init__(self, ledger, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.ledger = ledger
        self.poll_interval = poll_interval

    async def _send_all(self, attempt: SubmissionAttempt) -> Optional[SubmissionAttempt]:
        envelope = attempt.envelope
        sent: List[str] = []
        for label, tx in zip(envelope.labels or [""] * len(envelope), envelope.transactions):
            try:
                signature = await self.ledger.send_transaction(tx)
            except LedgerRpcError as e:
                if not sent:
                    raise
                # Re-signing would repeat the transactions already sent.
                logger.error(f"Sending stopped after {len(sent)} of {len(envelope)} transactions: {e}")
                return attempt.rejected(
                    f"sending stopped after {len(sent)} of {len(envelope)} transactions: {e}", transient=False
                )
            sent.append(signature)
            logger.info(f"Sent {label or 'transaction'} {signature}")
        return None

    async def run(self, attempt: SubmissionAttempt) -> SubmissionAttempt:
        try:
            await ensure_fresh(self.ledger, attempt)
        except BundleExpired as e:
            logger.warning(str(e))
            return attempt.expired(str(e))

        stopped = await self._send_all(attempt)
        if stopped is not None:
            return stopped

        signatures = attempt.envelope.signatures
        while True:
            try:
                statuses = await self.ledger.get_signature_statuses(signatures)
                block_height = await self.ledger.get_block_height()
            except LedgerRpcError as e:
                logger.warning(f"Polling {len(signatures)} sent transaction(s) failed: {e}. Still tracking them.")
                await asyncio.sleep(self.poll_interval)
                continue

            failed = [(sig, s.err) for sig, s in zip(signatures, statuses) if s is not None and s.err is not None]
            confirmed = [
                s for s in statuses
                if s is not None and s.err is None and s.confirmation_status in CONFIRMED_STATUSES
            ]
            if failed:
                sig, err = failed[0]
                return attempt.rejected(f"transaction {sig} failed: {err}", transient=False)
            if len(confirmed) == len(signatures):
                return attempt.landed(slot=max(s.slot for s in confirmed), transaction_ids=signatures)

            if attempt.recency_token.is_expired(block_height):
                if confirmed:
                    # Re-signing would repeat the transactions that already landed.
                    return attempt.rejected(
                        f"{len(confirmed)} of {len(signatures)} transactions landed before expiry", transient=False
                    )
                return attempt.expired()

            await asyncio.sleep(self.poll_interval)
