"""
pump-bundler Test Configuration
===============================
Shared fixtures, pytest markers and in-memory stand-ins for the ledger RPC
and the block-engine relay.
"""

import base64
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionConfirmationStatus

from pump_bundler.bundle.relay import STATUS_LANDED, InflightStatus, LandedBundle
from pump_bundler.core.curve import GlobalState
from pump_bundler.core.pubkeys import PumpAddresses
from pump_bundler.core.transactions import RecencyToken, SimulationResult
from pump_bundler.core.wallet import TokenIdentity, Wallet
from pump_bundler.utils.audit_logger import AuditLogger

RECENCY_WINDOW = 150


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: pure logic, no I/O")
    config.addinivalue_line("markers", "integration: end-to-end through the fake ledger and relay")


# ============================================================================
# FAKES
# ============================================================================

class FakeLedger:
    """Ledger RPC double. Counts every call so tests can assert 'no network'."""

    def __init__(self, block_height: int = 1_000, height_step: int = 0):
        self.block_height = block_height
        self.height_step = height_step  # added on every get_block_height call
        self.accounts: Dict[Pubkey, bytes] = {}
        self.balances: Dict[tuple, int] = {}
        self.prioritization_fees: List[int] = []
        self.simulation = SimulationResult(ok=True, units_consumed=50_000)
        self.signature_statuses: Dict[str, object] = {}
        self.auto_confirm = False
        self.tokens_issued: List[RecencyToken] = []
        self.sent: List[VersionedTransaction] = []
        self.simulated: List[VersionedTransaction] = []
        self.calls = 0

    async def get_recency_token(self) -> RecencyToken:
        self.calls += 1
        token = RecencyToken(blockhash=Hash.new_unique(), last_valid_block_height=self.block_height + RECENCY_WINDOW)
        self.tokens_issued.append(token)
        return token

    async def get_block_height(self) -> int:
        self.calls += 1
        self.block_height += self.height_step
        return self.block_height

    async def get_account_state(self, pubkey: Pubkey) -> Optional[bytes]:
        self.calls += 1
        return self.accounts.get(pubkey)

    async def simulate_transaction(self, tx: VersionedTransaction) -> SimulationResult:
        self.calls += 1
        self.simulated.append(tx)
        return self.simulation

    async def send_transaction(self, tx: VersionedTransaction) -> str:
        self.calls += 1
        self.sent.append(tx)
        signature = str(tx.signatures[0])
        if self.auto_confirm:
            self.signature_statuses[signature] = confirmed_status(slot=self.block_height)
        return signature

    async def get_signature_statuses(self, signatures):
        self.calls += 1
        return [self.signature_statuses.get(s) for s in signatures]

    async def get_token_balance(self, owner: Pubkey, mint: Pubkey) -> int:
        self.calls += 1
        return self.balances.get((owner, mint), 0)

    async def get_recent_prioritization_fees(self, accounts=None) -> List[int]:
        self.calls += 1
        return list(self.prioritization_fees)


class FakeRelay:
    """Block-engine double. `status` is what getInflightBundleStatuses reports."""

    def __init__(self, tip_accounts: Optional[List[str]] = None, status: str = STATUS_LANDED, slot: int = 4242):
        self.tip_accounts = tip_accounts or [str(Pubkey.new_unique()) for _ in range(8)]
        self.status = status
        self.slot = slot
        self.partial = False
        self.indexed = True  # False: getBundleStatuses has not caught up yet
        self.send_errors: List[Exception] = []
        self.poll_errors: List[Exception] = []  # raised by getInflightBundleStatuses, one per call
        self.bundles: Dict[str, List[str]] = {}
        self.sent_bundles: List[List[str]] = []
        self.tip_calls = 0
        self.calls = 0

    async def get_tip_accounts(self) -> List[str]:
        self.calls += 1
        self.tip_calls += 1
        return list(self.tip_accounts)

    async def send_bundle(self, encoded_transactions) -> str:
        self.calls += 1
        if self.send_errors:
            raise self.send_errors.pop(0)
        bundle_id = f"bundle-{len(self.sent_bundles) + 1}"
        self.sent_bundles.append(list(encoded_transactions))
        self.bundles[bundle_id] = list(encoded_transactions)
        return bundle_id

    async def get_inflight_bundle_statuses(self, bundle_ids) -> List[InflightStatus]:
        self.calls += 1
        if self.poll_errors:
            raise self.poll_errors.pop(0)
        return [
            InflightStatus(bundle_id=b, status=self.status, landed_slot=self.slot if self.status == STATUS_LANDED else None)
            for b in bundle_ids
        ]

    async def get_bundle_statuses(self, bundle_ids) -> List[LandedBundle]:
        self.calls += 1
        if not self.indexed:
            return []
        records = []
        for bundle_id in bundle_ids:
            signatures = [str(tx.signatures[0]) for tx in decode_bundle(self.bundles[bundle_id])]
            if self.partial:
                signatures = signatures[:-1]
            records.append(LandedBundle(bundle_id=bundle_id, slot=self.slot, transaction_ids=signatures))
        return records


class RecordingAuditLogger(AuditLogger):
    def __init__(self):
        super().__init__(log_to_file=False)
        self.entries: List[dict] = []

    def log_bundle_event(self, event_type, outcome, **kwargs) -> dict:
        entry = super().log_bundle_event(event_type, outcome, **kwargs)
        self.entries.append(entry)
        return entry


# ============================================================================
# HELPERS
# ============================================================================

def confirmed_status(slot: int, err=None):
    return SimpleNamespace(slot=slot, err=err, confirmation_status=TransactionConfirmationStatus.Confirmed)


def decode_bundle(encoded: List[str]) -> List[VersionedTransaction]:
    return [VersionedTransaction.from_bytes(base64.b64decode(e)) for e in encoded]


def program_instructions(tx: VersionedTransaction, program_id: Pubkey) -> list:
    """Compiled instructions of `tx` that invoke `program_id`."""
    keys = tx.message.account_keys
    return [ix for ix in tx.message.instructions if keys[ix.program_id_index] == program_id]


# ============================================================================
# SHARED FIXTURES
# ============================================================================

@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def creator():
    return Wallet.generate()


@pytest.fixture
def buyers():
    return [Wallet.generate() for _ in range(3)]


@pytest.fixture
def token_identity():
    return TokenIdentity.generate()


@pytest.fixture
def global_state():
    return GlobalState(fee_recipient=PumpAddresses.FEE_RECIPIENT)


@pytest.fixture
def audit():
    return RecordingAuditLogger()
