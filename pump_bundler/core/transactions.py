# pump_bundler/core/transactions.py

import base64
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from solders.hash import Hash as Blockhash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from pump_bundler.core.constants import PACKET_DATA_SIZE
from pump_bundler.core.exceptions import BundleTooLargeError
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecencyToken:
    """
    A recent blockhash and the last block height at which transactions carrying it are valid.
    Fetched once per submission attempt and shared by every transaction of that attempt.
    """
    blockhash: Blockhash
    last_valid_block_height: int

    def is_expired(self, current_block_height: int) -> bool:
        return current_block_height > self.last_valid_block_height

    def __str__(self) -> str:
        return f"{self.blockhash}@{self.last_valid_block_height}"


@dataclass
class SimulationResult:
    ok: bool
    err: Optional[str] = None
    logs: List[str] = field(default_factory=list)
    units_consumed: Optional[int] = None


def compile_and_sign(
        payer: Pubkey,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        recency_token: RecencyToken,
) -> VersionedTransaction:
    """Compiles a v0 message against the recency token and signs it with every signer."""
    compiled_message = MessageV0.try_compile(
        payer=payer,
        instructions=list(instructions),
        address_lookup_table_accounts=[],  # Not using LUTs
        recent_blockhash=recency_token.blockhash,
    )
    return VersionedTransaction(compiled_message, list(signers))


def serialized_size(tx: VersionedTransaction) -> int:
    return len(bytes(tx))


def ensure_fits_packet(tx: VersionedTransaction, label: str, limit: int = PACKET_DATA_SIZE) -> None:
    size = serialized_size(tx)
    if size > limit:
        raise BundleTooLargeError(f"{label} serializes to {size} bytes, above the {limit}-byte packet limit")


def encode_transaction(tx: VersionedTransaction) -> str:
    """Base64 wire form accepted by the relay."""
    return base64.b64encode(bytes(tx)).decode("ascii")


def transaction_id(tx: VersionedTransaction) -> str:
    """The fee payer's signature identifies the transaction on the ledger."""
    return str(tx.signatures[0])
