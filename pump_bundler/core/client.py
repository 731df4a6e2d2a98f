# pump_bundler/core/client.py

from typing import List, Optional, Sequence

from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionStatus

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts as SolanaPyTxOpts

from pump_bundler.core.exceptions import LedgerRpcError
from pump_bundler.core.instruction_builder import InstructionBuilder
from pump_bundler.core.transactions import RecencyToken, SimulationResult
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


class SolanaClient:
    """
    Ledger RPC handle. Created once by the caller and injected into the resolver
    and submission components; nothing in the package opens its own connection.
    """

    def __init__(
        self,
        rpc_endpoint: str,
        commitment: Commitment = Confirmed,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        skip_preflight: bool = False,
        async_client: Optional[AsyncClient] = None,
    ) -> None:
        self.rpc_endpoint = rpc_endpoint
        self.async_client = async_client or AsyncClient(
            rpc_endpoint, commitment=commitment, timeout=timeout_seconds
        )
        self.commitment = commitment
        self.timeout_seconds = timeout_seconds
        self.skip_preflight = skip_preflight
        self.tx_opts = SolanaPyTxOpts(
            skip_preflight=self.skip_preflight,
            preflight_commitment=self.commitment,
            max_retries=0,  # retries belong to the caller
        )
        logger.info(f"SolanaClient initialized: {rpc_endpoint} @ {commitment}")

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        try:
            await self.async_client.close()
            logger.info("SolanaClient connection closed.")
        except Exception as e:
            logger.warning(f"Error closing SolanaClient: {e}")

    async def get_recency_token(self) -> RecencyToken:
        try:
            resp = await self.async_client.get_latest_blockhash(self.commitment)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"get_latest_blockhash failed: {e}") from e
        if not resp.value:
            raise LedgerRpcError("get_latest_blockhash returned no value")
        token = RecencyToken(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
        )
        logger.debug(f"Fetched recency token {token}")
        return token

    async def get_block_height(self) -> int:
        try:
            resp = await self.async_client.get_block_height(self.commitment)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"get_block_height failed: {e}") from e
        return resp.value

    async def get_account_state(self, pubkey: Pubkey) -> Optional[bytes]:
        """Raw account data, or None when the account does not exist."""
        try:
            resp = await self.async_client.get_account_info(pubkey, commitment=self.commitment)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"get_account_info {pubkey} failed: {e}") from e
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def simulate_transaction(self, tx: VersionedTransaction) -> SimulationResult:
        try:
            resp = await self.async_client.simulate_transaction(tx, sig_verify=False, commitment=self.commitment)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"simulate_transaction failed: {e}") from e
        value = resp.value
        logs = list(value.logs or [])
        if value.err is not None:
            return SimulationResult(ok=False, err=str(value.err), logs=logs, units_consumed=value.units_consumed)
        return SimulationResult(ok=True, logs=logs, units_consumed=value.units_consumed)

    async def send_transaction(self, tx: VersionedTransaction) -> str:
        try:
            resp = await self.async_client.send_transaction(tx, opts=self.tx_opts)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"send_transaction failed: {e}") from e
        logger.info(f"Tx sent: {resp.value}")
        return str(resp.value)

    async def get_signature_statuses(self, signatures: Sequence[str]) -> List[Optional[TransactionStatus]]:
        sigs = [Signature.from_string(s) for s in signatures]
        try:
            resp = await self.async_client.get_signature_statuses(sigs)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"get_signature_statuses failed: {e}") from e
        return list(resp.value)

    async def get_token_balance(self, owner: Pubkey, mint: Pubkey) -> int:
        """Token units held in the owner's associated account; 0 when the account is missing."""
        ata = InstructionBuilder.get_associated_token_address(owner, mint)
        try:
            resp = await self.async_client.get_token_account_balance(ata, self.commitment)
        except RPCException:
            logger.warning(f"Account not found {ata}")
            return 0
        except SolanaRpcException as e:
            raise LedgerRpcError(f"get_token_account_balance {ata} failed: {e}") from e
        return int(resp.value.amount)

    async def get_recent_prioritization_fees(self, accounts: Optional[List[Pubkey]] = None) -> List[int]:
        try:
            resp = await self.async_client.get_recent_prioritization_fees(accounts or [])
        except (SolanaRpcException, RPCException) as e:
            raise LedgerRpcError(f"get_recent_prioritization_fees failed: {e}") from e
        return [item.prioritization_fee for item in (resp.value or [])]
