# pump_bundler/core/accounts.py
"""
Deterministic derivation of the program-owned addresses a bundle touches.

Derivations are pure functions of public keys and well-known program ids. The
resolver only talks to the ledger to learn which holding accounts already exist
and to read curve/global state; it keeps no state between calls.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from pump_bundler.core.curve import (
    BondingCurveState,
    GlobalState,
    decode_bonding_curve_account,
    decode_global_account,
)
from pump_bundler.core.exceptions import AddressDerivationError, LedgerRpcError
from pump_bundler.core.instruction_builder import CreateAccountIx, InstructionBuilder
from pump_bundler.core.pubkeys import PumpAddresses
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

PubkeyLike = Union[Pubkey, str, bytes]


def to_pubkey(value: PubkeyLike) -> Pubkey:
    """Coerces a Pubkey, base58 string or 32 raw bytes; anything else is malformed."""
    if isinstance(value, Pubkey):
        return value
    try:
        if isinstance(value, str):
            return Pubkey.from_string(value)
        if isinstance(value, (bytes, bytearray)):
            if len(value) != 32:
                raise ValueError(f"expected 32 bytes, got {len(value)}")
            return Pubkey.from_bytes(bytes(value))
    except Exception as e:
        raise AddressDerivationError(f"Malformed public key {value!r}: {e}") from e
    raise AddressDerivationError(f"Unsupported public key type {type(value).__name__}")


@dataclass(frozen=True)
class ResolvedAccounts:
    mint: Pubkey
    bonding_curve: Pubkey
    associated_bonding_curve: Pubkey
    metadata: Pubkey
    holding_accounts: Dict[Pubkey, Pubkey] = field(default_factory=dict)
    missing_holding_accounts: Tuple[Pubkey, ...] = ()

    def holding_account(self, owner: Pubkey) -> Pubkey:
        return self.holding_accounts[owner]

    def needs_holding_account(self, owner: Pubkey) -> bool:
        return owner in self.missing_holding_accounts


class AccountResolver:
    def __init__(self, client):
        self.client = client  # Expects SolanaClient (or anything with get_account_state)

    @staticmethod
    def bonding_curve(mint: PubkeyLike) -> Pubkey:
        return InstructionBuilder.get_bonding_curve_address(to_pubkey(mint))

    @staticmethod
    def associated_bonding_curve(mint: PubkeyLike) -> Pubkey:
        mint_pk = to_pubkey(mint)
        return InstructionBuilder.get_associated_token_address(
            InstructionBuilder.get_bonding_curve_address(mint_pk), mint_pk
        )

    @staticmethod
    def metadata(mint: PubkeyLike) -> Pubkey:
        return InstructionBuilder.get_metadata_address(to_pubkey(mint))

    @staticmethod
    def associated_token_account(owner: PubkeyLike, mint: PubkeyLike) -> Pubkey:
        return InstructionBuilder.get_associated_token_address(to_pubkey(owner), to_pubkey(mint))

    @staticmethod
    def derive(mint: PubkeyLike, owners: Sequence[PubkeyLike]) -> ResolvedAccounts:
        """Pure derivation for one mint and its holders. No network I/O."""
        mint_pk = to_pubkey(mint)
        owner_pks = [to_pubkey(o) for o in owners]
        bonding_curve = InstructionBuilder.get_bonding_curve_address(mint_pk)
        return ResolvedAccounts(
            mint=mint_pk,
            bonding_curve=bonding_curve,
            associated_bonding_curve=InstructionBuilder.get_associated_token_address(bonding_curve, mint_pk),
            metadata=InstructionBuilder.get_metadata_address(mint_pk),
            holding_accounts={
                owner: InstructionBuilder.get_associated_token_address(owner, mint_pk) for owner in owner_pks
            },
        )

    async def resolve(
            self,
            mint: PubkeyLike,
            owners: Sequence[PubkeyLike],
            mint_is_new: bool = False,
    ) -> ResolvedAccounts:
        """
        Derives all addresses and marks which holding accounts must be created.
        For a mint created in the same bundle every holding account is missing,
        so the ledger is not queried.
        """
        derived = self.derive(mint, owners)
        owner_pks = list(derived.holding_accounts.keys())
        if mint_is_new:
            missing = tuple(owner_pks)
        else:
            states = await asyncio.gather(
                *(self.client.get_account_state(derived.holding_accounts[o]) for o in owner_pks)
            )
            missing = tuple(o for o, state in zip(owner_pks, states) if state is None)
        if missing:
            logger.debug(f"{len(missing)} holding account(s) missing for mint {derived.mint}")
        return ResolvedAccounts(
            mint=derived.mint,
            bonding_curve=derived.bonding_curve,
            associated_bonding_curve=derived.associated_bonding_curve,
            metadata=derived.metadata,
            holding_accounts=derived.holding_accounts,
            missing_holding_accounts=missing,
        )

    @staticmethod
    def create_account_instructions(
            resolved: ResolvedAccounts,
            payer_for: Dict[Pubkey, Pubkey] = None,
    ) -> Dict[Pubkey, CreateAccountIx]:
        """One create-account instruction per missing holding account, keyed by owner."""
        payer_for = payer_for or {}
        return {
            owner: InstructionBuilder.build_create_account(payer_for.get(owner, owner), owner, resolved.mint)
            for owner in resolved.missing_holding_accounts
        }

    async def fetch_global_state(self) -> GlobalState:
        raw = await self.client.get_account_state(PumpAddresses.GLOBAL_STATE)
        if raw is None:
            raise LedgerRpcError(f"Global account {PumpAddresses.GLOBAL_STATE} not found")
        state = decode_global_account(raw)
        if state is None:
            raise LedgerRpcError("Failed to decode global account")
        return state

    async def fetch_curve_state(self, mint: PubkeyLike) -> BondingCurveState:
        curve_address = self.bonding_curve(mint)
        raw = await self.client.get_account_state(curve_address)
        if raw is None:
            raise LedgerRpcError(f"Bonding curve {curve_address} not found")
        state = decode_bonding_curve_account(raw)
        if state is None:
            raise LedgerRpcError(f"Failed to decode bonding curve {curve_address}")
        logger.debug(f"Fetched curve state for {curve_address}: {state}")
        return state

    @staticmethod
    def owners_of(wallets: Sequence) -> List[Pubkey]:
        return [w.pubkey for w in wallets]
