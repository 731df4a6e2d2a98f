# pump_bundler/core/curve.py

from dataclasses import dataclass, replace
from typing import Optional

# --- Solana/Borsh Imports ---
from borsh_construct import CStruct, U64, Bool
from construct import Bytes, ConstructError
from solders.pubkey import Pubkey

from pump_bundler.core.constants import (
    DEFAULT_FEE_BASIS_POINTS,
    DEFAULT_INITIAL_VIRTUAL_TOKEN_RESERVES,
    DEFAULT_INITIAL_VIRTUAL_SOL_RESERVES,
    DEFAULT_INITIAL_REAL_TOKEN_RESERVES,
    DEFAULT_TOKEN_TOTAL_SUPPLY,
)
from pump_bundler.core.exceptions import SlippageError
from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)

ACCOUNT_DISCRIMINATOR_SIZE = 8

# --- Bonding Curve Layout ---
# Trailing bytes (e.g. the creator field on newer accounts) are ignored by parse().
BONDING_CURVE_LAYOUT = CStruct(
    "virtual_token_reserves" / U64,
    "virtual_sol_reserves" / U64,
    "real_token_reserves" / U64,
    "real_sol_reserves" / U64,
    "token_total_supply" / U64,
    "complete" / Bool,
)

GLOBAL_LAYOUT = CStruct(
    "initialized" / Bool,
    "authority" / Bytes(32),
    "fee_recipient" / Bytes(32),
    "initial_virtual_token_reserves" / U64,
    "initial_virtual_sol_reserves" / U64,
    "initial_real_token_reserves" / U64,
    "token_total_supply" / U64,
    "fee_basis_points" / U64,
)


def with_fee(amount: int, fee_basis_points: int) -> int:
    return amount + (amount * fee_basis_points) // 10_000


# --- Bonding Curve State Dataclass ---
@dataclass(frozen=True)
class BondingCurveState:
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool = False

    def buy_quote(self, sol_in_lamports: int) -> int:
        """Token units received for `sol_in_lamports` of curve input (fee excluded)."""
        if sol_in_lamports <= 0:
            return 0
        if self.virtual_sol_reserves == 0:
            logger.warning("Attempted to quote a buy against zero virtual SOL reserves.")
            return 0
        product = self.virtual_sol_reserves * self.virtual_token_reserves
        new_sol_reserves = self.virtual_sol_reserves + sol_in_lamports
        new_token_reserves = product // new_sol_reserves + 1
        tokens_out = self.virtual_token_reserves - new_token_reserves
        return max(0, min(tokens_out, self.real_token_reserves))

    def buy_cost(self, token_amount: int) -> int:
        """SOL the program charges for exactly `token_amount` units, before the protocol fee."""
        if token_amount <= 0:
            return 0
        if token_amount >= self.virtual_token_reserves:
            raise SlippageError(
                f"Requested {token_amount} tokens exceeds virtual reserves {self.virtual_token_reserves}"
            )
        return (token_amount * self.virtual_sol_reserves) // (self.virtual_token_reserves - token_amount) + 1

    def check_buy(self, token_amount: int, max_sol_cost: int, fee_basis_points: int) -> int:
        """
        Mirrors the program's cost check for a buy. Returns the total cost in lamports
        or raises SlippageError when it would exceed `max_sol_cost`.
        """
        if token_amount > self.real_token_reserves:
            raise SlippageError(
                f"Requested {token_amount} tokens but only {self.real_token_reserves} remain on the curve"
            )
        total_cost = with_fee(self.buy_cost(token_amount), fee_basis_points)
        if total_cost > max_sol_cost:
            raise SlippageError(
                f"Buy of {token_amount} tokens costs {total_cost} lamports, above ceiling {max_sol_cost}"
            )
        return total_cost

    def sell_quote(self, token_amount: int, fee_basis_points: int) -> int:
        """Lamports received for selling `token_amount` units, protocol fee deducted."""
        if token_amount <= 0:
            return 0
        if self.virtual_token_reserves + token_amount == 0:
            return 0
        sol_out = (self.virtual_sol_reserves * token_amount) // (self.virtual_token_reserves + token_amount)
        fee = (sol_out * fee_basis_points) // 10_000
        return sol_out - fee

    def after_buy(self, sol_in_lamports: int, token_amount: int) -> "BondingCurveState":
        """Curve state after a buy lands; later buys in the same bundle are quoted against it."""
        return replace(
            self,
            virtual_token_reserves=self.virtual_token_reserves - token_amount,
            virtual_sol_reserves=self.virtual_sol_reserves + sol_in_lamports,
            real_token_reserves=self.real_token_reserves - token_amount,
            real_sol_reserves=self.real_sol_reserves + sol_in_lamports,
        )


@dataclass(frozen=True)
class GlobalState:
    fee_recipient: Pubkey
    initial_virtual_token_reserves: int = DEFAULT_INITIAL_VIRTUAL_TOKEN_RESERVES
    initial_virtual_sol_reserves: int = DEFAULT_INITIAL_VIRTUAL_SOL_RESERVES
    initial_real_token_reserves: int = DEFAULT_INITIAL_REAL_TOKEN_RESERVES
    token_total_supply: int = DEFAULT_TOKEN_TOTAL_SUPPLY
    fee_basis_points: int = DEFAULT_FEE_BASIS_POINTS

    def initial_curve(self) -> BondingCurveState:
        """The curve every freshly created mint starts from."""
        return BondingCurveState(
            virtual_token_reserves=self.initial_virtual_token_reserves,
            virtual_sol_reserves=self.initial_virtual_sol_reserves,
            real_token_reserves=self.initial_real_token_reserves,
            real_sol_reserves=0,
            token_total_supply=self.token_total_supply,
            complete=False,
        )


# --- Standalone Decoder Functions ---
def decode_bonding_curve_account(raw_data: bytes) -> Optional[BondingCurveState]:
    """Decodes raw bonding curve account data (8-byte Anchor discriminator first)."""
    expected = ACCOUNT_DISCRIMINATOR_SIZE + BONDING_CURVE_LAYOUT.sizeof()
    if len(raw_data) < expected:
        logger.error(f"Bonding curve account too short: {len(raw_data)} bytes (expected at least {expected}).")
        return None
    try:
        parsed = BONDING_CURVE_LAYOUT.parse(raw_data[ACCOUNT_DISCRIMINATOR_SIZE:])
    except ConstructError as e:
        logger.error(f"Borsh construct error decoding bonding curve data: {e}")
        return None
    return BondingCurveState(
        virtual_token_reserves=parsed.virtual_token_reserves,
        virtual_sol_reserves=parsed.virtual_sol_reserves,
        real_token_reserves=parsed.real_token_reserves,
        real_sol_reserves=parsed.real_sol_reserves,
        token_total_supply=parsed.token_total_supply,
        complete=bool(parsed.complete),
    )


def decode_global_account(raw_data: bytes) -> Optional[GlobalState]:
    """Decodes the pump.fun global account."""
    expected = ACCOUNT_DISCRIMINATOR_SIZE + GLOBAL_LAYOUT.sizeof()
    if len(raw_data) < expected:
        logger.error(f"Global account too short: {len(raw_data)} bytes (expected at least {expected}).")
        return None
    try:
        parsed = GLOBAL_LAYOUT.parse(raw_data[ACCOUNT_DISCRIMINATOR_SIZE:])
    except ConstructError as e:
        logger.error(f"Borsh construct error decoding global account: {e}")
        return None
    return GlobalState(
        fee_recipient=Pubkey.from_bytes(parsed.fee_recipient),
        initial_virtual_token_reserves=parsed.initial_virtual_token_reserves,
        initial_virtual_sol_reserves=parsed.initial_virtual_sol_reserves,
        initial_real_token_reserves=parsed.initial_real_token_reserves,
        token_total_supply=parsed.token_total_supply,
        fee_basis_points=parsed.fee_basis_points,
    )
