# pump_bundler/core/instruction_builder.py
"""
Pure builders for the pump.fun instructions a bundle is made of.

Every builder returns one of a closed set of variants (CreateIx, BuyIx, SellIx,
CreateAccountIx, FeeBidIx). Each variant keeps its typed arguments next to the
compiled solders Instruction so the assembler can order transactions by variant
instead of inspecting raw account lists. Nothing here signs or touches the network.
"""
from dataclasses import dataclass
from typing import Union

from borsh_construct import CStruct, String
from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey
from solders.system_program import transfer, TransferParams

from pump_bundler.core.constants import (
    MAX_NAME_LENGTH,
    MAX_SYMBOL_LENGTH,
    MAX_URI_LENGTH,
    U64_MAX,
)
from pump_bundler.core.pubkeys import PumpAddresses, SolanaProgramAddresses

# --- Instruction Discriminators (Anchor, from the pump.fun IDL) ---
CREATE_DISCRIMINATOR = bytes.fromhex("181ec828051c0777")
BUY_DISCRIMINATOR = bytes.fromhex("66063d1201daebea")
SELL_DISCRIMINATOR = bytes.fromhex("33e685a4017f83ad")

CREATE_ARGS_LAYOUT = CStruct(
    "name" / String,
    "symbol" / String,
    "uri" / String,
)


@dataclass(frozen=True)
class CreateIx:
    mint: Pubkey
    creator: Pubkey
    name: str
    symbol: str
    uri: str
    instruction: Instruction


@dataclass(frozen=True)
class BuyIx:
    owner: Pubkey
    mint: Pubkey
    token_amount: int
    max_sol_cost: int
    instruction: Instruction


@dataclass(frozen=True)
class SellIx:
    owner: Pubkey
    mint: Pubkey
    token_amount: int
    min_sol_output: int
    instruction: Instruction


@dataclass(frozen=True)
class CreateAccountIx:
    payer: Pubkey
    owner: Pubkey
    mint: Pubkey
    account: Pubkey
    instruction: Instruction


@dataclass(frozen=True)
class FeeBidIx:
    payer: Pubkey
    tip_account: Pubkey
    lamports: int
    instruction: Instruction


BundleInstruction = Union[CreateIx, BuyIx, SellIx, CreateAccountIx, FeeBidIx]


def _u64(value: int, field_name: str) -> bytes:
    if not isinstance(value, int) or value < 0 or value > U64_MAX:
        raise ValueError(f"{field_name} must be an unsigned 64-bit integer, got {value!r}")
    return value.to_bytes(8, "little")


def _check_length(value: str, limit: int, field_name: str) -> None:
    if not value:
        raise ValueError(f"{field_name} cannot be empty")
    if len(value.encode("utf-8")) > limit:
        raise ValueError(f"{field_name} is longer than {limit} bytes: {value!r}")


class InstructionBuilder:
    @staticmethod
    def get_associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
        """Calculates the Associated Token Account address for a given owner and mint."""
        pda, _bump_seed = Pubkey.find_program_address(
            [bytes(owner), bytes(SolanaProgramAddresses.TOKEN_PROGRAM_ID), bytes(mint)],
            SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID
        )
        return pda

    @staticmethod
    def get_bonding_curve_address(mint: Pubkey) -> Pubkey:
        pda, _bump_seed = Pubkey.find_program_address(
            [PumpAddresses.BONDING_CURVE_SEED, bytes(mint)],
            PumpAddresses.PROGRAM_ID
        )
        return pda

    @staticmethod
    def get_metadata_address(mint: Pubkey) -> Pubkey:
        pda, _bump_seed = Pubkey.find_program_address(
            [
                SolanaProgramAddresses.METADATA_SEED,
                bytes(SolanaProgramAddresses.MPL_TOKEN_METADATA_PROGRAM_ID),
                bytes(mint),
            ],
            SolanaProgramAddresses.MPL_TOKEN_METADATA_PROGRAM_ID
        )
        return pda

    @staticmethod
    def build_create_account(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> CreateAccountIx:
        """
        Generates the instruction to create an Associated Token Account.
        The resolver decides whether the account is missing.
        """
        associated_token_address = InstructionBuilder.get_associated_token_address(owner, mint)

        instruction = Instruction(
            program_id=SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID,
            accounts=[
                AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
                AccountMeta(pubkey=associated_token_address, is_signer=False, is_writable=True),
                AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
                AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
                AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=SolanaProgramAddresses.TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
                AccountMeta(pubkey=SolanaProgramAddresses.RENT_SYSVAR_PUBKEY, is_signer=False, is_writable=False),
            ],
            data=b''
        )
        return CreateAccountIx(
            payer=payer, owner=owner, mint=mint, account=associated_token_address, instruction=instruction
        )

    @staticmethod
    def set_compute_unit_limit(units: int) -> Instruction:
        """Creates an instruction to set the compute unit limit for the transaction."""
        # Instruction data: 8-bit instruction discriminator (2 for set_compute_unit_limit), 32-bit units
        data = b'\x02' + units.to_bytes(4, 'little')
        return Instruction(
            program_id=SolanaProgramAddresses.COMPUTE_BUDGET_PROGRAM_ID,
            accounts=[],
            data=data
        )

    @staticmethod
    def set_compute_unit_price(micro_lamports: int) -> Instruction:
        """Creates an instruction to set the compute unit price (priority fee) for the transaction."""
        # Instruction data: 8-bit instruction discriminator (3 for set_compute_unit_price), 64-bit micro_lamports
        data = b'\x03' + micro_lamports.to_bytes(8, 'little')
        return Instruction(
            program_id=SolanaProgramAddresses.COMPUTE_BUDGET_PROGRAM_ID,
            accounts=[],
            data=data
        )

    @staticmethod
    def build_create(
            mint_pubkey: Pubkey,
            creator_pubkey: Pubkey,
            name: str,
            symbol: str,
            metadata_uri: str,
    ) -> CreateIx:
        """Builds the pump.fun 'create' instruction binding a new mint to its bonding curve."""
        _check_length(name, MAX_NAME_LENGTH, "name")
        _check_length(symbol, MAX_SYMBOL_LENGTH, "symbol")
        _check_length(metadata_uri, MAX_URI_LENGTH, "metadata_uri")

        bonding_curve = InstructionBuilder.get_bonding_curve_address(mint_pubkey)
        associated_bonding_curve = InstructionBuilder.get_associated_token_address(bonding_curve, mint_pubkey)
        metadata = InstructionBuilder.get_metadata_address(mint_pubkey)

        instruction_data = CREATE_DISCRIMINATOR + CREATE_ARGS_LAYOUT.build(
            {"name": name, "symbol": symbol, "uri": metadata_uri}
        )

        accounts = [
            AccountMeta(pubkey=mint_pubkey, is_signer=True, is_writable=True),  # 0. mint
            AccountMeta(pubkey=PumpAddresses.MINT_AUTHORITY, is_signer=False, is_writable=False),  # 1. mintAuthority
            AccountMeta(pubkey=bonding_curve, is_signer=False, is_writable=True),  # 2. bondingCurve
            AccountMeta(pubkey=associated_bonding_curve, is_signer=False, is_writable=True),  # 3. associatedBondingCurve
            AccountMeta(pubkey=PumpAddresses.GLOBAL_STATE, is_signer=False, is_writable=False),  # 4. global
            AccountMeta(pubkey=SolanaProgramAddresses.MPL_TOKEN_METADATA_PROGRAM_ID, is_signer=False,
                        is_writable=False),  # 5. mplTokenMetadata
            AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),  # 6. metadata
            AccountMeta(pubkey=creator_pubkey, is_signer=True, is_writable=True),  # 7. user
            AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            # 8. systemProgram
            AccountMeta(pubkey=SolanaProgramAddresses.TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            # 9. tokenProgram
            AccountMeta(pubkey=SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID, is_signer=False,
                        is_writable=False),  # 10. associatedTokenProgram
            AccountMeta(pubkey=SolanaProgramAddresses.RENT_SYSVAR_PUBKEY, is_signer=False, is_writable=False),
            # 11. rent
            AccountMeta(pubkey=PumpAddresses.EVENT_AUTHORITY, is_signer=False, is_writable=False),  # 12. eventAuthority
            AccountMeta(pubkey=PumpAddresses.PROGRAM_ID, is_signer=False, is_writable=False),  # 13. program
        ]

        return CreateIx(
            mint=mint_pubkey,
            creator=creator_pubkey,
            name=name,
            symbol=symbol,
            uri=metadata_uri,
            instruction=Instruction(program_id=PumpAddresses.PROGRAM_ID, accounts=accounts, data=instruction_data),
        )

    @staticmethod
    def build_buy(
            user_wallet_pubkey: Pubkey,
            mint_pubkey: Pubkey,
            token_amount: int,
            max_sol_cost_lamports: int,
            fee_recipient: Pubkey = PumpAddresses.FEE_RECIPIENT,
    ) -> BuyIx:
        """
        Builds the pump.fun 'buy' instruction. `max_sol_cost_lamports` is a hard ceiling
        checked by the program: the transaction fails if buying `token_amount` costs more.
        """
        if token_amount <= 0:
            raise ValueError("Buy token amount cannot be zero")
        bonding_curve = InstructionBuilder.get_bonding_curve_address(mint_pubkey)
        associated_bonding_curve = InstructionBuilder.get_associated_token_address(bonding_curve, mint_pubkey)
        user_ata_pubkey = InstructionBuilder.get_associated_token_address(user_wallet_pubkey, mint_pubkey)

        instruction_data = (
                BUY_DISCRIMINATOR +
                _u64(token_amount, "token_amount") +
                _u64(max_sol_cost_lamports, "max_sol_cost")
        )

        accounts = [
            AccountMeta(pubkey=PumpAddresses.GLOBAL_STATE, is_signer=False, is_writable=False),  # 0. global
            AccountMeta(pubkey=fee_recipient, is_signer=False, is_writable=True),  # 1. feeRecipient
            AccountMeta(pubkey=mint_pubkey, is_signer=False, is_writable=False),  # 2. mint
            AccountMeta(pubkey=bonding_curve, is_signer=False, is_writable=True),  # 3. bondingCurve
            AccountMeta(pubkey=associated_bonding_curve, is_signer=False, is_writable=True),
            # 4. associatedBondingCurve
            AccountMeta(pubkey=user_ata_pubkey, is_signer=False, is_writable=True),  # 5. associatedUser
            AccountMeta(pubkey=user_wallet_pubkey, is_signer=True, is_writable=True),  # 6. user
            AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            # 7. systemProgram
            AccountMeta(pubkey=SolanaProgramAddresses.TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            # 8. tokenProgram
            AccountMeta(pubkey=SolanaProgramAddresses.RENT_SYSVAR_PUBKEY, is_signer=False, is_writable=False),
            # 9. rent
            AccountMeta(pubkey=PumpAddresses.EVENT_AUTHORITY, is_signer=False, is_writable=False),  # 10. eventAuthority
            AccountMeta(pubkey=PumpAddresses.PROGRAM_ID, is_signer=False, is_writable=False),  # 11. program
        ]

        return BuyIx(
            owner=user_wallet_pubkey,
            mint=mint_pubkey,
            token_amount=token_amount,
            max_sol_cost=max_sol_cost_lamports,
            instruction=Instruction(program_id=PumpAddresses.PROGRAM_ID, accounts=accounts, data=instruction_data),
        )

    @staticmethod
    def build_sell(
            user_wallet_pubkey: Pubkey,
            mint_pubkey: Pubkey,
            token_amount: int,
            min_sol_output_lamports: int,
            fee_recipient: Pubkey = PumpAddresses.FEE_RECIPIENT,
    ) -> SellIx:
        """Builds the pump.fun 'sell' instruction. The output floor is enforced on-chain."""
        if token_amount <= 0:
            raise ValueError("Sell token amount cannot be zero")
        bonding_curve = InstructionBuilder.get_bonding_curve_address(mint_pubkey)
        associated_bonding_curve = InstructionBuilder.get_associated_token_address(bonding_curve, mint_pubkey)
        user_ata_pubkey = InstructionBuilder.get_associated_token_address(user_wallet_pubkey, mint_pubkey)

        instruction_data = (
                SELL_DISCRIMINATOR +
                _u64(token_amount, "token_amount") +
                _u64(min_sol_output_lamports, "min_sol_output")
        )

        accounts = [
            AccountMeta(pubkey=PumpAddresses.GLOBAL_STATE, is_signer=False, is_writable=False),  # 0. global
            AccountMeta(pubkey=fee_recipient, is_signer=False, is_writable=True),  # 1. feeRecipient
            AccountMeta(pubkey=mint_pubkey, is_signer=False, is_writable=False),  # 2. mint
            AccountMeta(pubkey=bonding_curve, is_signer=False, is_writable=True),  # 3. bondingCurve
            AccountMeta(pubkey=associated_bonding_curve, is_signer=False, is_writable=True),
            # 4. associatedBondingCurve
            AccountMeta(pubkey=user_ata_pubkey, is_signer=False, is_writable=True),  # 5. associatedUser
            AccountMeta(pubkey=user_wallet_pubkey, is_signer=True, is_writable=True),  # 6. user
            AccountMeta(pubkey=SolanaProgramAddresses.SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            # 7. systemProgram
            AccountMeta(pubkey=SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID, is_signer=False,
                        is_writable=False),  # 8. associatedTokenProgram
            AccountMeta(pubkey=SolanaProgramAddresses.TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            # 9. tokenProgram
            AccountMeta(pubkey=PumpAddresses.EVENT_AUTHORITY, is_signer=False, is_writable=False),  # 10. eventAuthority
            AccountMeta(pubkey=PumpAddresses.PROGRAM_ID, is_signer=False, is_writable=False),  # 11. program
        ]

        return SellIx(
            owner=user_wallet_pubkey,
            mint=mint_pubkey,
            token_amount=token_amount,
            min_sol_output=min_sol_output_lamports,
            instruction=Instruction(program_id=PumpAddresses.PROGRAM_ID, accounts=accounts, data=instruction_data),
        )

    @staticmethod
    def build_fee_bid(payer: Pubkey, tip_account: Pubkey, lamports: int) -> FeeBidIx:
        """Single system transfer paying the relay's incentive account."""
        if lamports <= 0:
            raise ValueError("Fee bid must be positive")
        instruction = transfer(TransferParams(from_pubkey=payer, to_pubkey=tip_account, lamports=lamports))
        return FeeBidIx(payer=payer, tip_account=tip_account, lamports=lamports, instruction=instruction)
