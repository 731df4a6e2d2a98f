"""
Test Suite: Instruction Builder
===============================
Verifies pump.fun instruction data layouts, account lists and argument checks.

Run: pytest tests/test_instruction_builder.py -v
"""

import pytest
from solders.pubkey import Pubkey

from pump_bundler.core.instruction_builder import (
    BUY_DISCRIMINATOR,
    CREATE_DISCRIMINATOR,
    SELL_DISCRIMINATOR,
    InstructionBuilder,
)
from pump_bundler.core.pubkeys import PumpAddresses, SolanaProgramAddresses

pytestmark = pytest.mark.unit


class TestBuy:
    def test_data_layout(self):
        user, mint = Pubkey.new_unique(), Pubkey.new_unique()
        ix = InstructionBuilder.build_buy(user, mint, 123_456_789, 110_000_000)

        data = bytes(ix.instruction.data)
        assert data[:8] == BUY_DISCRIMINATOR
        assert int.from_bytes(data[8:16], "little") == 123_456_789
        assert int.from_bytes(data[16:24], "little") == 110_000_000
        assert len(data) == 24

    def test_ceiling_is_encoded_exactly(self):
        """Large ceilings must not be truncated to 32 bits."""
        ceiling = 2**40 + 7
        ix = InstructionBuilder.build_buy(Pubkey.new_unique(), Pubkey.new_unique(), 1, ceiling)
        assert int.from_bytes(bytes(ix.instruction.data)[16:24], "little") == ceiling
        assert ix.max_sol_cost == ceiling

    def test_rejects_values_outside_u64(self):
        with pytest.raises(ValueError):
            InstructionBuilder.build_buy(Pubkey.new_unique(), Pubkey.new_unique(), 1, 2**64)
        with pytest.raises(ValueError):
            InstructionBuilder.build_buy(Pubkey.new_unique(), Pubkey.new_unique(), 0, 1_000)

    def test_accounts(self):
        user, mint = Pubkey.new_unique(), Pubkey.new_unique()
        ix = InstructionBuilder.build_buy(user, mint, 1_000, 1_000).instruction
        keys = [meta.pubkey for meta in ix.accounts]

        assert ix.program_id == PumpAddresses.PROGRAM_ID
        assert len(keys) == 12
        assert keys[0] == PumpAddresses.GLOBAL_STATE
        assert keys[1] == PumpAddresses.FEE_RECIPIENT
        assert keys[2] == mint
        assert keys[3] == InstructionBuilder.get_bonding_curve_address(mint)
        assert keys[5] == InstructionBuilder.get_associated_token_address(user, mint)
        assert keys[6] == user and ix.accounts[6].is_signer

    def test_fee_recipient_override(self):
        recipient = Pubkey.new_unique()
        ix = InstructionBuilder.build_buy(Pubkey.new_unique(), Pubkey.new_unique(), 1, 1, fee_recipient=recipient)
        assert ix.instruction.accounts[1].pubkey == recipient


class TestSell:
    def test_data_layout(self):
        ix = InstructionBuilder.build_sell(Pubkey.new_unique(), Pubkey.new_unique(), 500, 42)
        data = bytes(ix.instruction.data)
        assert data[:8] == SELL_DISCRIMINATOR
        assert int.from_bytes(data[8:16], "little") == 500
        assert int.from_bytes(data[16:24], "little") == 42

    def test_zero_amount_rejected(self):
        with pytest.raises(ValueError):
            InstructionBuilder.build_sell(Pubkey.new_unique(), Pubkey.new_unique(), 0, 0)


class TestCreate:
    def test_data_is_borsh_strings(self):
        mint, creator = Pubkey.new_unique(), Pubkey.new_unique()
        ix = InstructionBuilder.build_create(mint, creator, "Moon", "MOON", "https://example.org/m.json")
        data = bytes(ix.instruction.data)

        assert data[:8] == CREATE_DISCRIMINATOR
        assert int.from_bytes(data[8:12], "little") == 4
        assert data[12:16] == b"Moon"
        assert int.from_bytes(data[16:20], "little") == 4
        assert data[20:24] == b"MOON"
        uri = b"https://example.org/m.json"
        assert int.from_bytes(data[24:28], "little") == len(uri)
        assert data[28:] == uri

    def test_mint_and_creator_sign(self):
        mint, creator = Pubkey.new_unique(), Pubkey.new_unique()
        ix = InstructionBuilder.build_create(mint, creator, "Moon", "MOON", "ipfs://x").instruction
        signers = [meta.pubkey for meta in ix.accounts if meta.is_signer]
        assert signers == [mint, creator]
        assert len(ix.accounts) == 14

    @pytest.mark.parametrize("name,symbol,uri", [
        ("", "MOON", "ipfs://x"),
        ("x" * 33, "MOON", "ipfs://x"),
        ("Moon", "TOOLONGSYMB", "ipfs://x"),
        ("Moon", "MOON", "u" * 201),
    ])
    def test_string_limits(self, name, symbol, uri):
        with pytest.raises(ValueError):
            InstructionBuilder.build_create(Pubkey.new_unique(), Pubkey.new_unique(), name, symbol, uri)


class TestAuxiliary:
    def test_create_account_targets_associated_address(self):
        payer, owner, mint = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()
        ix = InstructionBuilder.build_create_account(payer, owner, mint)

        assert ix.account == InstructionBuilder.get_associated_token_address(owner, mint)
        assert ix.instruction.program_id == SolanaProgramAddresses.ASSOCIATED_TOKEN_ACCOUNT_PROGRAM_ID
        assert ix.instruction.accounts[0].pubkey == payer

    def test_fee_bid_is_single_transfer(self):
        payer, tip = Pubkey.new_unique(), Pubkey.new_unique()
        ix = InstructionBuilder.build_fee_bid(payer, tip, 1_000_000)

        assert ix.instruction.program_id == SolanaProgramAddresses.SYSTEM_PROGRAM_ID
        assert [m.pubkey for m in ix.instruction.accounts] == [payer, tip]
        # System transfer: u32 index 2, then u64 lamports
        assert bytes(ix.instruction.data) == (2).to_bytes(4, "little") + (1_000_000).to_bytes(8, "little")

    def test_fee_bid_must_be_positive(self):
        with pytest.raises(ValueError):
            InstructionBuilder.build_fee_bid(Pubkey.new_unique(), Pubkey.new_unique(), 0)

    def test_compute_budget_layouts(self):
        limit = InstructionBuilder.set_compute_unit_limit(200_000)
        price = InstructionBuilder.set_compute_unit_price(5_000)
        assert bytes(limit.data) == b"\x02" + (200_000).to_bytes(4, "little")
        assert bytes(price.data) == b"\x03" + (5_000).to_bytes(8, "little")
