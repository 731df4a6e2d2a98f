"""
Test Suite: Account Resolution and Wallets
==========================================
"""

import base58
import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from pump_bundler.core.accounts import AccountResolver, to_pubkey
from pump_bundler.core.exceptions import AddressDerivationError, LedgerRpcError
from pump_bundler.core.instruction_builder import InstructionBuilder
from pump_bundler.core.pubkeys import PumpAddresses
from pump_bundler.core.wallet import TokenIdentity, Wallet


class TestToPubkey:
    def test_accepts_string_bytes_and_pubkey(self):
        pk = Pubkey.new_unique()
        assert to_pubkey(pk) == pk
        assert to_pubkey(str(pk)) == pk
        assert to_pubkey(bytes(pk)) == pk

    @pytest.mark.parametrize("bad", ["not-a-key", "0" * 60, b"\x01" * 31, 12345])
    def test_malformed_is_fatal(self, bad):
        with pytest.raises(AddressDerivationError):
            to_pubkey(bad)


class TestDerivation:
    def test_derive_is_deterministic(self):
        mint, owner = Pubkey.new_unique(), Pubkey.new_unique()
        first = AccountResolver.derive(mint, [owner])
        second = AccountResolver.derive(str(mint), [str(owner)])
        assert first == second
        assert first.holding_account(owner) == InstructionBuilder.get_associated_token_address(owner, mint)
        assert first.associated_bonding_curve == AccountResolver.associated_bonding_curve(mint)

    def test_distinct_identities_share_nothing(self):
        owner = Pubkey.new_unique()
        a = AccountResolver.derive(TokenIdentity.generate().mint, [owner])
        b = AccountResolver.derive(TokenIdentity.generate().mint, [owner])
        assert a.bonding_curve != b.bonding_curve
        assert a.metadata != b.metadata
        assert a.holding_account(owner) != b.holding_account(owner)

    def test_malformed_owner(self):
        with pytest.raises(AddressDerivationError):
            AccountResolver.derive(Pubkey.new_unique(), ["definitely not base58!"])


class TestResolve:
    async def test_new_mint_does_not_touch_ledger(self, ledger):
        resolver = AccountResolver(ledger)
        owners = [Pubkey.new_unique() for _ in range(3)]
        resolved = await resolver.resolve(Pubkey.new_unique(), owners, mint_is_new=True)

        assert ledger.calls == 0
        assert resolved.missing_holding_accounts == tuple(owners)
        assert set(resolver.create_account_instructions(resolved)) == set(owners)

    async def test_existing_accounts_are_skipped(self, ledger):
        mint, has, lacks = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()
        ledger.accounts[InstructionBuilder.get_associated_token_address(has, mint)] = b"\x00" * 165
        resolved = await AccountResolver(ledger).resolve(mint, [has, lacks])

        assert not resolved.needs_holding_account(has)
        assert resolved.needs_holding_account(lacks)
        creates = AccountResolver.create_account_instructions(resolved)
        assert list(creates) == [lacks]
        assert creates[lacks].payer == lacks

    async def test_missing_global_account(self, ledger):
        with pytest.raises(LedgerRpcError):
            await AccountResolver(ledger).fetch_global_state()

    async def test_undecodable_curve(self, ledger):
        mint = Pubkey.new_unique()
        ledger.accounts[InstructionBuilder.get_bonding_curve_address(mint)] = b"\x00" * 4
        with pytest.raises(LedgerRpcError):
            await AccountResolver(ledger).fetch_curve_state(mint)


class TestWallet:
    def test_from_base58_secret(self):
        keypair = Keypair()
        wallet = Wallet(base58.b58encode(bytes(keypair)).decode())
        assert wallet.pubkey == keypair.pubkey()

    def test_invalid_secret(self):
        with pytest.raises(ValueError, match="Invalid private key format"):
            Wallet(base58.b58encode(b"short").decode())

    def test_token_identity_is_fresh(self):
        assert TokenIdentity.generate().mint != TokenIdentity.generate().mint
        assert PumpAddresses.PROGRAM_ID != TokenIdentity.generate().mint
