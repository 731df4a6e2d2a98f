# pump_bundler/core/wallet.py

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from pump_bundler.utils.logger import get_logger

logger = get_logger(__name__)


class Wallet:
    """ Represents a caller-owned wallet with keypair for signing. Key material is never persisted. """
    def __init__(self, private_key_bs58: str):
        try:
            # Decode the base58 private key string
            private_key_bytes: bytes = base58.b58decode(private_key_bs58)
            self.keypair = Keypair.from_bytes(private_key_bytes)
        except ValueError as e:
            logger.error(f"Invalid base58 private key provided: {e}")
            raise ValueError("Invalid private key format") from e
        self.pubkey: Pubkey = self.keypair.pubkey()
        logger.debug(f"Wallet initialized for pubkey: {self.pubkey}")

    @classmethod
    def from_keypair(cls, keypair: Keypair) -> "Wallet":
        wallet = cls.__new__(cls)
        wallet.keypair = keypair
        wallet.pubkey = keypair.pubkey()
        return wallet

    @classmethod
    def generate(cls) -> "Wallet":
        return cls.from_keypair(Keypair())

    def __repr__(self) -> str:
        return f"Wallet({self.pubkey})"


class TokenIdentity:
    """
    Freshly generated keypair whose public half becomes the token's mint address.
    One identity is used for the create instruction and every buy of the same bundle.
    """
    def __init__(self, keypair: Keypair):
        self.keypair = keypair
        self.mint: Pubkey = keypair.pubkey()

    @classmethod
    def generate(cls) -> "TokenIdentity":
        identity = cls(Keypair())
        logger.info(f"Generated token identity {identity.mint}")
        return identity

    def __repr__(self) -> str:
        return f"TokenIdentity({self.mint})"
