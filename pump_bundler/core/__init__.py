# pump_bundler/core/__init__.py

# Import directly available classes/modules via relative imports
from .client import SolanaClient
from .wallet import Wallet, TokenIdentity
from .transactions import RecencyToken, SimulationResult
from .instruction_builder import InstructionBuilder
from .curve import BondingCurveState, GlobalState
from .accounts import AccountResolver, ResolvedAccounts
from .pubkeys import PumpAddresses, SolanaProgramAddresses

__all__ = [
    "SolanaClient",
    "Wallet",
    "TokenIdentity",
    "RecencyToken",
    "SimulationResult",
    "InstructionBuilder",
    "BondingCurveState",
    "GlobalState",
    "AccountResolver",
    "ResolvedAccounts",
    "PumpAddresses",
    "SolanaProgramAddresses",
]
