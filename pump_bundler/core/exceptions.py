# pump_bundler/core/exceptions.py

from typing import Optional


class PumpBundlerException(Exception):
    """Base class for custom exceptions in this package."""
    pass


class AddressDerivationError(PumpBundlerException):
    """An input public key is malformed; fatal, never retried."""
    pass


class BundleTooLargeError(PumpBundlerException):
    """The bundle exceeds the relay's transaction-count or packet-size ceiling."""

    def __init__(self, message: str, transaction_count: int = 0, max_transactions: int = 0):
        super().__init__(message)
        self.transaction_count = transaction_count
        self.max_transactions = max_transactions


class SimulationFailure(PumpBundlerException):
    """Instruction-level logical error reported by simulation (e.g. slippage bound violated)."""

    def __init__(self, message: str, logs: Optional[list] = None):
        super().__init__(message)
        self.logs = logs or []


class SlippageError(SimulationFailure):
    """Execution cost would exceed the buy ceiling or output fall below the sell floor."""
    pass


class RelayError(PumpBundlerException):
    """Relay answered with an error that is not worth retrying."""
    pass


class TransientRelayError(RelayError):
    """Relay overloaded, rate limited or unreachable; retried up to the attempt bound."""
    pass


class BundleExpired(PumpBundlerException):
    """The recency token expired before the envelope was sent; the submitters turn it into an EXPIRED attempt."""
    pass


class RejectedPermanent(PumpBundlerException):
    """Relay rejected the bundle for a reason retrying cannot fix."""

    def __init__(self, reason: str):
        super().__init__(f"Bundle rejected: {reason}")
        self.reason = reason


class RetriesExhausted(PumpBundlerException):
    """Every allowed attempt expired or was rejected transiently."""

    def __init__(self, last_reason: Optional[str], attempts: int):
        super().__init__(f"Bundle did not land after {attempts} attempts. Last reason: {last_reason}")
        self.last_reason = last_reason
        self.attempts = attempts


class ProtocolInvariantViolation(PumpBundlerException):
    """The relay reported something its all-or-nothing contract forbids (e.g. partial landing)."""
    pass


class LedgerRpcError(PumpBundlerException):
    """For errors talking to the ledger RPC node."""
    pass
