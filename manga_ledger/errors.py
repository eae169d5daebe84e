"""Exceptions raised by the activity ledger"""


class LedgerError(Exception):
    """Base exception for activity ledger errors"""
    pass


class UnauthorizedError(LedgerError):
    """Caller does not hold the role the operation requires"""
    pass


class InvalidArgumentError(LedgerError):
    """An argument was rejected before any state changed"""
    pass


class InvalidAddressError(InvalidArgumentError):
    """Zero or malformed participant address"""
    pass


class NotFoundError(LedgerError):
    """No snapshot row exists for the requested address and period"""

    def __init__(self, role: str, address: str, period: int):
        self.role = role
        self.address = address
        self.period = period
        super().__init__(f"No {role} data found for {address} in period {period}")


class PreconditionError(LedgerError):
    """Operation is not allowed in the current ledger state"""
    pass


class RollupTimeoutError(PreconditionError):
    """Rollup exceeded its time budget before any row was appended"""
    pass


class BalanceSourceError(LedgerError):
    """The token balance oracle could not answer"""
    pass


class StorageError(LedgerError):
    """Persisting or loading snapshot rows failed"""
    pass
