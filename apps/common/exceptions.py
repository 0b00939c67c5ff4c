class LedgerError(Exception):
    """Base class for failures reported by the fulfillment and ledger core."""


class NotFound(LedgerError):
    pass


class InvalidTransition(LedgerError):
    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Invalid status transition from {current} to {target}")


class InsufficientStock(LedgerError):
    def __init__(self, stock_id, available: int, requested: int):
        self.stock_id = stock_id
        self.available = available
        self.requested = requested
        super().__init__(f"Cannot deduct {requested} from stock {stock_id}: only {available} left")


class NoFundsAvailable(LedgerError):
    pass


class InvalidState(LedgerError):
    pass
