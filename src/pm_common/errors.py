"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: Account/Balance
  3xxx: Market
  4xxx: Trade
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


# --- 2xxx: Account/Balance ---

class InsufficientFundsError(AppError):
    def __init__(self, required: float, available: float) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required:.2f}, available {available:.2f}",
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3001, f"Market not found: {market_id}")


class MarketClosedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3002, f"Market is closed for trading: {market_id}")


class UnauthorizedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3003, f"Only the creator can resolve market {market_id}")


class StaleQuoteError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3004, f"Market {market_id} changed since the quote, try again")


# --- 4xxx: Trade ---

class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid amount: {detail}")


class NoPositionError(InvalidAmountError):
    def __init__(self, market_id: int) -> None:
        super().__init__(f"no shares to sell in market {market_id}")
        self.code = 4002


class ConflictingPositionError(AppError):
    def __init__(self, held: str) -> None:
        super().__init__(
            4003,
            f"Already holding {held} shares in this market, sell those first",
        )


# --- 9xxx: System ---

class MarketIdOverflowError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Market id allocator exhausted")


class InvariantViolationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9002, f"Invariant violated: {detail}")
