"""Global enums. Values are what the snapshot serializes."""

from enum import Enum


class ShareKind(str, Enum):
    YES = "YES"
    NO = "NO"

    def opposite(self) -> "ShareKind":
        return ShareKind.NO if self is ShareKind.YES else ShareKind.YES


class ResolveOutcome(str, Enum):
    """Resolution choice. UNDO leaves the market live and pays nobody."""
    YES = "YES"
    NO = "NO"
    UNDO = "UNDO"

    def share_kind(self) -> ShareKind | None:
        if self is ResolveOutcome.YES:
            return ShareKind.YES
        if self is ResolveOutcome.NO:
            return ShareKind.NO
        return None


class TradeDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class MarketStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
