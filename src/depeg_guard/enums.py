# src\depeg_guard\enums.py

# --- Built Ins  ---
from enum import Enum


class RiskLevel(str, Enum):
    """
    The canonical severity tiers for a measured price deviation.
    Ordered from least to most severe; compare with `rank`.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank


_RISK_ORDER = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)


class RejectionReason(str, Enum):
    """Reason codes carried by rejection events and decisions."""

    STALE_REFERENCE = "stale_reference"
    SIZE_EXCEEDED = "size_exceeded"
    CRITICAL_DEVIATION = "critical_deviation"


class SwapDirection(str, Enum):
    ZERO_FOR_ONE = "zero_for_one"
    ONE_FOR_ZERO = "one_for_zero"
