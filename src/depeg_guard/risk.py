# src/depeg_guard/risk.py

# --- Installed  ---
from loguru import logger as log
from pydantic import Field, model_validator

# --- Local Application Imports ---
from depeg_guard.enums import RiskLevel
from depeg_guard.exceptions import InvalidConfig
from depeg_guard.models import ConfigModel

BPS_DENOMINATOR = 10_000
MAX_DEVIATION_BPS = 2**63 - 1


# --- Configuration Contracts ---


class RiskConfig(ConfigModel):
    """
    Deviation thresholds in basis points, strictly ascending.

    Each threshold marks where an escalation step begins:
    `low` leaves the quiet band, `medium` enters HIGH, `high` tightens HIGH
    to the floor size cap and the max fee, `critical` rejects outright.
    """

    low: int = Field(..., ge=0)
    medium: int = Field(..., ge=0)
    high: int = Field(..., ge=0)
    critical: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _thresholds_ascending(self):
        values = (self.low, self.medium, self.high, self.critical)
        if not all(a < b for a, b in zip(values, values[1:])):
            raise InvalidConfig(f"Risk thresholds must be strictly ascending, got {values}")
        return self


class FeeConfig(ConfigModel):
    """Fee rates in hundredths of a basis point, strictly ascending."""

    base: int = Field(..., ge=0)
    medium: int = Field(..., ge=0)
    high: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _fees_ascending(self):
        values = (self.base, self.medium, self.high, self.max)
        if not all(a < b for a, b in zip(values, values[1:])):
            raise InvalidConfig(f"Fee rates must be strictly ascending, got {values}")
        return self


class SizeCapConfig(ConfigModel):
    """Trade size ceilings, strictly descending and positive."""

    base: int = Field(..., gt=0)
    medium: int = Field(..., gt=0)
    high: int = Field(..., gt=0)
    min: int = Field(..., gt=0)

    @model_validator(mode="after")
    def _caps_descending(self):
        values = (self.base, self.medium, self.high, self.min)
        if not all(a > b for a, b in zip(values, values[1:])):
            raise InvalidConfig(f"Size ceilings must be strictly descending, got {values}")
        return self


class TierPolicy(ConfigModel):
    """One row of the policy table: the band starting at `threshold_bps`."""

    threshold_bps: int = Field(..., ge=0)
    risk_level: RiskLevel
    fee_rate: int = Field(..., ge=0)
    size_ceiling: int = Field(..., ge=0)


# --- Pure Measurement ---


def deviation_bps(reference: int, twap: int) -> int:
    """
    Absolute deviation between two fixed-point prices, in basis points,
    measured against the smaller of the two and floored.

    A non-positive price yields MAX_DEVIATION_BPS so the trade lands in the
    most severe tier instead of passing.
    """
    denominator = min(reference, twap)
    if denominator <= 0:
        log.warning(f"Non-positive price in deviation check (reference={reference}, twap={twap}).")
        return MAX_DEVIATION_BPS
    return abs(reference - twap) * BPS_DENOMINATOR // denominator


def classify(deviation: int, risk_config: RiskConfig) -> RiskLevel:
    """Maps a deviation onto a tier. A deviation equal to a threshold takes that threshold's tier."""
    if deviation < 0:
        raise ValueError(f"Deviation must be non-negative, got {deviation}")
    if deviation >= risk_config.critical:
        return RiskLevel.CRITICAL
    if deviation >= risk_config.medium:
        return RiskLevel.HIGH
    if deviation >= risk_config.low:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# --- Policy Table ---


class PolicyTable:
    """
    Ordered bands of (threshold, tier, fee, size ceiling) closed by a CRITICAL
    sentinel. Built once, read by every evaluation.
    """

    def __init__(self, rows: list[TierPolicy], critical: TierPolicy):
        if not rows:
            raise InvalidConfig("Policy table needs at least one row.")
        if rows[0].threshold_bps != 0:
            raise InvalidConfig("The first policy row must start at 0 bps.")
        if critical.risk_level is not RiskLevel.CRITICAL:
            raise InvalidConfig("The terminal policy row must be CRITICAL.")
        if any(row.risk_level is RiskLevel.CRITICAL for row in rows):
            raise InvalidConfig("Only the terminal row may be CRITICAL.")

        ordered = [*rows, critical]
        for prev, row in zip(ordered, ordered[1:]):
            if row.threshold_bps <= prev.threshold_bps:
                raise InvalidConfig(
                    f"Thresholds must be strictly ascending: {prev.threshold_bps} -> {row.threshold_bps}"
                )
            if row.risk_level < prev.risk_level:
                raise InvalidConfig(f"Tiers must not de-escalate: {prev.risk_level} -> {row.risk_level}")
            if row.fee_rate < prev.fee_rate:
                raise InvalidConfig(f"Fees must not decrease: {prev.fee_rate} -> {row.fee_rate}")
        for prev, row in zip(rows, rows[1:]):
            if row.size_ceiling >= prev.size_ceiling:
                raise InvalidConfig(
                    f"Size ceilings must be strictly descending: {prev.size_ceiling} -> {row.size_ceiling}"
                )

        self._rows = tuple(rows)
        self._critical = critical

    @classmethod
    def from_configs(cls, risk: RiskConfig, fees: FeeConfig, size_caps: SizeCapConfig) -> "PolicyTable":
        rows = [
            TierPolicy(
                threshold_bps=risk.low,
                risk_level=RiskLevel.MEDIUM,
                fee_rate=fees.medium,
                size_ceiling=size_caps.medium,
            ),
            TierPolicy(
                threshold_bps=risk.medium,
                risk_level=RiskLevel.HIGH,
                fee_rate=fees.high,
                size_ceiling=size_caps.high,
            ),
            # Boundary band: still HIGH, but at the floor size and the max fee.
            TierPolicy(
                threshold_bps=risk.high,
                risk_level=RiskLevel.HIGH,
                fee_rate=fees.max,
                size_ceiling=size_caps.min,
            ),
        ]
        # low == 0 leaves no quiet band: every deviation is at least MEDIUM, as in classify().
        if risk.low > 0:
            rows.insert(
                0,
                TierPolicy(threshold_bps=0, risk_level=RiskLevel.LOW, fee_rate=fees.base, size_ceiling=size_caps.base),
            )
        critical = TierPolicy(
            threshold_bps=risk.critical,
            risk_level=RiskLevel.CRITICAL,
            fee_rate=fees.max,
            size_ceiling=0,
        )
        return cls(rows, critical)

    @property
    def rows(self) -> tuple[TierPolicy, ...]:
        return (*self._rows, self._critical)

    def lookup(self, deviation: int) -> TierPolicy:
        if deviation < 0:
            raise ValueError(f"Deviation must be non-negative, got {deviation}")
        if deviation >= self._critical.threshold_bps:
            return self._critical
        # The first row starts at 0, so some row always matches.
        return next(row for row in reversed(self._rows) if deviation >= row.threshold_bps)

    def classify(self, deviation: int) -> RiskLevel:
        return self.lookup(deviation).risk_level

    def _first_row(self, tier: RiskLevel) -> TierPolicy:
        for row in self.rows:
            if row.risk_level is tier:
                return row
        raise KeyError(tier)

    def fee(self, tier: RiskLevel) -> int:
        return self._first_row(tier).fee_rate

    def size_ceiling(self, tier: RiskLevel) -> int:
        return self._first_row(tier).size_ceiling
