# ~/depeg-guard/src/depeg_guard/models.py

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .enums import RejectionReason, RiskLevel, SwapDirection
from .exceptions import InvalidConfig

# --- Base Configuration ---


class AppBaseModel(BaseModel):
    """Base model for all guard data contracts."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",  # Default to ignoring extra fields from host payloads
    )


class FrozenModel(AppBaseModel):
    """Immutable contract. Shared read-only once built."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


class ConfigModel(FrozenModel):
    """
    Deployment configuration. Any invalid field surfaces as InvalidConfig,
    the same error the cross-field checks raise.
    """

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidConfig(f"Invalid {type(self).__name__}: {e}") from e


# --- Tick Bounds ---

MIN_TICK = -887272
MAX_TICK = 887272


# --- Oracle Models ---


class Observation(FrozenModel):
    """
    One sample of the pool's price integral.
    `cumulative_tick` is the running sum of tick * elapsed seconds.
    """

    timestamp: int = Field(..., ge=0, description="Epoch seconds.")
    cumulative_tick: int
    tick: int = Field(default=0, description="Instantaneous tick that was appended.")
    valid: bool = True


class ReferencePrice(FrozenModel):
    """Latest value reported by the external reference feed."""

    value: int = Field(..., gt=0, description="18-decimal fixed-point price.")
    updated_at: int = Field(..., ge=0, description="Epoch seconds. Zero means unset.")


# --- Trade Lifecycle Models ---


class TradeRequest(FrozenModel):
    """
    Snapshot handed to the pre-trade hook by the execution engine.
    """

    proposed_size: int = Field(..., ge=0)
    direction: SwapDirection = SwapDirection.ZERO_FOR_ONE
    current_tick: int = Field(..., ge=MIN_TICK, le=MAX_TICK, description="Pool tick before the trade executes.")
    timestamp: int = Field(..., ge=0, description="Host clock, epoch seconds.")
    actor: str | None = None


class TradeResult(FrozenModel):
    """Pool state after a trade executed, handed to the post-trade hook."""

    tick: int = Field(..., ge=MIN_TICK, le=MAX_TICK)
    timestamp: int = Field(..., ge=0)


class PolicyDecision(FrozenModel):
    """Output of one pre-trade evaluation. Never persisted."""

    pool_id: str
    admit: bool
    risk_level: RiskLevel | None = None
    deviation_bps: int | None = None
    reference_price: int | None = None
    twap_price: int | None = None
    fee_rate: int | None = Field(default=None, description="Hundredths of a basis point.")
    size_ceiling: int | None = None
    reason: RejectionReason | None = None


# --- Event Models ---


class BaseEvent(FrozenModel):
    """Abstract base for observability events."""

    pool_id: str
    timestamp: int


class DeviationMeasuredEvent(BaseEvent):
    reference_price: int
    twap_price: int
    deviation_bps: int
    risk_level: RiskLevel
    fee_rate: int
    size_ceiling: int


class TradeRejectedEvent(BaseEvent):
    actor: str | None = None
    deviation_bps: int | None = None
    reason: RejectionReason
