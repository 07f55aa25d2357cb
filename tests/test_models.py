import pytest
from pydantic import ValidationError

from depeg_guard.enums import RejectionReason, RiskLevel, SwapDirection
from depeg_guard.models import (
    MAX_TICK,
    DeviationMeasuredEvent,
    Observation,
    PolicyDecision,
    ReferencePrice,
    TradeRejectedEvent,
    TradeRequest,
)

# --- Fixtures ---


@pytest.fixture
def sample_request():
    return {"proposed_size": 10_000, "direction": "one_for_zero", "current_tick": -4, "timestamp": 1_700_000_000}


@pytest.fixture
def sample_measurement():
    return {
        "pool_id": "usdc-usdt",
        "timestamp": 1_700_000_000,
        "reference_price": 1_003_000_000_000_000_000,
        "twap_price": 10**18,
        "deviation_bps": 30,
        "risk_level": "medium",
        "fee_rate": 500,
        "size_ceiling": 250_000,
    }


# --- Model Tests ---


def test_trade_request(sample_request):
    """Test TradeRequest parsing and defaults."""
    req = TradeRequest(**sample_request)
    assert req.direction is SwapDirection.ONE_FOR_ZERO
    assert req.actor is None

    with pytest.raises(ValidationError):
        TradeRequest(**{**sample_request, "proposed_size": -1})

    with pytest.raises(ValidationError):
        TradeRequest(**{**sample_request, "current_tick": MAX_TICK + 1})


def test_reference_price_must_be_positive():
    assert ReferencePrice(value=1, updated_at=0).updated_at == 0
    with pytest.raises(ValidationError):
        ReferencePrice(value=0, updated_at=100)


def test_observation_is_immutable():
    obs = Observation(timestamp=10, cumulative_tick=-50, tick=-5)
    assert obs.valid
    with pytest.raises(ValidationError):
        obs.cumulative_tick = 0


def test_decision_defaults():
    decision = PolicyDecision(pool_id="p", admit=False, reason=RejectionReason.STALE_REFERENCE)
    assert decision.risk_level is None
    assert decision.deviation_bps is None


def test_events(sample_measurement):
    """Test observability events."""
    measured = DeviationMeasuredEvent(**sample_measurement)
    assert measured.risk_level is RiskLevel.MEDIUM

    rejected = TradeRejectedEvent(
        pool_id="usdc-usdt", timestamp=1, actor="0xabc", deviation_bps=250, reason="critical_deviation"
    )
    assert rejected.reason is RejectionReason.CRITICAL_DEVIATION

    # Serialization check
    json_str = rejected.model_dump_json()
    assert "critical_deviation" in json_str
    assert "usdc-usdt" in json_str
