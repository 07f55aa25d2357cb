import pytest

from depeg_guard.config import GuardSettings
from depeg_guard.risk import FeeConfig, RiskConfig, SizeCapConfig


@pytest.fixture
def risk_config():
    return RiskConfig(low=10, medium=50, high=100, critical=200)


@pytest.fixture
def fee_config():
    return FeeConfig(base=100, medium=500, high=3000, max=10000)


@pytest.fixture
def size_caps():
    return SizeCapConfig(base=1_000_000, medium=250_000, high=50_000, min=10_000)


@pytest.fixture
def settings(risk_config, fee_config, size_caps):
    return GuardSettings(
        risk=risk_config,
        fees=fee_config,
        size_caps=size_caps,
        twap_window_seconds=600,
        observation_capacity=16,
        reference_max_age_seconds=3600,
    )
