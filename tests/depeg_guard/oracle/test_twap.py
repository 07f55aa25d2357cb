# tests/depeg_guard/oracle/test_twap.py

from decimal import Decimal

import pytest

from depeg_guard.exceptions import NonMonotonicTimestamp
from depeg_guard.models import MAX_TICK, MIN_TICK
from depeg_guard.oracle.observation_log import ObservationLog
from depeg_guard.oracle.twap import tick_to_price, trunc_div, twap, twap_tick

ONE = 10**18


@pytest.fixture
def rising_log():
    obs_log = ObservationLog(8, pool_id="pool-a")
    obs_log.append(1000, 10)  # cumulative 10_000
    obs_log.append(1100, 20)  # 12_000
    obs_log.append(1200, 30)  # 15_000
    return obs_log


def test_tick_to_price_fixed_points():
    assert tick_to_price(0) == ONE
    assert tick_to_price(1) == 1_000_100_000_000_000_000
    assert tick_to_price(-1) < ONE < tick_to_price(1)
    expected = int((Decimal("1.0001") ** 10) * ONE)
    assert abs(tick_to_price(10) - expected) <= 1


def test_trunc_div_truncates_toward_zero():
    assert trunc_div(7, 2) == 3
    assert trunc_div(-7, 2) == -3
    assert trunc_div(7, -2) == -3
    assert trunc_div(-7, -2) == 3
    assert trunc_div(0, 5) == 0


def test_cold_start_prices_current_tick():
    obs_log = ObservationLog(4)
    assert twap(obs_log, 600, 5000, 0) == ONE
    assert twap(obs_log, 600, 5000, 1) == tick_to_price(1)


def test_window_must_be_positive(rising_log):
    with pytest.raises(ValueError):
        twap(rising_log, 0, 1200, 30)


def test_interpolated_average(rising_log):
    # [1050, 1100] at tick 20 and [1100, 1200] at tick 30: 4000 / 150.
    assert twap_tick(rising_log, 150, 1200, 30) == 26


def test_negative_ticks_truncate_toward_zero():
    obs_log = ObservationLog(8)
    obs_log.append(1000, -10)
    obs_log.append(1100, -20)
    obs_log.append(1200, -30)
    assert twap_tick(obs_log, 150, 1200, -30) == -26


def test_extrapolates_to_now_with_current_tick(rising_log):
    # Target 1110: cumulative 12_300. Now 1260: 15_000 + 40 * 60 = 17_400.
    assert twap_tick(rising_log, 150, 1260, 40) == 34


def test_window_inside_newest_interval_uses_current_tick(rising_log):
    assert twap_tick(rising_log, 50, 1300, 42) == 42
    assert twap(rising_log, 50, 1300, 42) == tick_to_price(42)


def test_window_before_oldest_uses_current_tick(rising_log):
    assert twap_tick(rising_log, 10_000, 1200, 17) == 17


def test_single_observation_uses_current_tick():
    obs_log = ObservationLog(4)
    obs_log.append(1000, 55)
    assert twap_tick(obs_log, 100, 1050, -3) == -3


def test_query_before_newest_observation_is_rejected(rising_log):
    with pytest.raises(NonMonotonicTimestamp):
        twap_tick(rising_log, 150, 1150, 30)


def test_noop_append_does_not_change_twap(rising_log):
    before = twap(rising_log, 150, 1260, 40)
    newest = rising_log.newest
    rising_log.append(newest.timestamp, newest.tick)

    assert len(rising_log) == 4
    assert twap(rising_log, 150, 1260, 40) == before


def test_flat_pool_twap_is_par():
    obs_log = ObservationLog(8)
    for ts in range(0, 700, 100):
        obs_log.append(ts, 0)
    assert twap(obs_log, 300, 650, 0) == ONE


def test_tick_to_price_bounds():
    assert tick_to_price(MAX_TICK) > tick_to_price(MAX_TICK - 1)
    assert tick_to_price(MIN_TICK) == 0
    with pytest.raises(ValueError):
        tick_to_price(MAX_TICK + 1)
    with pytest.raises(ValueError):
        tick_to_price(MIN_TICK - 1)


@pytest.fixture
def wrapped_log():
    obs_log = ObservationLog(4, pool_id="pool-w")
    for i in range(1, 10):
        obs_log.append(i * 100, i)
    # Retained: 600 (2100), 700 (2800), 800 (3600), 900 (4500); oldest sits mid-buffer.
    assert obs_log.write_index == 1
    assert [o.timestamp for o in obs_log] == [600, 700, 800, 900]
    return obs_log


def test_twap_after_wraparound(wrapped_log):
    # [650, 700] tick 7, [700, 800] tick 8, [800, 900] tick 9: 2050 / 250.
    assert twap_tick(wrapped_log, 250, 900, 9) == 8


def test_twap_after_wraparound_extrapolates(wrapped_log):
    # Target 700: cumulative 2800. Now 950: 4500 + 10 * 50 = 5000.
    assert twap_tick(wrapped_log, 250, 950, 10) == 8
    assert twap(wrapped_log, 250, 950, 10) == tick_to_price(8)


def test_evicted_history_falls_back_to_current_tick(wrapped_log):
    assert twap_tick(wrapped_log, 400, 900, 9) == 9
