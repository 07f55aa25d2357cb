# src/depeg_guard/guard/manager.py

# --- Installed  ---
from loguru import logger as log

# --- Local Application Imports ---
from depeg_guard.config import GuardSettings
from depeg_guard.enums import RejectionReason, RiskLevel
from depeg_guard.exceptions import (
    CriticalDeviation,
    GuardError,
    InvalidConfig,
    SizeExceeded,
    StaleReference,
    TradeRejected,
)
from depeg_guard.guard.collaborators import EventPublisher, LoggingEventPublisher, ReferencePriceFeed
from depeg_guard.models import (
    DeviationMeasuredEvent,
    Observation,
    PolicyDecision,
    ReferencePrice,
    TradeRejectedEvent,
    TradeRequest,
    TradeResult,
)
from depeg_guard.oracle.observation_log import ObservationLog
from depeg_guard.oracle.twap import TickToPrice, tick_to_price, twap
from depeg_guard.risk import deviation_bps

_REJECTIONS: dict[RejectionReason, type[TradeRejected]] = {
    RejectionReason.STALE_REFERENCE: StaleReference,
    RejectionReason.SIZE_EXCEEDED: SizeExceeded,
    RejectionReason.CRITICAL_DEVIATION: CriticalDeviation,
}


class SwapGuardManager:
    """
    Wraps every trade in a pre/post hook pair.

    The host must run pre_trade, the trade itself and post_trade for one pool
    without interleaving another trade on that pool. Pools share no state.
    """

    def __init__(
        self,
        settings: GuardSettings,
        reference_feed: ReferencePriceFeed,
        publisher: EventPublisher | None = None,
        price_of_tick: TickToPrice = tick_to_price,
    ):
        if settings is None:
            raise InvalidConfig("Guard settings not configured.")
        self.settings = settings
        self.policy = settings.policy_table()
        self.feed = reference_feed
        self.publisher = publisher or LoggingEventPublisher()
        self.price_of_tick = price_of_tick
        self._logs: dict[str, ObservationLog] = {}

    # --- Observation state ---

    def observation_log(self, pool_id: str) -> ObservationLog:
        if pool_id not in self._logs:
            self._logs[pool_id] = ObservationLog(self.settings.observation_capacity, pool_id=pool_id)
        return self._logs[pool_id]

    def initialize_pool(self, pool_id: str, timestamp: int, tick: int) -> Observation:
        """Seeds a pool's log with its starting tick. Only valid once per pool."""
        observations = self.observation_log(pool_id)
        if not observations.is_empty:
            raise GuardError(f"[{pool_id}] pool already initialized")
        observation = observations.append(timestamp, tick)
        log.info(f"[{pool_id}] pool initialized at ts={timestamp} tick={tick}")
        return observation

    def current_twap(self, pool_id: str, now: int, current_tick: int) -> int:
        return twap(
            self.observation_log(pool_id),
            self.settings.twap_window_seconds,
            now,
            current_tick,
            tick_to_price=self.price_of_tick,
        )

    # --- Lifecycle hooks ---

    def _is_stale(self, reference: ReferencePrice, now: int) -> bool:
        # A feed clock running ahead of the host clock reads as stale and rejects trades.
        if reference.updated_at == 0 or reference.updated_at > now:
            return True
        return now - reference.updated_at > self.settings.reference_max_age_seconds

    async def _reject(self, request: TradeRequest, decision: PolicyDecision) -> None:
        await self.publisher.publish(
            TradeRejectedEvent(
                pool_id=decision.pool_id,
                timestamp=request.timestamp,
                actor=request.actor,
                deviation_bps=decision.deviation_bps,
                reason=decision.reason,
            )
        )

    async def evaluate(self, pool_id: str, request: TradeRequest) -> PolicyDecision:
        """
        Measures the deviation for a proposed trade and decides without raising.
        Does not touch the observation log.
        """
        reference = await self.feed.latest()
        if self._is_stale(reference, request.timestamp):
            log.warning(
                f"[{pool_id}] reference price stale: updated_at={reference.updated_at} now={request.timestamp} "
                f"max_age={self.settings.reference_max_age_seconds}s"
            )
            decision = PolicyDecision(
                pool_id=pool_id,
                admit=False,
                reference_price=reference.value,
                reason=RejectionReason.STALE_REFERENCE,
            )
            await self._reject(request, decision)
            return decision

        twap_price = self.current_twap(pool_id, request.timestamp, request.current_tick)
        deviation = deviation_bps(reference.value, twap_price)
        tier = self.policy.lookup(deviation)

        reason = None
        if tier.risk_level is RiskLevel.CRITICAL:
            reason = RejectionReason.CRITICAL_DEVIATION
        elif request.proposed_size > tier.size_ceiling:
            reason = RejectionReason.SIZE_EXCEEDED

        decision = PolicyDecision(
            pool_id=pool_id,
            admit=reason is None,
            risk_level=tier.risk_level,
            deviation_bps=deviation,
            reference_price=reference.value,
            twap_price=twap_price,
            fee_rate=tier.fee_rate,
            size_ceiling=tier.size_ceiling,
            reason=reason,
        )
        await self.publisher.publish(
            DeviationMeasuredEvent(
                pool_id=pool_id,
                timestamp=request.timestamp,
                reference_price=reference.value,
                twap_price=twap_price,
                deviation_bps=deviation,
                risk_level=tier.risk_level,
                fee_rate=tier.fee_rate,
                size_ceiling=tier.size_ceiling,
            )
        )

        if reason is not None:
            log.warning(
                f"[{pool_id}] trade rejected ({reason.value}): size={request.proposed_size} "
                f"ceiling={tier.size_ceiling} deviation={deviation} bps tier={tier.risk_level.value}"
            )
            await self._reject(request, decision)
        else:
            log.info(
                f"[{pool_id}] trade admitted: size={request.proposed_size} fee={tier.fee_rate} "
                f"deviation={deviation} bps tier={tier.risk_level.value}"
            )
        return decision

    async def pre_trade(self, pool_id: str, request: TradeRequest) -> PolicyDecision:
        """
        Returns the admitted decision, whose fee_rate replaces the pool's static fee.
        Raises StaleReference, CriticalDeviation or SizeExceeded otherwise.

        StaleReference is also raised when the feed's `updated_at` is ahead of
        `request.timestamp`, so the feed and host clocks must agree.
        """
        decision = await self.evaluate(pool_id, request)
        if decision.admit:
            return decision
        raise _REJECTIONS[decision.reason](decision)

    def post_trade(self, pool_id: str, result: TradeResult) -> Observation:
        """Records the pool's post-trade tick. Sole writer of the observation log."""
        return self.observation_log(pool_id).append(result.timestamp, result.tick)
